from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Union

from .export import snapshot_json, validate_snapshot


PathLike = Union[str, Path]


def load_json(path: PathLike) -> Dict[str, Any]:
    """Read a snapshot payload, raising ``ValueError`` if it is malformed."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    errors = validate_snapshot(data)
    if errors:
        raise ValueError(f"{path}: " + "; ".join(errors))
    return data


def save_json(payload: Dict[str, Any], path: PathLike, indent: int = 2) -> None:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(snapshot_json(payload, indent=indent), encoding="utf-8")
