from __future__ import annotations

import json
from pathlib import Path

import pytest

from molscape import LayoutOptions, layout_molecule, parse_smiles


SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "depiction.schema.json"


@pytest.fixture()
def options():
    return LayoutOptions()


@pytest.fixture()
def layout():
    """``layout(smiles, **overrides)`` → DepictionResult."""

    def _layout(smiles: str, **overrides):
        return layout_molecule(parse_smiles(smiles), LayoutOptions().with_overrides(**overrides))

    return _layout


@pytest.fixture(scope="session")
def schema():
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))

