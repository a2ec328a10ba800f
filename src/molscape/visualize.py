"""Matplotlib preview of a depiction snapshot.

This is a quick-look renderer for checking layouts, not a publication
drawing.  Bonds are plain lines, multiple bonds are offset copies, wedges
are filled or hatched triangles and non-carbon atoms get a label.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Dict, Tuple, Union

from .export import validate_snapshot

_BOND_COLOR = "#2b2b2b"
_LABEL_COLORS = {
    "N": "#3050f8",
    "O": "#ff0d0d",
    "S": "#c8a000",
    "F": "#1fa01f",
    "Cl": "#1fa01f",
    "Br": "#a62929",
    "I": "#940094",
    "P": "#ff8000",
}

Point = Tuple[float, float]


def _ensure_mpl():
    """Lazy-import matplotlib; raise helpful error if missing."""
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from matplotlib.patches import Polygon
    except ImportError as exc:  # pragma: no cover - requires optional dep
        raise RuntimeError(
            "matplotlib is required for rendering. Install with `pip install molscape[viz]`."
        ) from exc
    return plt, Polygon


def render_png(
    snapshot: Dict[str, Any],
    output_path: Union[str, Path],
    line_width: float = 1.5,
    font_size: float = 10.0,
    padding: float = 15.0,
    dpi: int = 150,
    show_ids: bool = False,
) -> None:
    """Render a snapshot to PNG.

    Raises ``ValueError`` for an invalid snapshot and ``RuntimeError`` when
    matplotlib is not installed.
    """
    errors = validate_snapshot(snapshot)
    if errors:
        raise ValueError("Invalid snapshot: " + "; ".join(errors))
    plt, Polygon = _ensure_mpl()

    vertices = {v["id"]: v for v in snapshot["vertices"]}
    spacing = snapshot["metadata"].get("options", {}).get("bond_spacing", 5.1)
    fig, ax = plt.subplots()

    for edge in snapshot["edges"]:
        a = vertices[edge["source"]]
        b = vertices[edge["target"]]
        if edge["bond_type"] == "." or not (a["is_drawn"] and b["is_drawn"]):
            continue
        start = _xy(a)
        end = _xy(b)
        if edge.get("wedge"):
            if b.get("is_stereo_center") and not a.get("is_stereo_center"):
                start, end = end, start
            _draw_wedge(ax, Polygon, start, end, spacing, edge["wedge"])
            continue
        for offset in _bond_offsets(edge["bond_type"], spacing):
            p, q = _offset_segment(start, end, offset)
            ax.plot([p[0], q[0]], [p[1], q[1]], color=_BOND_COLOR, linewidth=line_width, zorder=1)

    for vertex in snapshot["vertices"]:
        if not vertex["is_drawn"]:
            continue
        label = _label(vertex, show_ids)
        if label is None:
            continue
        x, y = _xy(vertex)
        ax.text(
            x, y, label,
            ha="center", va="center", fontsize=font_size,
            color=_LABEL_COLORS.get(vertex["element"], _BOND_COLOR),
            bbox={"boxstyle": "round,pad=0.15", "facecolor": "white", "edgecolor": "none"},
            zorder=3,
        )

    drawn = [_xy(v) for v in snapshot["vertices"] if v["is_drawn"]] or [(0.0, 0.0)]
    xs = [p[0] for p in drawn]
    ys = [p[1] for p in drawn]
    ax.set_aspect("equal", "box")
    ax.set_xlim(min(xs) - padding, max(xs) + padding)
    ax.set_ylim(min(ys) - padding, max(ys) + padding)
    ax.axis("off")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=dpi, bbox_inches="tight", pad_inches=0.05)
    plt.close(fig)


def _xy(vertex: Dict[str, Any]) -> Point:
    return (vertex["position"]["x"], vertex["position"]["y"])


def _label(vertex: Dict[str, Any], show_ids: bool):
    element = vertex["element"]
    text = None
    if element != "C" or not vertex.get("neighbours"):
        text = element
    if show_ids:
        text = f"{text or ''}{vertex['id']}"
    return text


def _bond_offsets(bond_type: str, spacing: float):
    if bond_type == "=":
        return (-spacing / 2.0, spacing / 2.0)
    if bond_type == "#":
        return (-spacing, 0.0, spacing)
    if bond_type == "$":
        return (-1.5 * spacing, -0.5 * spacing, 0.5 * spacing, 1.5 * spacing)
    return (0.0,)


def _offset_segment(start: Point, end: Point, offset: float) -> Tuple[Point, Point]:
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0.0 or offset == 0.0:
        return start, end
    nx, ny = -dy / length * offset, dx / length * offset
    return (start[0] + nx, start[1] + ny), (end[0] + nx, end[1] + ny)


def _draw_wedge(ax, Polygon, start: Point, end: Point, width: float, kind: str) -> None:
    _, left = _offset_segment(start, end, width / 2.0)
    _, right = _offset_segment(start, end, -width / 2.0)
    patch = Polygon(
        [start, left, right],
        closed=True,
        facecolor=_BOND_COLOR if kind == "up" else "none",
        edgecolor=_BOND_COLOR,
        hatch=None if kind == "up" else "|||",
        linewidth=0.5,
        zorder=2,
    )
    ax.add_patch(patch)
