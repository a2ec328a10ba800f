"""molscape — deterministic 2-D depiction of molecular graphs.

Public API is organised into layers:

- **Core** — models, graph container, options, layout state, I/O
- **Input** — SMILES reader and ring perception
- **Layout** — the depiction pipeline and its stages
- **Output** — snapshot export, diagnostics and rendering (requires matplotlib)
"""

# ── Core ────────────────────────────────────────────────────────────
from .models import Atom, Bracket, Edge, Ring, RingConnection, Vertex
from .geometry import Vector2
from .molecule import MolGraph
from .options import LayoutOptions
from .state import LayoutState, RingSnapshot
from .io import load_json, save_json

# ── Input ───────────────────────────────────────────────────────────
from .smiles import SmilesSyntaxError, parse_smiles
from .rings import aromatic_rings, find_rings

# ── Layout ──────────────────────────────────────────────────────────
from .pipeline import (
    DepictionPipeline,
    DepictionResult,
    DepictionStep,
    PipelineResult,
    StepResult,
    default_steps,
    layout_molecule,
)
from .overlap import OverlapScore, overlap_score
from .cis_trans import BondAnalysis, analyze_bond
from .transforms import rotate_drawing

# ── Output ──────────────────────────────────────────────────────────
from .export import (
    export_snapshot,
    export_snapshot_json,
    snapshot_to_graph,
    validate_snapshot,
)
from .diagnostics import diagnostics_report

__all__ = [
    # Core
    "Atom",
    "Bracket",
    "Edge",
    "Ring",
    "RingConnection",
    "Vertex",
    "Vector2",
    "MolGraph",
    "LayoutOptions",
    "LayoutState",
    "RingSnapshot",
    "load_json",
    "save_json",
    # Input
    "SmilesSyntaxError",
    "parse_smiles",
    "aromatic_rings",
    "find_rings",
    # Layout
    "DepictionPipeline",
    "DepictionResult",
    "DepictionStep",
    "PipelineResult",
    "StepResult",
    "default_steps",
    "layout_molecule",
    "OverlapScore",
    "overlap_score",
    "BondAnalysis",
    "analyze_bond",
    "rotate_drawing",
    # Output
    "export_snapshot",
    "export_snapshot_json",
    "snapshot_to_graph",
    "validate_snapshot",
    "diagnostics_report",
]
