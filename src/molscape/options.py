"""Layout configuration.

:class:`LayoutOptions` is immutable; derive variants with
:meth:`LayoutOptions.with_overrides`.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, List


# ═══════════════════════════════════════════════════════════════════
# Configuration
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class LayoutOptions:
    """All tuneable parameters of a depiction run.

    Attributes
    ----------
    bond_length : float
        Target length of every bond, in drawing units.
    bond_spacing : float
        Gap between the lines of a multiple bond.  Only used by renderers.
    overlap_sensitivity : float
        Per-vertex overlap score above which a vertex counts as clashing.
    overlap_resolution_iterations : int
        Number of sweeps of the iterative bond-rotation pass.
    kk_threshold : float
        Kamada-Kawai stops once the largest gradient magnitude drops below this.
    kk_inner_threshold : float
        Newton steps on one vertex stop below this gradient magnitude.
    kk_max_iteration : int
        Cap on Kamada-Kawai outer iterations.
    kk_max_inner_iteration : int
        Cap on Newton steps per selected vertex.
    kk_max_energy : float
        Starting energy; the outer loop runs while the energy exceeds the threshold.
    finetune_overlap : bool
        Run the clash-driven grid search after the standard passes.
    finetune_max_steps : int
        Cap on candidate bonds tried by the finetune pass.
    finetune_timeout : float
        Wall-clock budget of the finetune pass, in seconds.
    isomeric : bool
        Honour ``@``/``@@`` and ``/``/``\\`` markers.
    explicit_hydrogens : bool
        Draw every explicit hydrogen.  When *False* only hydrogens on
        stereocentres inside two or more rings are drawn.
    rotate_drawing : bool
        Rotate the finished drawing so its longest extent is horizontal.
    """

    bond_length: float = 30.0
    bond_spacing: float = 0.17 * 30.0
    overlap_sensitivity: float = 0.42
    overlap_resolution_iterations: int = 1
    kk_threshold: float = 0.1
    kk_inner_threshold: float = 0.1
    kk_max_iteration: int = 20000
    kk_max_inner_iteration: int = 50
    kk_max_energy: float = 1e9
    finetune_overlap: bool = False
    finetune_max_steps: int = 64
    finetune_timeout: float = 1.0
    isomeric: bool = True
    explicit_hydrogens: bool = True
    rotate_drawing: bool = False

    def validate(self) -> List[str]:
        """Return a list of problems; empty when the options are usable."""
        errors: List[str] = []
        for name in ("bond_length", "kk_max_energy"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                errors.append(f"{name} must be a positive finite number, got {value!r}")
        for name in ("bond_spacing", "overlap_sensitivity", "kk_threshold",
                     "kk_inner_threshold", "finetune_timeout"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                errors.append(f"{name} must be a non-negative finite number, got {value!r}")
        for name in ("overlap_resolution_iterations", "kk_max_iteration",
                     "kk_max_inner_iteration", "finetune_max_steps"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                errors.append(f"{name} must be a non-negative integer, got {value!r}")
        return errors

    def ensure_valid(self) -> "LayoutOptions":
        errors = self.validate()
        if errors:
            raise ValueError("Invalid layout options: " + "; ".join(errors))
        return self

    def with_overrides(self, **overrides: Any) -> "LayoutOptions":
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"unknown layout option(s): {', '.join(sorted(unknown))}")
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "LayoutOptions":
        return cls().with_overrides(**payload)
