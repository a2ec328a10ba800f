"""Depiction pipeline — composable, ordered layout stages.

:class:`DepictionPipeline` runs a list of :class:`DepictionStep` objects
against one :class:`~molscape.state.LayoutState`.  The default step list
is the hard-ordered layout sequence; :func:`layout_molecule` is the
one-call entry point.

Usage
-----
>>> from molscape import parse_smiles, layout_molecule
>>> result = layout_molecule(parse_smiles("CC(=O)O"))
>>> len(result.snapshot["vertices"])
4
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from .bridged import process_bridged_rings
from .cis_trans import build_metadata, correct_orientations
from .export import export_snapshot
from .molecule import MolGraph
from .options import LayoutOptions
from .overlap import resolve_overlaps
from .positioning import position
from .ring_manager import init_rings, restore_ring_information
from .state import LayoutState
from .stereo import assign_wedges, init_hydrogens
from .transforms import rotate_drawing

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
# Step protocol
# ═══════════════════════════════════════════════════════════════════


@dataclass
class StepResult:
    """Optional return value from a step, carrying artefacts."""

    artefacts: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class DepictionStep(Protocol):
    """Anything with a ``name`` that mutates a :class:`LayoutState` when called."""

    @property
    def name(self) -> str:
        ...

    def __call__(self, state: LayoutState) -> Optional[StepResult]:
        ...


# ═══════════════════════════════════════════════════════════════════
# Pipeline
# ═══════════════════════════════════════════════════════════════════

Hook = Callable[[str, int, int], None]
"""Signature for before/after hooks: ``(step_name, step_index, total_steps)``."""


@dataclass
class PipelineResult:
    """Aggregate result of running a pipeline.

    Attributes
    ----------
    step_results : dict[str, StepResult]
        ``step.name → StepResult`` for every step that returned one.
    elapsed : dict[str, float]
        ``step.name → seconds`` of wall-clock time per step.
    """

    step_results: Dict[str, StepResult] = field(default_factory=dict)
    elapsed: Dict[str, float] = field(default_factory=dict)

    def artefact(self, step_name: str, key: str) -> Any:
        """Raises ``KeyError`` if the step or key is not present."""
        return self.step_results[step_name].artefacts[key]


class DepictionPipeline:
    """Ordered sequence of :class:`DepictionStep` instances.

    Parameters
    ----------
    steps : list[DepictionStep] | None
        Steps to execute in order; defaults to :func:`default_steps`.
    before, after : Hook | None
        Called around each step.
    """

    def __init__(
        self,
        steps: Optional[List[DepictionStep]] = None,
        *,
        before: Optional[Hook] = None,
        after: Optional[Hook] = None,
    ) -> None:
        self._steps: List[DepictionStep] = list(default_steps() if steps is None else steps)
        self._before = before
        self._after = after

    def add(self, step: DepictionStep) -> "DepictionPipeline":
        self._steps.append(step)
        return self

    def run(self, state: LayoutState) -> PipelineResult:
        """Execute all steps in order against *state*."""
        result = PipelineResult()
        total = len(self._steps)

        for idx, step in enumerate(self._steps):
            sname = step.name
            if self._before:
                self._before(sname, idx, total)

            t0 = time.perf_counter()
            step_result = step(state)
            dt = time.perf_counter() - t0
            logger.debug("Step %s took %.4fs", sname, dt)

            result.elapsed[sname] = dt
            if step_result is not None:
                result.step_results[sname] = step_result

            if self._after:
                self._after(sname, idx, total)

        return result

    @property
    def step_names(self) -> List[str]:
        return [s.name for s in self._steps]

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"DepictionPipeline([{', '.join(self.step_names)}])"


# ═══════════════════════════════════════════════════════════════════
# Built-in steps
# ═══════════════════════════════════════════════════════════════════


class RingStep:
    """Perceive rings, merge bridged systems and decide hydrogen visibility."""

    name = "rings"

    def __call__(self, state: LayoutState) -> Optional[StepResult]:
        init_rings(state)
        bridged = process_bridged_rings(state)
        hidden = init_hydrogens(state)
        return StepResult(artefacts={
            "rings": len(state.snapshot.rings) if state.snapshot else 0,
            "bridged": bridged,
            "hidden_hydrogens": hidden,
        })


class PositioningStep:
    name = "positioning"

    def __call__(self, state: LayoutState) -> Optional[StepResult]:
        position(state)
        return None


class RestoreStep:
    name = "restore"

    def __call__(self, state: LayoutState) -> Optional[StepResult]:
        restore_ring_information(state)
        return None


class OverlapStep:
    name = "overlap"

    def __call__(self, state: LayoutState) -> Optional[StepResult]:
        score = resolve_overlaps(state)
        return StepResult(artefacts={"total": score.total})


class WedgeStep:
    """Assign wedges; skipped unless ``options.isomeric``."""

    name = "wedges"

    def __call__(self, state: LayoutState) -> Optional[StepResult]:
        if not state.options.isomeric:
            return None
        return StepResult(artefacts={"stereocentres": assign_wedges(state)})


class CisTransStep:
    """Correct double-bond geometry; skipped unless ``options.isomeric``."""

    name = "cis_trans"

    def __call__(self, state: LayoutState) -> Optional[StepResult]:
        if not state.options.isomeric:
            return None
        found = build_metadata(state)
        fixed = correct_orientations(state)
        return StepResult(artefacts={"stereobonds": found, "fixed": fixed})


class RotationStep:
    """Level the drawing; skipped unless ``options.rotate_drawing``."""

    name = "rotation"

    def __call__(self, state: LayoutState) -> Optional[StepResult]:
        if not state.options.rotate_drawing:
            return None
        return StepResult(artefacts={"angle": rotate_drawing(state)})


def default_steps() -> List[DepictionStep]:
    return [
        RingStep(),
        PositioningStep(),
        RestoreStep(),
        OverlapStep(),
        WedgeStep(),
        CisTransStep(),
        RotationStep(),
    ]


# ═══════════════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════════════


@dataclass
class DepictionResult:
    """Outcome of :func:`layout_molecule`.

    Attributes
    ----------
    state : LayoutState
        Final mutable state, including the laid-out graph and rings.
    snapshot : dict
        Export of the final state, see :func:`molscape.export.export_snapshot`.
    pipeline : PipelineResult
        Per-step artefacts and timings.
    """

    state: LayoutState
    snapshot: Dict[str, Any]
    pipeline: PipelineResult

    @property
    def warnings(self) -> List[str]:
        return list(self.state.warnings)


def layout_molecule(
    graph: MolGraph,
    options: Optional[LayoutOptions] = None,
    pipeline: Optional[DepictionPipeline] = None,
) -> DepictionResult:
    """Lay out *graph* in place and return the result with its snapshot.

    Raises
    ------
    ValueError
        If *options* are invalid or *graph* is structurally inconsistent.
    """
    options = (options or LayoutOptions()).ensure_valid()
    errors = graph.validate()
    if errors:
        raise ValueError("Invalid molecule graph: " + "; ".join(errors))

    state = LayoutState(graph=graph, options=options)
    pipe = pipeline or DepictionPipeline()
    result = pipe.run(state)
    logger.debug("Laid out %d atoms in %.4fs", len(graph), sum(result.elapsed.values()))
    return DepictionResult(state, export_snapshot(state), result)
