"""Mutable state owned by one depiction run."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import Ring, RingConnection
from .molecule import MolGraph
from .options import LayoutOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RingSnapshot:
    """Deep copy of the ring bookkeeping taken before bridged rings are merged."""

    rings: Tuple[Ring, ...]
    connections: Tuple[RingConnection, ...]
    vertex_rings: Tuple[Tuple[int, ...], ...]


@dataclass
class LayoutState:
    """Everything a pipeline run mutates.

    One instance per molecule; stages receive it explicitly and there is no
    module-level state, so separate runs never interfere.
    """

    graph: MolGraph
    options: LayoutOptions = field(default_factory=LayoutOptions)
    rings: List[Ring] = field(default_factory=list)
    ring_connections: List[RingConnection] = field(default_factory=list)
    snapshot: Optional[RingSnapshot] = None
    ring_id_counter: int = 0
    ring_connection_id_counter: int = 0
    total_overlap_score: float = 0.0
    double_bond_config: Optional[str] = None
    double_bond_config_count: int = 0
    stereo_sequences: Dict[int, int] = field(default_factory=dict)
    fixed_stereo_bonds: List[int] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    # ── ring registry ───────────────────────────────────────────────

    def add_ring(self, ring: Ring) -> int:
        ring.id = self.ring_id_counter
        self.ring_id_counter += 1
        self.rings.append(ring)
        return ring.id

    def get_ring(self, ring_id: int) -> Ring:
        for ring in self.rings:
            if ring.id == ring_id:
                return ring
        raise KeyError(f"no ring with id {ring_id}")

    def find_ring(self, ring_id: int) -> Optional[Ring]:
        for ring in self.rings:
            if ring.id == ring_id:
                return ring
        return None

    def remove_ring(self, ring_id: int) -> None:
        """Drop a ring together with its connections and neighbour references."""
        self.rings = [r for r in self.rings if r.id != ring_id]
        self.ring_connections = [
            c for c in self.ring_connections if not c.contains_ring(ring_id)
        ]
        for ring in self.rings:
            ring.neighbours = [n for n in ring.neighbours if n != ring_id]

    def add_ring_connection(self, connection: RingConnection) -> int:
        connection.id = self.ring_connection_id_counter
        self.ring_connection_id_counter += 1
        self.ring_connections.append(connection)
        return connection.id

    def get_ring_connection(self, connection_id: int) -> RingConnection:
        for connection in self.ring_connections:
            if connection.id == connection_id:
                return connection
        raise KeyError(f"no ring connection with id {connection_id}")

    def remove_ring_connections_between(self, ring_a: int, ring_b: int) -> None:
        self.ring_connections = [
            c for c in self.ring_connections
            if not (c.contains_ring(ring_a) and c.contains_ring(ring_b))
        ]

    def ring_connections_to(self, ring_id: int, ring_ids: List[int]) -> List[int]:
        """Ids of connections linking *ring_id* to any of *ring_ids*."""
        result = []
        for connection in self.ring_connections:
            for other in ring_ids:
                if connection.contains_ring(ring_id) and connection.contains_ring(other):
                    result.append(connection.id)
        return result

    def bridged_rings(self) -> List[Ring]:
        return [r for r in self.rings if r.is_bridged]

    # ── diagnostics ─────────────────────────────────────────────────

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)
