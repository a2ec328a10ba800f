from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .geometry import Vector2, central_angle


_ELEMENT_SYMBOLS = (
    "H He Li Be B C N O F Ne Na Mg Al Si P S Cl Ar K Ca Sc Ti V Cr Mn Fe "
    "Co Ni Cu Zn Ga Ge As Se Br Kr Rb Sr Y Zr Nb Mo Tc Ru Rh Pd Ag Cd In "
    "Sn Sb Te I Xe Cs Ba La Ce Pr Nd Pm Sm Eu Gd Tb Dy Ho Er Tm Yb Lu Hf "
    "Ta W Re Os Ir Pt Au Hg Tl Pb Bi Po At Rn Fr Ra Ac Th Pa U Np Pu Am Cm "
    "Bk Cf Es Fm Md No Lr Rf Db Sg Bh Hs Mt Ds Rg Cn Nh Fl Mc Lv Ts Og"
).split()

ATOMIC_NUMBERS: Dict[str, int] = {
    symbol: number for number, symbol in enumerate(_ELEMENT_SYMBOLS, start=1)
}

# Default valences used to pad implicit hydrogens during priority ranking.
MAX_BONDS: Dict[str, int] = {
    "H": 1, "C": 4, "N": 3, "O": 2, "P": 3, "S": 2,
    "B": 3, "F": 1, "I": 1, "Cl": 1, "Br": 1,
}

BOND_WEIGHTS: Dict[str, int] = {
    ".": 0,
    "-": 1,
    "/": 1,
    "\\": 1,
    "=": 2,
    "#": 3,
    "$": 4,
}

DIRECTIONAL_BONDS = ("/", "\\")


@dataclass
class Bracket:
    """Data carried by a bracket atom such as ``[13CH2+:1]``."""

    hcount: int = 0
    charge: int = 0
    isotope: Optional[int] = None
    chirality: Optional[str] = None
    atom_class: Optional[int] = None


@dataclass
class Atom:
    element: str
    aromatic: bool = False
    bracket: Optional[Bracket] = None
    branch_bond: Optional[str] = None

    rings: List[int] = field(default_factory=list)
    original_rings: List[int] = field(default_factory=list)
    bridged_ring: Optional[int] = None
    anchored_rings: List[int] = field(default_factory=list)

    is_drawn: bool = True
    draw_explicit: bool = False
    is_stereo_center: bool = False
    has_hydrogen: bool = False
    is_connected_to_ring: bool = False
    is_bridge: bool = False
    is_bridge_node: bool = False

    priority: List[int] = field(default_factory=list)
    subtree_depth: int = 1
    hydrogen_direction: str = "down"
    chirality: Optional[str] = None

    @property
    def atomic_number(self) -> int:
        return ATOMIC_NUMBERS.get(self.element, 0)

    @property
    def max_bonds(self) -> Optional[int]:
        return MAX_BONDS.get(self.element)

    @property
    def chirality_marker(self) -> Optional[str]:
        return self.bracket.chirality if self.bracket else None

    def is_hetero_atom(self) -> bool:
        return self.element not in ("C", "H")

    def add_anchored_ring(self, ring_id: int) -> None:
        if ring_id not in self.anchored_rings:
            self.anchored_rings.append(ring_id)

    def backup_rings(self) -> None:
        self.original_rings = list(self.rings)

    def restore_rings(self) -> None:
        self.rings = list(self.original_rings)


@dataclass
class Vertex:
    """One atom placed in the plane.

    *neighbours* keeps input order (parent, hydrogens, ring closures,
    branches, chain), which is also the order chirality markers refer to.
    *parent_id* / *children* describe the spanning tree of the input.
    """

    id: int
    atom: Atom
    position: Vector2 = field(default_factory=Vector2)
    previous_position: Vector2 = field(default_factory=Vector2)
    angle: Optional[float] = None
    positioned: bool = False
    force_positioned: bool = False
    parent_id: Optional[int] = None
    children: List[int] = field(default_factory=list)
    neighbours: List[int] = field(default_factory=list)

    def neighbours_except(self, vertex_id: Optional[int]) -> List[int]:
        return [n for n in self.neighbours if n != vertex_id]

    def spanning_tree_neighbours(self, vertex_id: Optional[int] = None) -> List[int]:
        result = [c for c in self.children if c != vertex_id]
        if self.parent_id is not None and self.parent_id != vertex_id:
            result.append(self.parent_id)
        return result

    def is_terminal(self) -> bool:
        return len(self.neighbours) <= 1

    def incoming_angle(self) -> float:
        """Direction of the bond leading into this vertex."""
        return Vector2(
            self.position.x - self.previous_position.x,
            self.position.y - self.previous_position.y,
        ).angle()

    def set_position(self, x: float, y: float) -> None:
        self.position.set(x, y)


@dataclass
class Edge:
    id: int
    source_id: int
    target_id: int
    bond_type: str = "-"
    weight: int = 1
    wedge: Optional[str] = None
    center: bool = False
    stereo_symbol: Optional[str] = None
    stereo_source_id: Optional[int] = None
    is_part_of_aromatic_ring: bool = False
    cis_trans: bool = False
    cis_trans_neighbours: Dict[int, Dict[int, str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.set_bond_type(self.bond_type, self.stereo_source_id)

    def set_bond_type(self, bond_type: str, stereo_source_id: Optional[int] = None) -> None:
        if bond_type not in BOND_WEIGHTS:
            raise ValueError(f"unknown bond type {bond_type!r}")
        self.bond_type = bond_type
        self.weight = BOND_WEIGHTS[bond_type]
        if bond_type in DIRECTIONAL_BONDS:
            self.stereo_symbol = bond_type
            self.stereo_source_id = (
                stereo_source_id if stereo_source_id is not None else self.source_id
            )
        else:
            self.stereo_symbol = None
            self.stereo_source_id = None

    def other(self, vertex_id: int) -> int:
        return self.target_id if vertex_id == self.source_id else self.source_id

    def connects(self, a: int, b: int) -> bool:
        return {a, b} == {self.source_id, self.target_id}


@dataclass
class Ring:
    id: int
    members: List[int]
    neighbours: List[int] = field(default_factory=list)
    center: Vector2 = field(default_factory=Vector2)
    positioned: bool = False
    is_fused: bool = False
    is_spiro: bool = False
    is_bridged: bool = False
    is_part_of_bridged: bool = False
    rings: List["Ring"] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.members)

    def central_angle(self) -> float:
        return central_angle(self.size)

    def interior_angle(self) -> float:
        """Interior angle of the regular polygon for this ring."""
        return math.pi - self.central_angle()

    def clone(self) -> "Ring":
        return Ring(
            id=self.id,
            members=list(self.members),
            neighbours=list(self.neighbours),
            center=self.center.clone(),
            positioned=self.positioned,
            is_fused=self.is_fused,
            is_spiro=self.is_spiro,
            is_bridged=self.is_bridged,
            is_part_of_bridged=self.is_part_of_bridged,
            rings=[r.clone() for r in self.rings],
        )


@dataclass
class RingConnection:
    id: int
    first_ring_id: int
    second_ring_id: int
    vertices: List[int] = field(default_factory=list)

    def contains_ring(self, ring_id: int) -> bool:
        return ring_id in (self.first_ring_id, self.second_ring_id)

    def update_other(self, ring_id: int, other_id: int) -> None:
        """Replace the ring that is not *other_id* with *ring_id*."""
        if self.first_ring_id == other_id:
            self.second_ring_id = ring_id
        else:
            self.first_ring_id = ring_id

    def clone(self) -> "RingConnection":
        return RingConnection(
            id=self.id,
            first_ring_id=self.first_ring_id,
            second_ring_id=self.second_ring_id,
            vertices=list(self.vertices),
        )
