"""Reader for the SMILES line notation.

Builds a :class:`~molscape.molecule.MolGraph` whose neighbour lists follow
the order chirality markers refer to: preceding atom, implicit hydrogen,
ring closures in the order written, then branches and the chain.

Supported: the organic subset, bracket atoms (isotope, chirality, hydrogen
count, charge, class), branches, ring bonds including ``%nn``, and the
bond symbols ``- = # $ : / \\ .``.  Lower-case atoms are aromatic.
Chiral bracket atoms with hydrogens get explicit hydrogen vertices so the
stereo engine can rank and draw them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .models import ATOMIC_NUMBERS, Atom, Bracket
from .molecule import MolGraph


class SmilesSyntaxError(ValueError):
    """Raised for malformed SMILES; *position* is the offending index."""

    def __init__(self, message: str, smiles: str, position: int) -> None:
        super().__init__(f"{message} at position {position} in {smiles!r}")
        self.smiles = smiles
        self.position = position


_ORGANIC = ("Cl", "Br", "B", "C", "N", "O", "P", "S", "F", "I")
_AROMATIC_ORGANIC = ("b", "c", "n", "o", "p", "s")
_AROMATIC_BRACKET = ("se", "as", "te", "b", "c", "n", "o", "p", "s")
_BOND_SYMBOLS = "-=#$:/\\."

_BRACKET_RE = re.compile(
    r"""
    \[
    (?P<isotope>\d+)?
    (?P<symbol>\*|se|as|te|[bcnops]|[A-Z][a-z]?)
    (?P<chirality>@@|@(?:TH[12]|AL[12]|SP[123]|TB\d{1,2}|OH\d{1,2})?)?
    (?P<hcount>H\d*)?
    (?P<charge>\+\+|--|[+-]\d*)?
    (?::(?P<cls>\d+))?
    \]
    """,
    re.VERBOSE,
)


@dataclass
class _OpenRing:
    vertex_id: int
    bond: Optional[str]
    slot: int
    position: int


@dataclass
class _Closure:
    source_id: int
    target_id: int
    bond: str
    stereo_source_id: int


def parse_smiles(smiles: str) -> MolGraph:
    """Parse *smiles* into a :class:`MolGraph`.

    Raises :class:`SmilesSyntaxError` on malformed input.
    """
    smiles = smiles.strip()
    if not smiles:
        raise SmilesSyntaxError("empty SMILES", smiles, 0)

    graph = MolGraph(metadata={"smiles": smiles})
    open_rings: Dict[int, _OpenRing] = {}
    closures: List[_Closure] = []
    branch_stack: List[int] = []
    prev: Optional[int] = None
    pending_bond: Optional[str] = None
    pending_bond_pos = 0
    branch_start = False
    pos = 0
    n = len(smiles)

    while pos < n:
        ch = smiles[pos]

        if ch in _BOND_SYMBOLS:
            if pending_bond is not None:
                raise SmilesSyntaxError("two consecutive bond symbols", smiles, pos)
            if prev is None:
                raise SmilesSyntaxError("bond without a preceding atom", smiles, pos)
            pending_bond = "-" if ch == ":" else ch
            pending_bond_pos = pos
            pos += 1
            continue

        if ch == "(":
            if prev is None or pending_bond is not None:
                raise SmilesSyntaxError("unexpected branch", smiles, pos)
            branch_stack.append(prev)
            branch_start = True
            pos += 1
            continue

        if ch == ")":
            if not branch_stack or pending_bond is not None or branch_start:
                raise SmilesSyntaxError("unbalanced or empty branch", smiles, pos)
            prev = branch_stack.pop()
            pos += 1
            continue

        if ch.isdigit() or ch == "%":
            if prev is None:
                raise SmilesSyntaxError("ring bond without an atom", smiles, pos)
            number, pos = _read_ring_number(smiles, pos)
            _ring_bond(graph, open_rings, closures, prev, number, pending_bond, pos, smiles)
            pending_bond = None
            continue

        if ch == "[":
            atom, pos = _read_bracket_atom(smiles, pos)
        else:
            atom, pos = _read_organic_atom(smiles, pos)

        bond = pending_bond or "-"
        if branch_start:
            atom.branch_bond = pending_bond
        vertex = graph.add_vertex(atom, parent_id=prev)
        if prev is not None:
            graph.add_edge(prev, vertex.id, bond, stereo_source_id=prev)
        elif pending_bond is not None:
            raise SmilesSyntaxError("dangling bond", smiles, pending_bond_pos)

        if atom.is_stereo_center and atom.bracket is not None:
            for _ in range(atom.bracket.hcount):
                hydrogen = graph.add_vertex(Atom(element="H"), parent_id=vertex.id)
                graph.add_edge(vertex.id, hydrogen.id, "-", stereo_source_id=vertex.id)

        prev = vertex.id
        pending_bond = None
        branch_start = False

    if pending_bond is not None:
        raise SmilesSyntaxError("dangling bond", smiles, pending_bond_pos)
    if branch_stack:
        raise SmilesSyntaxError("unclosed branch", smiles, n)
    if open_rings:
        first = min(open_rings.values(), key=lambda r: r.position)
        raise SmilesSyntaxError("unclosed ring bond", smiles, first.position)

    for closure in closures:
        graph.add_edge(
            closure.source_id,
            closure.target_id,
            closure.bond,
            stereo_source_id=closure.stereo_source_id,
            update_neighbours=False,
        )
    return graph


def _read_ring_number(smiles: str, pos: int) -> Tuple[int, int]:
    if smiles[pos] == "%":
        digits = smiles[pos + 1:pos + 3]
        if len(digits) != 2 or not digits.isdigit():
            raise SmilesSyntaxError("'%' must be followed by two digits", smiles, pos)
        return int(digits), pos + 3
    return int(smiles[pos]), pos + 1


def _ring_bond(
    graph: MolGraph,
    open_rings: Dict[int, _OpenRing],
    closures: List[_Closure],
    vertex_id: int,
    number: int,
    bond: Optional[str],
    pos: int,
    smiles: str,
) -> None:
    vertex = graph.vertices[vertex_id]
    if number not in open_rings:
        # Reserve the neighbour slot; it is filled when the ring closes.
        vertex.neighbours.append(-1)
        open_rings[number] = _OpenRing(vertex_id, bond, len(vertex.neighbours) - 1, pos)
        return

    opening = open_rings.pop(number)
    if opening.vertex_id == vertex_id:
        raise SmilesSyntaxError("ring bond to itself", smiles, pos)
    if opening.vertex_id in vertex.neighbours:
        raise SmilesSyntaxError("ring bond duplicates an existing bond", smiles, pos)
    if bond is not None and opening.bond is not None and bond != opening.bond:
        if bond not in "/\\" or opening.bond not in "/\\":
            raise SmilesSyntaxError("conflicting ring bond symbols", smiles, pos)

    if opening.bond is not None:
        symbol, stereo_source = opening.bond, opening.vertex_id
    elif bond is not None:
        symbol, stereo_source = bond, vertex_id
    else:
        symbol, stereo_source = "-", vertex_id

    graph.vertices[opening.vertex_id].neighbours[opening.slot] = vertex_id
    vertex.neighbours.append(opening.vertex_id)
    closures.append(_Closure(vertex_id, opening.vertex_id, symbol, stereo_source))


def _read_organic_atom(smiles: str, pos: int) -> Tuple[Atom, int]:
    if smiles[pos] == "*":
        return Atom(element="*"), pos + 1
    for symbol in _ORGANIC:
        if smiles.startswith(symbol, pos):
            return Atom(element=symbol), pos + len(symbol)
    if smiles[pos] in _AROMATIC_ORGANIC:
        return Atom(element=smiles[pos].upper(), aromatic=True), pos + 1
    raise SmilesSyntaxError(f"unexpected character {smiles[pos]!r}", smiles, pos)


def _read_bracket_atom(smiles: str, pos: int) -> Tuple[Atom, int]:
    match = _BRACKET_RE.match(smiles, pos)
    if match is None:
        raise SmilesSyntaxError("malformed bracket atom", smiles, pos)

    symbol = match.group("symbol")
    aromatic = symbol in _AROMATIC_BRACKET
    element = symbol.capitalize() if aromatic else symbol
    if element != "*" and element not in ATOMIC_NUMBERS:
        raise SmilesSyntaxError(f"unknown element {symbol!r}", smiles, pos)

    hcount_text = match.group("hcount")
    hcount = 0
    if hcount_text:
        hcount = int(hcount_text[1:]) if len(hcount_text) > 1 else 1

    bracket = Bracket(
        hcount=hcount,
        charge=_parse_charge(match.group("charge")),
        isotope=int(match.group("isotope")) if match.group("isotope") else None,
        chirality=_normalise_chirality(match.group("chirality")),
        atom_class=int(match.group("cls")) if match.group("cls") else None,
    )
    atom = Atom(
        element=element,
        aromatic=aromatic,
        bracket=bracket,
        is_stereo_center=bracket.chirality is not None,
    )
    return atom, match.end()


def _parse_charge(text: Optional[str]) -> int:
    if not text:
        return 0
    if text == "++":
        return 2
    if text == "--":
        return -2
    sign = 1 if text[0] == "+" else -1
    return sign * (int(text[1:]) if len(text) > 1 else 1)


def _normalise_chirality(text: Optional[str]) -> Optional[str]:
    if text in ("@", "@TH1"):
        return "@"
    if text in ("@@", "@TH2"):
        return "@@"
    return None
