"""Ring perception on a :class:`~molscape.molecule.MolGraph`.

The smallest set of smallest rings is taken from networkx's minimum cycle
basis; each cycle is then re-ordered so that consecutive members are
bonded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence, Set

import networkx as nx

if TYPE_CHECKING:
    from .molecule import MolGraph


def to_networkx(graph: "MolGraph") -> nx.Graph:
    """Undirected networkx view of *graph*; nodes are vertex ids."""
    g = nx.Graph()
    g.add_nodes_from(v.id for v in graph.vertices)
    g.add_edges_from((e.source_id, e.target_id) for e in graph.edges)
    return g


def find_rings(graph: "MolGraph") -> List[List[int]]:
    """Return the ring set as lists of vertex ids in bond order.

    Rings are sorted by their sorted member ids so repeated runs agree.
    Each ring starts at its smallest id and proceeds toward the smaller
    of that vertex's two ring neighbours.
    """
    if not graph.edges:
        return []
    basis = nx.minimum_cycle_basis(to_networkx(graph))
    rings = [order_cycle(graph, cycle) for cycle in basis]
    rings.sort(key=sorted)
    return rings


def order_cycle(graph: "MolGraph", members: Sequence[int]) -> List[int]:
    """Order an unordered cycle so that consecutive members share a bond.

    Backtracks over chords; the walk starts at the smallest id and prefers
    smaller neighbour ids.
    """
    member_set: Set[int] = set(members)
    size = len(member_set)
    start = min(member_set)

    def ring_neighbours(vid: int) -> List[int]:
        return sorted(n for n in graph.vertices[vid].neighbours if n in member_set)

    path = [start]
    on_path = {start}
    iterators = [iter(ring_neighbours(start))]
    while iterators:
        for candidate in iterators[-1]:
            if candidate in on_path:
                continue
            path.append(candidate)
            on_path.add(candidate)
            iterators.append(iter(ring_neighbours(candidate)))
            break
        else:
            on_path.discard(path.pop())
            iterators.pop()
            continue
        if len(path) == size and start in ring_neighbours(path[-1]):
            return path
    raise ValueError(f"vertices {sorted(member_set)} do not form a cycle")


def aromatic_rings(graph: "MolGraph", rings: Sequence[Sequence[int]]) -> List[List[int]]:
    """Rings whose members are all aromatic atoms."""
    return [
        list(ring) for ring in rings
        if all(graph.vertices[vid].atom.aromatic for vid in ring)
    ]
