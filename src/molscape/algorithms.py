from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Set

import numpy as np
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import shortest_path

from .models import Edge

if TYPE_CHECKING:
    from .molecule import MolGraph


def tree_depth(graph: "MolGraph", vertex_id: Optional[int], parent_id: Optional[int]) -> int:
    """Depth of the spanning-tree branch rooted at *vertex_id*, seen from *parent_id*.

    Counts vertices on the longest path away from the parent, so a leaf
    has depth 1.  Returns 0 when either id is ``None``.
    """
    if vertex_id is None or parent_id is None:
        return 0

    deepest = 0
    stack = [(vertex_id, parent_id, 1)]
    while stack:
        current, came_from, depth = stack.pop()
        if depth > deepest:
            deepest = depth
        for child in graph.vertices[current].spanning_tree_neighbours(came_from):
            stack.append((child, current, depth + 1))
    return deepest


def traverse_tree(
    graph: "MolGraph",
    vertex_id: int,
    parent_id: Optional[int],
    max_depth: Optional[int] = None,
    ignore_first: bool = False,
) -> List[int]:
    """Depth-first preorder over all bonds, leaving *vertex_id* away from *parent_id*.

    Each vertex is reported at most once.  The parent is not marked, so a
    ring can lead back to it.
    """
    visited: Set[int] = set()
    order: List[int] = []
    stack = [(vertex_id, parent_id, 1)]
    while stack:
        current, came_from, depth = stack.pop()
        if max_depth is not None and depth > max_depth + 1:
            continue
        if current in visited:
            continue
        visited.add(current)
        if not ignore_first or depth > 1:
            order.append(current)
        neighbours = graph.vertices[current].neighbours_except(came_from)
        for neighbour in reversed(neighbours):
            stack.append((neighbour, current, depth + 1))
    return order


def subgraph_distance_matrix(graph: "MolGraph", vertex_ids: Sequence[int]) -> np.ndarray:
    """Unweighted shortest-path distances restricted to the bonds among *vertex_ids*.

    Row/column ``i`` corresponds to ``vertex_ids[i]``.  Unreachable pairs
    are ``inf``.
    """
    index: Dict[int, int] = {vid: i for i, vid in enumerate(vertex_ids)}
    rows: List[int] = []
    cols: List[int] = []
    for vid in vertex_ids:
        for neighbour in graph.vertices[vid].neighbours:
            j = index.get(neighbour)
            if j is not None:
                rows.append(index[vid])
                cols.append(j)

    n = len(vertex_ids)
    adjacency = csr_matrix((np.ones(len(rows)), (rows, cols)), shape=(n, n))
    return shortest_path(adjacency, method="D", directed=False, unweighted=True)


def shortest_path_edges(graph: "MolGraph", start_id: int, target_id: int) -> List[Edge]:
    """Breadth-first shortest path as a list of edges; empty if unreachable."""
    if start_id == target_id:
        return []

    previous: Dict[int, Optional[int]] = {start_id: None}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        if current == target_id:
            break
        for neighbour in graph.vertices[current].neighbours:
            if neighbour not in previous:
                previous[neighbour] = current
                queue.append(neighbour)

    if target_id not in previous:
        return []

    path: List[Edge] = []
    current = target_id
    while previous[current] is not None:
        parent = previous[current]
        edge = graph.get_edge(parent, current)
        if edge is not None:
            path.append(edge)
        current = parent
    path.reverse()
    return path


def collect_component(
    graph: "MolGraph",
    start_id: int,
    blocked: Iterable[int] = (),
    drawn_only: bool = False,
) -> Set[int]:
    """Vertices reachable from *start_id* without passing through *blocked*."""
    visited = set(blocked)
    if start_id in visited:
        return set()
    component: Set[int] = set()
    stack = [start_id]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        component.add(current)
        if drawn_only:
            neighbours = graph.drawn_neighbours(current)
        else:
            neighbours = graph.vertices[current].neighbours
        for neighbour in neighbours:
            if neighbour not in visited:
                stack.append(neighbour)
    return component


def subgraph_size(graph: "MolGraph", vertex_id: int, blocked: Iterable[int]) -> int:
    """Number of drawn vertices reachable from *vertex_id* around *blocked*."""
    return len(collect_component(graph, vertex_id, blocked, drawn_only=True))


def connected_components(graph: "MolGraph") -> List[List[int]]:
    """Connected components, each sorted, in order of their smallest id."""
    seen: Set[int] = set()
    components: List[List[int]] = []
    for vertex in graph.vertices:
        if vertex.id in seen:
            continue
        component = collect_component(graph, vertex.id)
        seen.update(component)
        components.append(sorted(component))
    return components

