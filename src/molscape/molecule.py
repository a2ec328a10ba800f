from __future__ import annotations

import json
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Atom, Bracket, Edge, Vertex


class MolGraph:
    """Atom/bond container handed from the reader to the layout engine.

    Vertex and edge ids are dense indices into :attr:`vertices` and
    :attr:`edges`.  Neighbour lists are kept in input order.
    """

    VERSION = "1.0"

    def __init__(
        self,
        vertices: Optional[Iterable[Vertex]] = None,
        edges: Optional[Iterable[Edge]] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        self.vertices: List[Vertex] = []
        self.edges: List[Edge] = []
        self._edge_lookup: Dict[Tuple[int, int], int] = {}
        self.metadata = metadata or {}
        for vertex in vertices or []:
            if vertex.id != len(self.vertices):
                raise ValueError(f"vertex ids must be dense, got {vertex.id} at {len(self.vertices)}")
            self.vertices.append(vertex)
        for edge in edges or []:
            self._register_edge(edge)

    # ── construction ────────────────────────────────────────────────

    def add_vertex(self, atom: Atom, parent_id: Optional[int] = None) -> Vertex:
        vertex = Vertex(id=len(self.vertices), atom=atom)
        self.vertices.append(vertex)
        if parent_id is not None:
            parent = self.vertices[parent_id]
            vertex.parent_id = parent_id
            parent.children.append(vertex.id)
        return vertex

    def add_edge(
        self,
        source_id: int,
        target_id: int,
        bond_type: str = "-",
        stereo_source_id: Optional[int] = None,
        update_neighbours: bool = True,
    ) -> Edge:
        """Add a bond and, unless told otherwise, extend both neighbour lists."""
        for vid in (source_id, target_id):
            if not 0 <= vid < len(self.vertices):
                raise ValueError(f"unknown vertex id {vid}")
        if source_id == target_id:
            raise ValueError(f"self-loop on vertex {source_id}")
        if self.has_edge(source_id, target_id):
            raise ValueError(f"duplicate bond {source_id}-{target_id}")
        edge = Edge(
            id=len(self.edges),
            source_id=source_id,
            target_id=target_id,
            bond_type=bond_type,
            stereo_source_id=stereo_source_id,
        )
        source = self.vertices[source_id]
        target = self.vertices[target_id]
        edge.is_part_of_aromatic_ring = source.atom.aromatic and target.atom.aromatic
        self._register_edge(edge)
        if update_neighbours:
            source.neighbours.append(target_id)
            target.neighbours.append(source_id)
        return edge

    def _register_edge(self, edge: Edge) -> None:
        if edge.id != len(self.edges):
            raise ValueError(f"edge ids must be dense, got {edge.id} at {len(self.edges)}")
        self.edges.append(edge)
        self._edge_lookup[_key(edge.source_id, edge.target_id)] = edge.id

    # ── queries ─────────────────────────────────────────────────────

    def get_edge(self, a: int, b: int) -> Optional[Edge]:
        edge_id = self._edge_lookup.get(_key(a, b))
        return None if edge_id is None else self.edges[edge_id]

    def has_edge(self, a: int, b: int) -> bool:
        return _key(a, b) in self._edge_lookup

    def edges_of(self, vertex_id: int) -> List[Edge]:
        return [self.get_edge(vertex_id, n) for n in self.vertices[vertex_id].neighbours]

    def drawn_neighbours(self, vertex_id: int, exclude: Iterable[int] = ()) -> List[int]:
        excluded = set(exclude)
        return [
            n
            for n in self.vertices[vertex_id].neighbours
            if n not in excluded and self.vertices[n].atom.is_drawn
        ]

    def element_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for v in self.vertices:
            counts[v.atom.element] = counts.get(v.atom.element, 0) + 1
        return counts

    def __len__(self) -> int:
        return len(self.vertices)

    # ── validation ──────────────────────────────────────────────────

    def validate(self) -> List[str]:
        errors: List[str] = []
        for vertex in self.vertices:
            if len(set(vertex.neighbours)) != len(vertex.neighbours):
                errors.append(f"Vertex {vertex.id} lists a neighbour twice")
            for n in vertex.neighbours:
                if not 0 <= n < len(self.vertices):
                    errors.append(f"Vertex {vertex.id} references unknown vertex {n}")
                elif not self.has_edge(vertex.id, n):
                    errors.append(f"Vertex {vertex.id} lists {n} without a bond")
        for edge in self.edges:
            src = self.vertices[edge.source_id]
            if edge.target_id not in src.neighbours:
                errors.append(f"Edge {edge.id} is missing from neighbour lists")
        return errors

    # ── serialisation ───────────────────────────────────────────────

    def to_dict(self) -> dict:
        vertices_payload = []
        for vertex in self.vertices:
            atom = vertex.atom
            payload = {
                "id": vertex.id,
                "element": atom.element,
                "aromatic": atom.aromatic,
                "neighbours": list(vertex.neighbours),
                "parent": vertex.parent_id,
                "children": list(vertex.children),
            }
            if atom.bracket is not None:
                payload["bracket"] = {
                    "hcount": atom.bracket.hcount,
                    "charge": atom.bracket.charge,
                    "isotope": atom.bracket.isotope,
                    "chirality": atom.bracket.chirality,
                    "class": atom.bracket.atom_class,
                }
            if atom.branch_bond:
                payload["branch_bond"] = atom.branch_bond
            if vertex.positioned:
                payload["position"] = {"x": vertex.position.x, "y": vertex.position.y}
            vertices_payload.append(payload)

        edges_payload = [
            {
                "id": edge.id,
                "source": edge.source_id,
                "target": edge.target_id,
                "bond_type": edge.bond_type,
                "stereo_source": edge.stereo_source_id,
            }
            for edge in self.edges
        ]
        return {
            "version": self.VERSION,
            "metadata": self.metadata,
            "vertices": vertices_payload,
            "edges": edges_payload,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True)

    @classmethod
    def from_dict(cls, payload: dict) -> "MolGraph":
        vertices = []
        for data in payload.get("vertices", []):
            bracket = None
            if data.get("bracket") is not None:
                b = data["bracket"]
                bracket = Bracket(
                    hcount=b.get("hcount", 0),
                    charge=b.get("charge", 0),
                    isotope=b.get("isotope"),
                    chirality=b.get("chirality"),
                    atom_class=b.get("class"),
                )
            atom = Atom(
                element=data["element"],
                aromatic=data.get("aromatic", False),
                bracket=bracket,
                branch_bond=data.get("branch_bond"),
                is_stereo_center=bool(bracket and bracket.chirality),
            )
            vertex = Vertex(
                id=data["id"],
                atom=atom,
                parent_id=data.get("parent"),
                children=list(data.get("children", [])),
                neighbours=list(data.get("neighbours", [])),
            )
            if "position" in data:
                vertex.set_position(data["position"]["x"], data["position"]["y"])
                vertex.positioned = True
            vertices.append(vertex)

        edges = [
            Edge(
                id=data["id"],
                source_id=data["source"],
                target_id=data["target"],
                bond_type=data.get("bond_type", "-"),
                stereo_source_id=data.get("stereo_source"),
            )
            for data in payload.get("edges", [])
        ]
        graph = cls(vertices, edges, metadata=payload.get("metadata", {}))
        for edge in graph.edges:
            edge.is_part_of_aromatic_ring = (
                graph.vertices[edge.source_id].atom.aromatic
                and graph.vertices[edge.target_id].atom.aromatic
            )
        return graph

    @classmethod
    def from_json(cls, json_data: str) -> "MolGraph":
        return cls.from_dict(json.loads(json_data))


def _key(a: int, b: int) -> Tuple[int, int]:
    return (a, b) if a < b else (b, a)
