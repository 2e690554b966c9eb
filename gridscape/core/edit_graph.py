"""Session-scoped edit graph.

Each node is one version of the text; each successful rewrite adds a child
node and an edge from its parent. Edits are ticketed per node so that a late
response for a superseded or cancelled edit is dropped instead of applied.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Mapping

SEED_NODE_ID = "seed"


@dataclass(slots=True)
class GraphNode:
    id: str
    text: str
    reason: str = ""
    parent_id: str | None = None
    mode: str | None = None
    previous_text: str | None = None


@dataclass(slots=True)
class GraphEdge:
    source: str
    target: str
    mode: str


@dataclass(frozen=True, slots=True)
class EditTicket:
    node_id: str
    mode: str
    generation: int


@dataclass(slots=True)
class EditGraph:
    seed_text: str
    nodes: dict[str, GraphNode] = field(default_factory=dict)
    edges: list[GraphEdge] = field(default_factory=list)
    _generations: dict[str, int] = field(default_factory=dict)
    _ids: Any = field(default_factory=lambda: itertools.count(1))

    def __post_init__(self) -> None:
        if not self.nodes:
            self.nodes[SEED_NODE_ID] = GraphNode(id=SEED_NODE_ID, text=self.seed_text)

    def begin_edit(self, node_id: str, mode: str) -> EditTicket:
        if node_id not in self.nodes:
            raise KeyError(f"unknown node: {node_id}")
        generation = self._generations.get(node_id, 0) + 1
        self._generations[node_id] = generation
        return EditTicket(node_id=node_id, mode=mode, generation=generation)

    def is_current(self, ticket: EditTicket) -> bool:
        return ticket.node_id in self.nodes and self._generations.get(ticket.node_id) == ticket.generation

    def cancel(self, node_id: str) -> None:
        """Invalidate any in-flight edit on *node_id*."""
        if node_id in self._generations:
            self._generations[node_id] += 1

    def fail(self, ticket: EditTicket) -> None:
        # parent stays unchanged; the same action can be retried with a new ticket
        if self.is_current(ticket):
            self._generations[ticket.node_id] += 1

    def apply(self, ticket: EditTicket, result: Mapping[str, Any]) -> GraphNode | None:
        if not self.is_current(ticket):
            return None
        parent = self.nodes[ticket.node_id]
        node = GraphNode(
            id=f"n{next(self._ids)}",
            text=str(result["text"]),
            reason=str(result.get("reason", "")),
            parent_id=parent.id,
            mode=ticket.mode,
            previous_text=parent.text,
        )
        self.nodes[node.id] = node
        self.edges.append(GraphEdge(source=parent.id, target=node.id, mode=ticket.mode))
        self._generations[ticket.node_id] += 1
        return node

    def children(self, node_id: str) -> list[GraphNode]:
        return [self.nodes[edge.target] for edge in self.edges if edge.source == node_id]

    def clear(self) -> None:
        self.nodes = {SEED_NODE_ID: GraphNode(id=SEED_NODE_ID, text=self.seed_text)}
        self.edges = []
        self._generations = {}
        self._ids = itertools.count(1)
