"""
Directed, weighted graph abstraction for netripple.

Nodes are identified by their string id. Each ``up`` link contributes two
directed edges that carry their own weight, so A -> B and B -> A may cost
different amounts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Sequence

from .topology import Link, Node, UnknownNodeError, validate_topology


class Direction(Enum):
    FORWARD = "forward"  # endpoint_a -> endpoint_b
    REVERSE = "reverse"  # endpoint_b -> endpoint_a


@dataclass(frozen=True)
class DirectedEdge:
    source: str
    target: str
    weight: float
    stable_index: int
    direction: Direction


class Graph(ABC):
    """Directed, weighted graph over node ids."""

    @abstractmethod
    def nodes(self) -> Iterable[str]:
        """Return all node ids in the graph."""
        raise NotImplementedError

    @abstractmethod
    def outgoing(self, node_id: str) -> Sequence[DirectedEdge]:
        """
        Outgoing edges for a given node, in link order.

        Raises UnknownNodeError for ids that are not in the graph.
        """
        raise NotImplementedError

    def has_node(self, node_id: str) -> bool:
        return node_id in set(self.nodes())


class AdjacencyListGraph(Graph):
    """
    Directed, weighted graph backed by a node -> [edge, ...] mapping.

    Parallel links between the same pair are kept as separate edges since
    each has its own stable index.
    """

    def __init__(self) -> None:
        self._adj: Dict[str, List[DirectedEdge]] = {}

    # --- Mutation API (builder/test only, not part of Graph interface) ------

    def add_node(self, node_id: str) -> None:
        """Ensure node exists in the graph."""
        self._adj.setdefault(node_id, [])

    def add_edge(self, edge: DirectedEdge) -> None:
        """
        Append a directed edge. Auto-adds nodes if they don't exist.
        """
        self.add_node(edge.source)
        self.add_node(edge.target)
        self._adj[edge.source].append(edge)

    # --- Graph interface -----------------------------------------------------

    def nodes(self) -> Iterable[str]:
        return self._adj.keys()

    def has_node(self, node_id: str) -> bool:
        return node_id in self._adj

    def outgoing(self, node_id: str) -> Sequence[DirectedEdge]:
        try:
            return tuple(self._adj[node_id])
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._adj.values())


def build_graph(nodes: Iterable[Node], links: Iterable[Link]) -> AdjacencyListGraph:
    """
    Build the directed graph for a node/link list.

    The topology is validated first (see ``validate_topology``). Links in
    ``down`` status add no edges in either direction.
    """
    nodes = tuple(nodes)
    links = tuple(links)
    validate_topology(nodes, links)

    g = AdjacencyListGraph()
    for node in nodes:
        g.add_node(node.id)

    for link in links:
        if not link.is_up:
            continue
        g.add_edge(
            DirectedEdge(
                source=link.endpoint_a,
                target=link.endpoint_b,
                weight=link.forward_cost,
                stable_index=link.stable_index,
                direction=Direction.FORWARD,
            )
        )
        g.add_edge(
            DirectedEdge(
                source=link.endpoint_b,
                target=link.endpoint_a,
                weight=link.reverse_cost,
                stable_index=link.stable_index,
                direction=Direction.REVERSE,
            )
        )
    return g
