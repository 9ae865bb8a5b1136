"""
Heap-based Dijkstra implementation for netripple.

Uses Python's heapq to compute shortest paths over any Graph implementation
that satisfies the Graph interface. Edge weights are assumed positive, which
build_graph guarantees.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple
import heapq
import math

from .algorithms import ShortestPathEngine
from .graph import DirectedEdge, Graph
from .paths import Path
from .topology import UnknownNodeError


def _require_node(graph: Graph, node_id: str) -> None:
    if not graph.has_node(node_id):
        raise UnknownNodeError(node_id)


class SimpleDijkstraEngine(ShortestPathEngine):
    """
    Single-source Dijkstra using a binary heap.

    Complexity:
        O(E log V) over the nodes reachable from the source.

    Tie-breaking:
        The heap is ordered by (distance, node id), and a predecessor is only
        replaced on a strictly cheaper relaxation. When several minimum-cost
        paths exist, the reported one therefore enters each node through the
        first optimal predecessor settled, with equal-distance nodes settled
        in node id order. The choice is stable across runs.
    """

    def shortest_path_costs(self, graph: Graph, source: str) -> Dict[str, float]:
        """
        Compute only the cost map for all reachable nodes from source.
        """
        dist, _prev = self.shortest_paths(graph, source)
        return dist

    def shortest_paths(
        self, graph: Graph, source: str
    ) -> Tuple[Dict[str, float], Dict[str, DirectedEdge]]:
        """
        Dijkstra variant that also records predecessor edges.

        The predecessor map lets you walk back from any reachable node to the
        source, recovering both the node sequence and the links (with
        direction) that were traversed. It omits the source itself because it
        has no parent. Unreachable nodes appear in neither map.
        """
        _require_node(graph, source)
        dist: Dict[str, float] = {source: 0}
        prev: Dict[str, DirectedEdge] = {}
        pq: List[Tuple[float, str]] = [(0, source)]

        while pq:
            d_u, u = heapq.heappop(pq)
            # Skip outdated entries
            if d_u != dist.get(u, math.inf):
                continue

            for edge in graph.outgoing(u):
                alt = d_u + edge.weight
                if alt < dist.get(edge.target, math.inf):
                    dist[edge.target] = alt
                    prev[edge.target] = edge
                    heapq.heappush(pq, (alt, edge.target))

        return dist, prev

    def shortest_cost(self, graph: Graph, source: str, target: str) -> Optional[float]:
        """
        Point-to-point Dijkstra that stops as soon as target is settled.

        Returns 0 for source == target without traversing, and None when the
        frontier empties before target is reached.
        """
        _require_node(graph, source)
        _require_node(graph, target)
        if source == target:
            return 0

        dist: Dict[str, float] = {source: 0}
        settled = set()
        pq: List[Tuple[float, str]] = [(0, source)]

        while pq:
            d_u, u = heapq.heappop(pq)
            if u in settled:
                continue
            if u == target:
                return d_u
            settled.add(u)

            for edge in graph.outgoing(u):
                if edge.target in settled:
                    continue
                alt = d_u + edge.weight
                if alt < dist.get(edge.target, math.inf):
                    dist[edge.target] = alt
                    heapq.heappush(pq, (alt, edge.target))

        return None

    def shortest_path(self, graph: Graph, source: str, target: str) -> Optional[Path]:
        _require_node(graph, target)
        if source == target:
            _require_node(graph, source)
            return Path.trivial(source)
        _dist, prev = self.shortest_paths(graph, source)
        return path_from_tree(source, target, prev)


def path_from_tree(source: str, target: str, prev: Dict[str, DirectedEdge]) -> Optional[Path]:
    """
    Walk predecessor edges back from target to source.

    Returns None if target is not in the tree.
    """
    if source == target:
        return Path.trivial(source)
    if target not in prev:
        return None

    edges: List[DirectedEdge] = []
    node = target
    while node != source:
        edge = prev[node]
        edges.append(edge)
        node = edge.source
    edges.reverse()
    return Path.from_edges(source, edges)
