"""
Bounded depth-first enumeration of loop-free alternate paths.
"""

from __future__ import annotations

from typing import List, Optional, Tuple
import heapq
import logging

from .algorithms import PathEnumerator
from .config import DEFAULT_EXPLORATION_BUDGET, DEFAULT_PATH_LIMIT
from .graph import DirectedEdge, Graph
from .paths import Path, PathSet
from .topology import UnknownNodeError

logger = logging.getLogger(__name__)


class DepthFirstPathEnumerator(PathEnumerator):
    """
    Iterative DFS that records every simple path reaching the target.

    The search does not stop at the first hit: it keeps backtracking until
    the tree is exhausted or the exploration budget runs out, then ranks the
    candidates by (total_cost, hop count, node ids) and keeps ``limit``.

    Once ``limit`` candidates are known, any partial path already costlier
    than the current ``limit``-th best is abandoned. Weights are positive, so
    such a branch can only produce paths that would be cut anyway.
    """

    def __init__(
        self,
        default_limit: int = DEFAULT_PATH_LIMIT,
        exploration_budget: int = DEFAULT_EXPLORATION_BUDGET,
    ) -> None:
        if default_limit < 1:
            raise ValueError("default_limit must be at least 1")
        if exploration_budget < 1:
            raise ValueError("exploration_budget must be at least 1")
        self.default_limit = default_limit
        self.exploration_budget = exploration_budget

    def find_paths(
        self, graph: Graph, source: str, target: str, limit: Optional[int] = None
    ) -> PathSet:
        if limit is None:
            limit = self.default_limit
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        for node_id in (source, target):
            if not graph.has_node(node_id):
                raise UnknownNodeError(node_id)

        if source == target:
            return PathSet(source, target, (Path.trivial(source),))

        candidates: List[Path] = []
        # Max-heap (negated) of the best `limit` candidate costs seen so far.
        best_costs: List[float] = []
        expansions = 0
        truncated = False

        # Stack entries: (node, nodes on path, edges on path, cost so far)
        stack: List[Tuple[str, Tuple[str, ...], Tuple[DirectedEdge, ...], float]] = [
            (source, (source,), (), 0)
        ]

        while stack:
            node, path_nodes, path_edges, cost = stack.pop()

            if len(best_costs) == limit and cost > -best_costs[0]:
                continue

            if node == target:
                candidates.append(Path.from_edges(source, path_edges))
                if len(best_costs) < limit:
                    heapq.heappush(best_costs, -cost)
                elif cost < -best_costs[0]:
                    heapq.heapreplace(best_costs, -cost)
                continue

            if expansions >= self.exploration_budget:
                truncated = True
                break
            expansions += 1

            on_path = set(path_nodes)
            # LIFO: push expensive edges first so cheaper ones are explored first.
            neighbours = sorted(
                graph.outgoing(node), key=lambda e: (e.weight, e.target, e.stable_index), reverse=True
            )
            for edge in neighbours:
                if edge.target in on_path:
                    continue
                stack.append(
                    (
                        edge.target,
                        path_nodes + (edge.target,),
                        path_edges + (edge,),
                        cost + edge.weight,
                    )
                )

        if truncated:
            logger.warning(
                "Path search %s -> %s stopped after %d expansions; %d candidate(s) kept",
                source,
                target,
                expansions,
                len(candidates),
            )

        candidates.sort(key=Path.sort_key)
        return PathSet(source, target, tuple(candidates[:limit]), truncated=truncated)
