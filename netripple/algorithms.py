"""
Algorithm interfaces for netripple.

Keeps graph algorithms separate from the analyses built on top of them, so
the matrix/impact/transit code can be driven by any engine that honours
these contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from .graph import DirectedEdge, Graph
from .paths import Path, PathSet


class ShortestPathEngine(ABC):
    """
    Interface for single-source shortest-path computation.
    """

    @abstractmethod
    def shortest_paths(
        self, graph: Graph, source: str
    ) -> Tuple[Dict[str, float], Dict[str, DirectedEdge]]:
        """
        Compute shortest-path costs plus the predecessor edge for each dest.

        Returns:
            (dist, prev) where dist maps every reachable node to its cost and
            prev maps every reachable node except source to the edge used to
            enter it.
        """
        raise NotImplementedError

    @abstractmethod
    def shortest_cost(self, graph: Graph, source: str, target: str) -> Optional[float]:
        """
        Minimal cost from source to target, or None when unreachable.
        """
        raise NotImplementedError

    @abstractmethod
    def shortest_path(self, graph: Graph, source: str, target: str) -> Optional[Path]:
        """
        One minimal-cost path from source to target, or None when unreachable.
        """
        raise NotImplementedError


class PathEnumerator(ABC):
    """
    Interface for ranked, loop-free alternate path enumeration.
    """

    @abstractmethod
    def find_paths(
        self, graph: Graph, source: str, target: str, limit: Optional[int] = None
    ) -> PathSet:
        """
        Up to ``limit`` simple paths ordered by ascending total cost.

        Returns an empty PathSet when target is unreachable.
        """
        raise NotImplementedError
