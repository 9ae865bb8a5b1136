"""
Path results shared by the shortest-path and multi-path engines.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from .graph import DirectedEdge, Direction


@dataclass(frozen=True)
class EdgeRef:
    """A traversed link: stable index plus the direction it was used in."""

    stable_index: int
    direction: Direction


@dataclass(frozen=True)
class Path:
    """
    Route from nodes[0] to nodes[-1].

    ``edges`` has one entry fewer than ``nodes``; a trivial path (source ==
    target) has a single node, no edges and cost 0.
    """

    nodes: Tuple[str, ...]
    edges: Tuple[EdgeRef, ...]
    total_cost: float

    @classmethod
    def trivial(cls, node_id: str) -> "Path":
        return cls(nodes=(node_id,), edges=(), total_cost=0)

    @classmethod
    def from_edges(cls, source: str, edges: Sequence[DirectedEdge]) -> "Path":
        nodes = [source]
        cost: float = 0
        for e in edges:
            nodes.append(e.target)
            cost += e.weight
        return cls(
            nodes=tuple(nodes),
            edges=tuple(EdgeRef(e.stable_index, e.direction) for e in edges),
            total_cost=cost,
        )

    @property
    def source(self) -> str:
        return self.nodes[0]

    @property
    def target(self) -> str:
        return self.nodes[-1]

    @property
    def hop_count(self) -> int:
        return len(self.edges)

    @property
    def intermediate_nodes(self) -> Tuple[str, ...]:
        return self.nodes[1:-1]

    def sort_key(self) -> Tuple[float, int, Tuple[str, ...]]:
        """Ranking used everywhere paths are ordered: cost, hops, then ids."""
        return (self.total_cost, self.hop_count, self.nodes)


@dataclass(frozen=True)
class PathSet:
    """
    Ranked alternatives for one (source, target) pair.

    An empty set means the target is unreachable. ``truncated`` is set when
    the exploration budget ran out before the search finished, in which case
    the ranking only covers the candidates found so far.
    """

    source: str
    target: str
    paths: Tuple[Path, ...]
    truncated: bool = False

    @property
    def best(self) -> Optional[Path]:
        return self.paths[0] if self.paths else None

    @property
    def reachable(self) -> bool:
        return bool(self.paths)

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)
