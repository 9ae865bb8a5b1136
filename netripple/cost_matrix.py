"""
Group-to-group cost aggregation.

A MatrixCell summarises shortest costs over every node pair spanning two
groups (countries, regions). All costs come from a shared PathCache, so each
ordered node pair is solved at most once no matter how many cells or
consumers look at it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from .config import EngineConfig
from .graph import Graph
from .path_cache import PathCache
from .paths import Path

logger = logging.getLogger(__name__)

GroupPair = Tuple[str, str]


@dataclass(frozen=True)
class MatrixCell:
    """
    Aggregate shortest costs from ``source_group`` to ``dest_group``.

    Cost fields are None when no pair in the cell is reachable. Within a
    single group, a node's pair with itself is skipped, so a one-node group
    has ``total_pairs == 0`` on the diagonal.
    """

    source_group: str
    dest_group: str
    min_cost: Optional[float]
    max_cost: Optional[float]
    mean_cost: Optional[float]
    reachable_pairs: int
    total_pairs: int
    best_path: Optional[Path] = None
    reverse_min_cost: Optional[float] = None
    is_asymmetric: bool = False
    asymmetry_ratio: float = 1.0
    truncated: bool = False

    @property
    def reachable(self) -> bool:
        return self.reachable_pairs > 0

    @property
    def unreachable_pairs(self) -> int:
        return self.total_pairs - self.reachable_pairs


@dataclass(frozen=True)
class CostMatrix:
    groups: Tuple[str, ...]
    cells: Mapping[GroupPair, MatrixCell]
    truncated: bool = False

    def __getitem__(self, key: GroupPair) -> MatrixCell:
        return self.cells[key]

    def __contains__(self, key: object) -> bool:
        return key in self.cells

    def __iter__(self) -> Iterator[GroupPair]:
        return iter(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def min_cost_array(self) -> np.ndarray:
        """
        groups x groups array of min costs; NaN where a cell is missing or
        unreachable.
        """
        n = len(self.groups)
        out = np.full((n, n), np.nan)
        for i, a in enumerate(self.groups):
            for j, b in enumerate(self.groups):
                cell = self.cells.get((a, b))
                if cell is not None and cell.min_cost is not None:
                    out[i, j] = cell.min_cost
        return out

    def asymmetric_cells(self) -> List[MatrixCell]:
        return [c for c in self.cells.values() if c.is_asymmetric]


def _summarise(
    source_group: str,
    dest_group: str,
    costs: List[float],
    best: Optional[Path],
    total_pairs: int,
    truncated: bool,
) -> MatrixCell:
    if not costs:
        return MatrixCell(
            source_group, dest_group, None, None, None, 0, total_pairs, truncated=truncated
        )
    arr = np.asarray(costs, dtype=float)
    return MatrixCell(
        source_group=source_group,
        dest_group=dest_group,
        min_cost=float(arr.min()),
        max_cost=float(arr.max()),
        mean_cost=float(arr.mean()),
        reachable_pairs=len(costs),
        total_pairs=total_pairs,
        best_path=best,
        truncated=truncated,
    )


def _with_reverse(cell: MatrixCell, reverse: Optional[MatrixCell], threshold: float) -> MatrixCell:
    rev_cost = reverse.min_cost if reverse is not None else None
    fwd_cost = cell.min_cost
    if fwd_cost is None or rev_cost is None:
        return replace(cell, reverse_min_cost=rev_cost)
    low, high = sorted((fwd_cost, rev_cost))
    return replace(
        cell,
        reverse_min_cost=rev_cost,
        is_asymmetric=abs(fwd_cost - rev_cost) > threshold,
        asymmetry_ratio=high / low if low > 0 else 1.0,
    )


def build_matrix(
    graph: Graph,
    node_groups: Mapping[str, Sequence[str]],
    config: Optional[EngineConfig] = None,
    cache: Optional[PathCache] = None,
) -> CostMatrix:
    """
    Fold shortest costs over every (group_a, group_b) combination.

    Parameters
    ----------
    graph:
        Directed graph to evaluate.
    node_groups:
        group -> node ids, e.g. ``TopologySnapshot.nodes_by_group()``.
    config:
        Supplies ``max_matrix_pairs`` and ``asymmetry_threshold``.
    cache:
        Shared PathCache for this request; a private one is made if omitted.

    Notes
    -----
    Groups are processed in sorted order and nodes in the given order, so
    identical inputs always produce identical cells. When the number of
    evaluated node pairs reaches ``max_matrix_pairs`` the remaining pairs
    are skipped: the cell in progress is marked ``truncated``, later cells
    are omitted, and the matrix itself is flagged ``truncated``.
    """
    if cache is None:
        cache = PathCache(graph, config)
    config = config or cache.config

    groups = tuple(sorted(node_groups))
    ceiling = config.max_matrix_pairs
    evaluated = 0
    truncated = False
    cells: Dict[GroupPair, MatrixCell] = {}

    for a in groups:
        for b in groups:
            if truncated:
                break
            costs: List[float] = []
            best: Optional[Path] = None
            best_key = None
            total = 0
            cell_truncated = False
            for s in node_groups[a]:
                for t in node_groups[b]:
                    if s == t:
                        continue
                    if evaluated >= ceiling:
                        cell_truncated = True
                        break
                    evaluated += 1
                    total += 1
                    cost = cache.shortest_cost(s, t)
                    if cost is None:
                        continue
                    costs.append(cost)
                    if best_key is None or cost < best_key:
                        best_key = cost
                        best = cache.best_path(s, t)
                if cell_truncated:
                    break
            cells[(a, b)] = _summarise(a, b, costs, best, total, cell_truncated)
            if cell_truncated:
                truncated = True

    if truncated:
        logger.warning(
            "Cost matrix stopped at %d node pairs (max_matrix_pairs=%d)", evaluated, ceiling
        )

    threshold = config.asymmetry_threshold
    final = {key: _with_reverse(cell, cells.get((key[1], key[0])), threshold) for key, cell in cells.items()}
    cache.log_stats()
    return CostMatrix(groups=groups, cells=final, truncated=truncated)


def cost_array(
    graph: Graph,
    sources: Sequence[str],
    targets: Sequence[str],
    cache: Optional[PathCache] = None,
) -> np.ndarray:
    """
    Dense len(sources) x len(targets) array of shortest costs.

    Unreachable entries are ``inf``; a node's cost to itself is 0.
    """
    if cache is None:
        cache = PathCache(graph)
    out = np.full((len(sources), len(targets)), math.inf)
    for i, s in enumerate(sources):
        for j, t in enumerate(targets):
            cost = cache.shortest_cost(s, t)
            if cost is not None:
                out[i, j] = cost
    return out
