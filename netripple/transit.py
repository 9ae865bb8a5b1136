"""
Transit-criticality scoring.

Works purely on paths that were already computed (by the enumerator via a
PathCache, or the best paths of an impact run); it never traverses the
graph itself.

A node is *transit* for a path when it is an intermediate hop whose group
differs from both the source's and the destination's group. Only paths
between two different groups are considered: a route between two nodes of
country X never makes anyone a transit country, even if it detours abroad.

Score, in [0, 100]::

    100 * (w_path * path_share + w_pair * pair_coverage + w_node * node_involvement)

    path_share       = paths crossing the group / paths in the batch
    pair_coverage    = (src group, dst group) pairs it serves / distinct pairs in the batch
    node_involvement = transit nodes in the group / nodes in the group

Default weights are 0.7 / 0.2 / 0.1 (see CriticalityWeights).
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from .config import CriticalityWeights
from .paths import Path

GroupPair = Tuple[str, str]


@dataclass(frozen=True)
class TransitGroupScore:
    group: str
    path_count: int
    pair_path_counts: Mapping[GroupPair, int]
    transit_nodes: FrozenSet[str]
    # Served pairs for which every analysed path crosses this group.
    pairs_without_alternative: FrozenSet[GroupPair]
    criticality: float

    @property
    def served_pairs(self) -> FrozenSet[GroupPair]:
        return frozenset(self.pair_path_counts)

    @property
    def alternative_available(self) -> bool:
        return not self.pairs_without_alternative


def transit_groups_of(path: Path, group_of: Mapping[str, str]) -> Tuple[str, ...]:
    """Distinct transit groups crossed by ``path``, in traversal order."""
    src_group = group_of[path.source]
    dst_group = group_of[path.target]
    if src_group == dst_group:
        return ()
    seen: List[str] = []
    for node_id in path.intermediate_nodes:
        g = group_of[node_id]
        if g != src_group and g != dst_group and g not in seen:
            seen.append(g)
    return tuple(seen)


def transit_nodes_of(path: Path, group_of: Mapping[str, str]) -> Tuple[str, ...]:
    src_group = group_of[path.source]
    dst_group = group_of[path.target]
    if src_group == dst_group:
        return ()
    return tuple(
        n for n in path.intermediate_nodes if group_of[n] not in (src_group, dst_group)
    )


def score_transit(
    paths: Iterable[Path],
    group_of: Mapping[str, str],
    weights: Optional[CriticalityWeights] = None,
) -> List[TransitGroupScore]:
    """
    Score every group that carries transit in ``paths``.

    Paths between two nodes of the same group are ignored and do not count
    toward the batch totals. Groups with no transit usage are left out.
    Results are sorted by criticality (highest first), then group name.
    """
    weights = weights or CriticalityWeights()
    weights.validate()

    group_sizes = Counter(group_of.values())
    path_counts: Counter = Counter()
    pair_counts: Dict[str, Counter] = {}
    nodes_used: Dict[str, Set[str]] = {}
    paths_per_pair: Counter = Counter()
    crossings_per_pair: Dict[GroupPair, Counter] = {}
    total_paths = 0

    for path in paths:
        pair = (group_of[path.source], group_of[path.target])
        if pair[0] == pair[1]:
            continue
        total_paths += 1
        paths_per_pair[pair] += 1

        crossed = transit_groups_of(path, group_of)
        for g in crossed:
            path_counts[g] += 1
            pair_counts.setdefault(g, Counter())[pair] += 1
            crossings_per_pair.setdefault(pair, Counter())[g] += 1
        for n in transit_nodes_of(path, group_of):
            nodes_used.setdefault(group_of[n], set()).add(n)

    distinct_pairs = len(paths_per_pair)
    scores: List[TransitGroupScore] = []
    for group, count in path_counts.items():
        served = pair_counts[group]
        path_share = count / total_paths
        pair_coverage = len(served) / distinct_pairs
        node_involvement = len(nodes_used.get(group, ())) / group_sizes[group]
        raw = 100.0 * (
            weights.path_usage * path_share
            + weights.pair_coverage * pair_coverage
            + weights.node_involvement * node_involvement
        )
        no_alternative = frozenset(
            pair for pair in served if crossings_per_pair[pair][group] == paths_per_pair[pair]
        )
        scores.append(
            TransitGroupScore(
                group=group,
                path_count=count,
                pair_path_counts=dict(sorted(served.items())),
                transit_nodes=frozenset(nodes_used.get(group, ())),
                pairs_without_alternative=no_alternative,
                criticality=round(min(100.0, max(0.0, raw)), 2),
            )
        )

    scores.sort(key=lambda s: (-s.criticality, s.group))
    return scores
