"""
Network health: single points of failure, usage hot spots and per
group-pair path statistics.

Everything is computed over inter-group node pairs (two nodes of the same
group are never paired) using the ranked alternates from a PathCache.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging

from .config import EngineConfig
from .graph import build_graph
from .impact import group_pairs
from .path_cache import PathCache
from .paths import Path
from .topology import LinkEdit, LinkStatus, TopologySnapshot
from .transit import transit_groups_of, transit_nodes_of

logger = logging.getLogger(__name__)

GroupPair = Tuple[str, str]

# Alternates kept per node pair for health and pair statistics.
DEFAULT_PATHS_PER_PAIR = 3


class BottleneckSeverity(Enum):
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Bottleneck:
    """
    A link or node carrying a large share of the analysed paths.

    ``usage_percent`` is relative to the busiest element of the same kind,
    not to the number of paths.
    """

    kind: str  # "link" or "node"
    key: str
    usage: int
    usage_percent: float
    severity: BottleneckSeverity


@dataclass(frozen=True)
class SinglePointOfFailure:
    stable_index: int
    endpoints: Tuple[str, str]
    # Group pairs that lose every route when this link goes down.
    broken_pairs: Tuple[GroupPair, ...]


@dataclass(frozen=True)
class HealthReport:
    node_count: int
    link_count: int
    group_count: int
    active_links: int
    down_links: int
    asymmetric_links: int
    avg_links_per_node: float
    avg_path_cost: Optional[float]
    single_points_of_failure: Tuple[SinglePointOfFailure, ...]
    bottlenecks: Tuple[Bottleneck, ...]
    redundancy_score: int
    truncated: bool = False


@dataclass(frozen=True)
class TransitUsage:
    group: str
    path_count: int
    node_count: int


@dataclass(frozen=True)
class PairSummary:
    """Ranked alternates and their statistics between two groups."""

    source_group: str
    dest_group: str
    paths: Tuple[Path, ...]
    node_count: int
    link_count: int
    min_cost: Optional[float]
    avg_cost: Optional[float]
    max_cost: Optional[float]
    transit_groups: Tuple[TransitUsage, ...]


def _health_cache(
    snapshot: TopologySnapshot,
    config: Optional[EngineConfig],
    cache: Optional[PathCache],
    paths_per_pair: int,
) -> PathCache:
    if cache is not None:
        return cache
    config = replace(config or EngineConfig(), path_limit=paths_per_pair)
    config.validate()
    return PathCache(build_graph(snapshot.nodes, snapshot.links), config)


def _reachable_any(cache: PathCache, sources: Sequence[str], targets: Sequence[str]) -> bool:
    return any(cache.shortest_cost(s, t) is not None for s in sources for t in targets)


def single_points_of_failure(
    snapshot: TopologySnapshot,
    config: Optional[EngineConfig] = None,
) -> List[SinglePointOfFailure]:
    """
    Up links whose loss disconnects at least one group pair.

    A group pair (A, B) is connected while any node of A reaches any node of
    B. Only links on the best path of each pair's first connected node pair
    are candidates: losing any other link leaves that route intact.
    """
    config = config or EngineConfig()
    by_group = snapshot.nodes_by_group()
    baseline = PathCache(build_graph(snapshot.nodes, snapshot.links), config)

    # link -> group pairs whose representative route uses it
    candidates: Dict[int, List[GroupPair]] = {}
    for a in by_group:
        for b in by_group:
            if a == b:
                continue
            route = next(
                (
                    p
                    for p in (baseline.best_path(s, t) for s in by_group[a] for t in by_group[b])
                    if p is not None
                ),
                None,
            )
            if route is None:
                continue
            for idx in dict.fromkeys(e.stable_index for e in route.edges):
                candidates.setdefault(idx, []).append((a, b))

    found: List[SinglePointOfFailure] = []
    for idx in sorted(candidates):
        after = snapshot.apply_edits([LinkEdit(idx, status=LinkStatus.DOWN)])
        cache = PathCache(build_graph(after.nodes, after.links), config)
        broken = tuple(
            (a, b) for a, b in candidates[idx] if not _reachable_any(cache, by_group[a], by_group[b])
        )
        if broken:
            found.append(SinglePointOfFailure(idx, snapshot.link(idx).endpoints, broken))

    logger.debug("%d single point(s) of failure among %d candidate link(s)", len(found), len(candidates))
    return found


def _severity(percent: float, levels: Sequence[Tuple[float, BottleneckSeverity]]) -> Optional[BottleneckSeverity]:
    for threshold, severity in levels:
        if percent >= threshold:
            return severity
    return None


_LINK_LEVELS = (
    (90.0, BottleneckSeverity.CRITICAL),
    (80.0, BottleneckSeverity.HIGH),
    (70.0, BottleneckSeverity.MEDIUM),
)
_NODE_LEVELS = (
    (95.0, BottleneckSeverity.CRITICAL),
    (80.0, BottleneckSeverity.HIGH),
)


def usage_bottlenecks(paths: Sequence[Path]) -> List[Bottleneck]:
    """
    Links and nodes whose usage is close to the busiest one.

    Links at 70 % of the peak link usage or more are reported (90 % is
    critical, 80 % high). Nodes, endpoints included, are reported from 80 %
    of the peak node usage (95 % is critical). Sorted by usage, busiest
    first, links before nodes on ties.
    """
    link_usage: Counter = Counter()
    node_usage: Counter = Counter()
    for path in paths:
        node_usage.update(path.nodes)
        link_usage.update(e.stable_index for e in path.edges)

    found: List[Bottleneck] = []
    for kind, usage, levels in (("link", link_usage, _LINK_LEVELS), ("node", node_usage, _NODE_LEVELS)):
        peak = max(usage.values(), default=0)
        for key, count in usage.items():
            percent = 100.0 * count / peak
            severity = _severity(percent, levels)
            if severity is not None:
                found.append(Bottleneck(kind, str(key), count, round(percent, 2), severity))

    found.sort(key=lambda b: (-b.usage, b.kind, b.key))
    return found


def redundancy_score(
    paths_per_group_pair: float,
    active_links: int,
    node_count: int,
    spof_count: int,
) -> int:
    """
    0-100: up to 40 for alternates per group pair (full at more than 3), up
    to 30 for link density (full once up links outnumber nodes), 30 minus 10
    per single point of failure.
    """
    alternates = 40.0 if paths_per_group_pair > 3 else paths_per_group_pair * 13
    if node_count == 0:
        density = 0.0
    else:
        density = 30.0 if active_links > node_count else active_links / node_count * 30
    raw = alternates + density + 30 - 10 * spof_count
    return int(max(0, min(100, round(raw))))


def network_health(
    snapshot: TopologySnapshot,
    config: Optional[EngineConfig] = None,
    cache: Optional[PathCache] = None,
    paths_per_pair: int = DEFAULT_PATHS_PER_PAIR,
) -> HealthReport:
    """
    Summarise the resilience of ``snapshot``.

    Parameters
    ----------
    snapshot:
        Topology to assess.
    config:
        Supplies ``max_matrix_pairs`` as the ceiling on node pairs whose
        alternates are enumerated.
    cache:
        Optional PathCache for ``snapshot``; its ``path_limit`` then replaces
        ``paths_per_pair``.
    paths_per_pair:
        Ranked alternates kept per inter-group node pair.
    """
    config = config or EngineConfig()
    cache = _health_cache(snapshot, config, cache, paths_per_pair)

    pairs = group_pairs(snapshot)
    truncated = len(pairs) > config.max_matrix_pairs
    if truncated:
        logger.warning(
            "Health analysis limited to %d of %d node pairs (max_matrix_pairs)",
            config.max_matrix_pairs,
            len(pairs),
        )
        pairs = pairs[: config.max_matrix_pairs]

    paths: List[Path] = []
    for s, t in pairs:
        paths.extend(cache.path_set(s, t))

    spofs = single_points_of_failure(snapshot, config)
    groups = snapshot.groups()
    active = sum(1 for link in snapshot.links if link.is_up)
    node_count = len(snapshot.nodes)
    group_pair_count = max(1, len(groups) * (len(groups) - 1))

    report = HealthReport(
        node_count=node_count,
        link_count=len(snapshot.links),
        group_count=len(groups),
        active_links=active,
        down_links=len(snapshot.links) - active,
        asymmetric_links=sum(1 for link in snapshot.links if not link.is_symmetric()),
        avg_links_per_node=2 * len(snapshot.links) / node_count if node_count else 0.0,
        avg_path_cost=sum(p.total_cost for p in paths) / len(paths) if paths else None,
        single_points_of_failure=tuple(spofs),
        bottlenecks=tuple(usage_bottlenecks(paths)),
        redundancy_score=redundancy_score(len(paths) / group_pair_count, active, node_count, len(spofs)),
        truncated=truncated,
    )
    cache.log_stats()
    return report


def pair_summary(
    snapshot: TopologySnapshot,
    source_group: str,
    dest_group: str,
    config: Optional[EngineConfig] = None,
    cache: Optional[PathCache] = None,
    paths_per_pair: int = DEFAULT_PATHS_PER_PAIR,
) -> PairSummary:
    """
    Collect the ranked alternates of every node pair between two groups.

    Paths come back in global rank order. ``link_count`` counts distinct
    links (by stable index) used by any path. Cost fields are None when no
    node pair is connected.
    """
    cache = _health_cache(snapshot, config, cache, paths_per_pair)
    by_group = snapshot.nodes_by_group()
    group_of = snapshot.group_of()

    paths: List[Path] = []
    for s in by_group.get(source_group, ()):
        for t in by_group.get(dest_group, ()):
            if s != t:
                paths.extend(cache.path_set(s, t))
    paths.sort(key=Path.sort_key)

    used_nodes = {n for p in paths for n in p.nodes}
    used_links = {e.stable_index for p in paths for e in p.edges}
    costs = [p.total_cost for p in paths]

    transit_paths: Counter = Counter()
    transit_nodes: Dict[str, Set[str]] = {}
    for p in paths:
        transit_paths.update(transit_groups_of(p, group_of))
        for n in transit_nodes_of(p, group_of):
            transit_nodes.setdefault(group_of[n], set()).add(n)
    transit = sorted(
        (TransitUsage(g, count, len(transit_nodes[g])) for g, count in transit_paths.items()),
        key=lambda u: (-u.path_count, u.group),
    )

    return PairSummary(
        source_group=source_group,
        dest_group=dest_group,
        paths=tuple(paths),
        node_count=len(used_nodes),
        link_count=len(used_links),
        min_cost=min(costs) if costs else None,
        avg_cost=sum(costs) / len(costs) if costs else None,
        max_cost=max(costs) if costs else None,
        transit_groups=tuple(transit),
    )
