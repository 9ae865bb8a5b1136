"""
Before/after ripple analysis.

Given two snapshots of the same network (the "after" one typically produced
by TopologySnapshot.apply_edits), work out which routes moved, which nodes
are touched directly and downstream, and how load shifts between links.
Links are correlated by stable index only, never by list position.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple
import logging

from .config import EngineConfig
from .graph import build_graph
from .path_cache import PathCache
from .paths import Path
from .topology import Link, TopologySnapshot, TopologyValidationError, UnknownNodeError
from .transit import transit_groups_of

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]


class Severity(Enum):
    BROKEN = "broken"  # reachable before, unreachable after
    RESTORED = "restored"  # unreachable before, reachable after
    MAJOR = "major"
    MINOR = "minor"
    IMPROVED = "improved"


_SEVERITY_RANK = {
    Severity.BROKEN: 0,
    Severity.MAJOR: 1,
    Severity.MINOR: 2,
    Severity.RESTORED: 3,
    Severity.IMPROVED: 4,
}


@dataclass(frozen=True)
class LinkDelta:
    """One link whose costs or status differ between the snapshots."""

    before: Link
    after: Link

    @property
    def stable_index(self) -> int:
        return self.before.stable_index

    @property
    def endpoints(self) -> Tuple[str, str]:
        return self.before.endpoints

    @property
    def forward_delta(self) -> float:
        return self.after.forward_cost - self.before.forward_cost

    @property
    def reverse_delta(self) -> float:
        return self.after.reverse_cost - self.before.reverse_cost

    @property
    def status_changed(self) -> bool:
        return self.before.status is not self.after.status


@dataclass(frozen=True)
class PairImpact:
    source: str
    target: str
    before_cost: Optional[float]
    after_cost: Optional[float]
    before_path: Optional[Path]
    after_path: Optional[Path]
    severity: Severity

    @property
    def cost_changed(self) -> bool:
        return self.before_cost != self.after_cost

    @property
    def path_changed(self) -> bool:
        return _node_seq(self.before_path) != _node_seq(self.after_path)

    @property
    def cost_delta(self) -> Optional[float]:
        """after - before; None if either side is unreachable."""
        if self.before_cost is None or self.after_cost is None:
            return None
        return self.after_cost - self.before_cost


@dataclass(frozen=True)
class LoadShift:
    """An unchanged link that carries more best paths after the edit."""

    stable_index: int
    before_count: int
    after_count: int

    @property
    def increase(self) -> int:
        return self.after_count - self.before_count


@dataclass(frozen=True)
class ImpactReport:
    analyzed_pairs: int
    affected: Tuple[PairImpact, ...]
    local_impact: FrozenSet[str]
    downstream_impact: FrozenSet[str]
    link_deltas: Tuple[LinkDelta, ...]
    load_shifts: Tuple[LoadShift, ...] = ()
    transit_groups_added: FrozenSet[str] = frozenset()
    transit_groups_removed: FrozenSet[str] = frozenset()
    truncated: bool = False

    @property
    def affected_count(self) -> int:
        return len(self.affected)

    @property
    def affected_percentage(self) -> float:
        if self.analyzed_pairs == 0:
            return 0.0
        return 100.0 * self.affected_count / self.analyzed_pairs

    @property
    def average_cost_change(self) -> float:
        """Mean cost delta over affected pairs reachable in both snapshots."""
        deltas = [p.cost_delta for p in self.affected if p.cost_delta is not None]
        return sum(deltas) / len(deltas) if deltas else 0.0

    def severity_counts(self) -> Dict[Severity, int]:
        counts = {s: 0 for s in Severity}
        for p in self.affected:
            counts[p.severity] += 1
        return counts

    def ranked(self) -> List[PairImpact]:
        """Affected pairs, worst first: by severity, then by |cost delta|."""
        return sorted(
            self.affected,
            key=lambda p: (
                _SEVERITY_RANK[p.severity],
                -abs(p.cost_delta) if p.cost_delta is not None else 0,
                p.source,
                p.target,
            ),
        )


def _node_seq(path: Optional[Path]) -> Optional[Tuple[str, ...]]:
    return path.nodes if path is not None else None


def classify(before_cost: Optional[float], after_cost: Optional[float], config: EngineConfig) -> Severity:
    if after_cost is None:
        return Severity.BROKEN
    if before_cost is None:
        return Severity.RESTORED
    delta = after_cost - before_cost
    if delta < 0:
        return Severity.IMPROVED
    if delta > config.major_cost_delta or (before_cost > 0 and delta / before_cost > config.major_cost_ratio):
        return Severity.MAJOR
    return Severity.MINOR


def changed_links(before: TopologySnapshot, after: TopologySnapshot) -> Tuple[LinkDelta, ...]:
    """Links whose costs or status differ, ordered by stable index."""
    deltas = []
    for idx in sorted(before.stable_indexes):
        old = before.link(idx)
        new = after.link(idx)
        if (old.forward_cost, old.reverse_cost, old.status) != (new.forward_cost, new.reverse_cost, new.status):
            deltas.append(LinkDelta(old, new))
    return tuple(deltas)


def node_pairs(
    snapshot: TopologySnapshot,
    sources: Optional[Iterable[str]] = None,
    targets: Optional[Iterable[str]] = None,
) -> List[Pair]:
    """Ordered (source, target) pairs of distinct nodes."""
    src = list(sources) if sources is not None else list(snapshot.node_ids)
    dst = list(targets) if targets is not None else list(snapshot.node_ids)
    return [(s, t) for s in src for t in dst if s != t]


def group_pairs(
    snapshot: TopologySnapshot,
    source_groups: Optional[Iterable[str]] = None,
    dest_groups: Optional[Iterable[str]] = None,
) -> List[Pair]:
    """
    Node pairs spanning two different groups.

    Every node of each source group is paired with every node of each
    destination group; same-group combinations are skipped.
    """
    by_group = snapshot.nodes_by_group()
    src_groups = sorted(source_groups) if source_groups is not None else list(by_group)
    dst_groups = sorted(dest_groups) if dest_groups is not None else list(by_group)
    pairs: List[Pair] = []
    for a in src_groups:
        for b in dst_groups:
            if a == b:
                continue
            pairs.extend((s, t) for s in by_group.get(a, ()) for t in by_group.get(b, ()))
    return pairs


def _check_comparable(before: TopologySnapshot, after: TopologySnapshot) -> None:
    if set(before.node_ids) != set(after.node_ids):
        missing = sorted(set(before.node_ids) ^ set(after.node_ids))
        raise TopologyValidationError("snapshots have different node sets", node_id=missing[0])
    if set(before.stable_indexes) != set(after.stable_indexes):
        missing_idx = sorted(set(before.stable_indexes) ^ set(after.stable_indexes))
        raise TopologyValidationError("snapshots have different link sets", stable_index=missing_idx[0])
    for link in before.links:
        if after.link(link.stable_index).endpoints != link.endpoints:
            raise TopologyValidationError(
                "link endpoints differ between snapshots", stable_index=link.stable_index
            )
    for node in before.nodes:
        if after.node(node.id).group != node.group:
            raise TopologyValidationError("node group differs between snapshots", node_id=node.id)


def analyze_impact(
    before: TopologySnapshot,
    after: TopologySnapshot,
    relevant_pairs: Optional[Sequence[Pair]] = None,
    config: Optional[EngineConfig] = None,
    before_cache: Optional[PathCache] = None,
    after_cache: Optional[PathCache] = None,
) -> ImpactReport:
    """
    Diff best paths for ``relevant_pairs`` between two snapshots.

    Parameters
    ----------
    before, after:
        Snapshots with the same nodes and the same stable indexes.
    relevant_pairs:
        (source, target) pairs to analyse; duplicates are dropped. Defaults
        to every ordered pair of distinct nodes (see ``node_pairs`` and
        ``group_pairs`` for narrower selections).
    config:
        Supplies ``max_impact_pairs`` and the severity thresholds.
    before_cache, after_cache:
        Optional shared caches, e.g. to reuse the baseline across several
        what-if scenarios. They must have been built for the matching
        snapshot.

    Notes
    -----
    The result depends only on the two snapshots and the pair list, so the
    same inputs always give the same report. Affected pairs keep the order
    of ``relevant_pairs``; use ``ImpactReport.ranked`` for a worst-first
    view.
    """
    config = config or EngineConfig()
    _check_comparable(before, after)

    if relevant_pairs is None:
        relevant_pairs = node_pairs(before)
    pairs = list(dict.fromkeys(relevant_pairs))
    for s, t in pairs:
        for node_id in (s, t):
            if not before.has_node(node_id):
                raise UnknownNodeError(node_id)

    truncated = False
    if len(pairs) > config.max_impact_pairs:
        logger.warning(
            "Impact analysis limited to %d of %d pairs (max_impact_pairs)",
            config.max_impact_pairs,
            len(pairs),
        )
        pairs = pairs[: config.max_impact_pairs]
        truncated = True

    if before_cache is None:
        before_cache = PathCache(build_graph(before.nodes, before.links), config)
    if after_cache is None:
        after_cache = PathCache(build_graph(after.nodes, after.links), config)

    deltas = changed_links(before, after)
    local: Set[str] = set()
    for d in deltas:
        local.update(d.endpoints)

    group_of = before.group_of()
    downstream: Set[str] = set()
    affected: List[PairImpact] = []
    usage_before: Counter = Counter()
    usage_after: Counter = Counter()
    transit_before: Set[str] = set()
    transit_after: Set[str] = set()

    for s, t in pairs:
        b_path = before_cache.best_path(s, t)
        a_path = after_cache.best_path(s, t)
        b_cost = b_path.total_cost if b_path is not None else None
        a_cost = a_path.total_cost if a_path is not None else None

        for path, usage, transit in ((b_path, usage_before, transit_before), (a_path, usage_after, transit_after)):
            if path is None:
                continue
            usage.update(e.stable_index for e in path.edges)
            transit.update(transit_groups_of(path, group_of))

        if b_cost == a_cost and _node_seq(b_path) == _node_seq(a_path):
            continue

        b_nodes = set(b_path.nodes) if b_path is not None else set()
        a_nodes = set(a_path.nodes) if a_path is not None else set()
        downstream.update(b_nodes ^ a_nodes)

        affected.append(
            PairImpact(
                source=s,
                target=t,
                before_cost=b_cost,
                after_cost=a_cost,
                before_path=b_path,
                after_path=a_path,
                severity=classify(b_cost, a_cost, config),
            )
        )

    edited = {d.stable_index for d in deltas}
    shifts = sorted(
        (
            LoadShift(idx, usage_before.get(idx, 0), count)
            for idx, count in usage_after.items()
            if idx not in edited and count > usage_before.get(idx, 0)
        ),
        key=lambda ls: (-ls.increase, ls.stable_index),
    )

    report = ImpactReport(
        analyzed_pairs=len(pairs),
        affected=tuple(affected),
        local_impact=frozenset(local),
        downstream_impact=frozenset(downstream),
        link_deltas=deltas,
        load_shifts=tuple(shifts),
        transit_groups_added=frozenset(transit_after - transit_before),
        transit_groups_removed=frozenset(transit_before - transit_after),
        truncated=truncated,
    )
    logger.debug(
        "Impact: %d/%d pairs affected, %d link(s) changed",
        report.affected_count,
        report.analyzed_pairs,
        len(deltas),
    )
    return report
