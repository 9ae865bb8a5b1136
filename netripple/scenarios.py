"""
What-if scenario comparison.

A scenario is a named bundle of link edits. Each one is applied to the same
baseline snapshot and analysed with analyze_impact; the baseline's path
cache is shared across all scenarios so its routes are computed once.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .config import EngineConfig
from .graph import build_graph
from .impact import ImpactReport, Pair, Severity, analyze_impact, node_pairs
from .path_cache import PathCache
from .topology import LinkEdit, TopologySnapshot


@dataclass(frozen=True)
class Scenario:
    name: str
    edits: Tuple[LinkEdit, ...]
    description: str = ""


@dataclass(frozen=True)
class ScenarioOutcome:
    scenario: Scenario
    snapshot: TopologySnapshot
    report: ImpactReport
    risk_score: float


def risk_score(report: ImpactReport) -> float:
    """
    Blend of how much, how badly and how structurally routing moved.

    40 points for the affected share of pairs, up to 20 for the mean absolute
    cost change (saturating at 100), 10 per transit group gained or lost and
    20 per broken pair; capped at 100.
    """
    affected_ratio = report.affected_count / report.analyzed_pairs if report.analyzed_pairs else 0.0
    deltas = [abs(p.cost_delta) for p in report.affected if p.cost_delta is not None]
    avg_abs_change = sum(deltas) / len(deltas) if deltas else 0.0
    transit_changes = len(report.transit_groups_added) + len(report.transit_groups_removed)
    broken = report.severity_counts()[Severity.BROKEN]

    score = (
        affected_ratio * 40
        + min(avg_abs_change / 100, 1.0) * 20
        + transit_changes * 10
        + broken * 20
    )
    return round(min(100.0, score), 2)


def evaluate_scenarios(
    baseline: TopologySnapshot,
    scenarios: Sequence[Scenario],
    relevant_pairs: Optional[Sequence[Pair]] = None,
    config: Optional[EngineConfig] = None,
) -> List[ScenarioOutcome]:
    """
    Apply and analyse each scenario against ``baseline``, in input order.

    Scenarios without edits are analysed too and simply report no impact.
    An edit that targets an unknown link or sets an invalid cost raises
    TopologyValidationError for the whole call.
    """
    config = config or EngineConfig()
    if relevant_pairs is None:
        relevant_pairs = node_pairs(baseline)
    baseline_cache = PathCache(build_graph(baseline.nodes, baseline.links), config)

    outcomes: List[ScenarioOutcome] = []
    for scenario in scenarios:
        after = baseline.apply_edits(scenario.edits)
        report = analyze_impact(
            baseline,
            after,
            relevant_pairs=relevant_pairs,
            config=config,
            before_cache=baseline_cache,
        )
        outcomes.append(ScenarioOutcome(scenario, after, report, risk_score(report)))
    baseline_cache.log_stats()
    return outcomes


def safest_scenario(outcomes: Sequence[ScenarioOutcome]) -> Optional[ScenarioOutcome]:
    """Lowest risk score; ties go to the scenario name that sorts first."""
    if not outcomes:
        return None
    return min(outcomes, key=lambda o: (o.risk_score, o.scenario.name))
