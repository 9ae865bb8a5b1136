"""Routing and ripple-impact analysis over OSPF-style link-state topologies."""

import logging

from .config import CriticalityWeights, EngineConfig, config_from_mapping, load_config
from .cost_matrix import CostMatrix, MatrixCell, build_matrix, cost_array
from .dijkstra_engine import SimpleDijkstraEngine
from .graph import AdjacencyListGraph, DirectedEdge, Direction, Graph, build_graph
from .health import (
    Bottleneck,
    BottleneckSeverity,
    HealthReport,
    PairSummary,
    SinglePointOfFailure,
    TransitUsage,
    network_health,
    pair_summary,
    redundancy_score,
    single_points_of_failure,
    usage_bottlenecks,
)
from .impact import (
    ImpactReport,
    LinkDelta,
    LoadShift,
    PairImpact,
    Severity,
    analyze_impact,
    changed_links,
    group_pairs,
    node_pairs,
)
from .path_cache import PathCache, prefetch
from .path_enumerator import DepthFirstPathEnumerator
from .paths import EdgeRef, Path, PathSet
from .scenarios import Scenario, ScenarioOutcome, evaluate_scenarios, risk_score, safest_scenario
from .topology import (
    Link,
    LinkEdit,
    LinkStatus,
    Node,
    TopologySnapshot,
    TopologyValidationError,
    UnknownNodeError,
    validate_topology,
)
from .transit import TransitGroupScore, score_transit

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AdjacencyListGraph",
    "Bottleneck",
    "BottleneckSeverity",
    "CostMatrix",
    "CriticalityWeights",
    "DepthFirstPathEnumerator",
    "DirectedEdge",
    "Direction",
    "EdgeRef",
    "EngineConfig",
    "Graph",
    "HealthReport",
    "ImpactReport",
    "Link",
    "LinkDelta",
    "LinkEdit",
    "LinkStatus",
    "LoadShift",
    "MatrixCell",
    "Node",
    "PairImpact",
    "PairSummary",
    "Path",
    "PathCache",
    "PathSet",
    "Scenario",
    "ScenarioOutcome",
    "Severity",
    "SinglePointOfFailure",
    "SimpleDijkstraEngine",
    "TopologySnapshot",
    "TopologyValidationError",
    "TransitGroupScore",
    "TransitUsage",
    "UnknownNodeError",
    "analyze_impact",
    "build_graph",
    "build_matrix",
    "changed_links",
    "config_from_mapping",
    "cost_array",
    "evaluate_scenarios",
    "group_pairs",
    "load_config",
    "network_health",
    "node_pairs",
    "pair_summary",
    "prefetch",
    "redundancy_score",
    "risk_score",
    "safest_scenario",
    "score_transit",
    "single_points_of_failure",
    "usage_bottlenecks",
    "validate_topology",
]
