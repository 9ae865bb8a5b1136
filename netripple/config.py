"""
Engine configuration.

All tunables live in one frozen dataclass so that a single analysis request
runs with one consistent set of limits. Configs can be built in code, from a
plain mapping, or from a YAML file.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping
import math

# Defaults used when the host does not override them.
DEFAULT_PATH_LIMIT = 5
DEFAULT_EXPLORATION_BUDGET = 100_000
DEFAULT_MAX_MATRIX_PAIRS = 250_000
DEFAULT_MAX_IMPACT_PAIRS = 250_000


@dataclass(frozen=True)
class CriticalityWeights:
    """
    Blend used by the transit-criticality score.

    Attributes
    ----------
    path_usage:
        Weight of the share of analysed paths that cross the group.
    pair_coverage:
        Weight of the share of distinct (source group, destination group)
        pairs the group serves.
    node_involvement:
        Weight of the share of the group's nodes that carry transit.
    """

    path_usage: float = 0.7
    pair_coverage: float = 0.2
    node_involvement: float = 0.1

    def validate(self) -> None:
        """
        Raises
        ------
        ValueError
            If any weight is negative or the weights do not sum to 1.
        """
        values = (self.path_usage, self.pair_coverage, self.node_involvement)
        if any(w < 0 for w in values):
            raise ValueError("Criticality weights must be non-negative.")
        if not math.isclose(sum(values), 1.0, abs_tol=1e-9):
            raise ValueError(f"Criticality weights must sum to 1, got {sum(values)}.")


@dataclass(frozen=True)
class EngineConfig:
    """
    Limits and thresholds for one analysis request.

    Attributes
    ----------
    path_limit:
        Number of ranked alternates returned by the multi-path enumerator.
    exploration_budget:
        Maximum DFS node expansions per enumeration. When exhausted the
        enumerator returns what it has with ``truncated=True``. Keep this
        conservative on large, dense topologies.
    max_matrix_pairs:
        Ceiling on ordered node pairs evaluated by the cost matrix builder.
    max_impact_pairs:
        Ceiling on pairs evaluated by the impact analyzer.
    asymmetry_threshold:
        Absolute forward/reverse cost difference above which a matrix cell is
        flagged asymmetric.
    major_cost_delta, major_cost_ratio:
        A cost increase above either the absolute delta or the ratio of the
        old cost is classed as a major reroute.
    criticality_weights:
        See ``CriticalityWeights``.
    """

    path_limit: int = DEFAULT_PATH_LIMIT
    exploration_budget: int = DEFAULT_EXPLORATION_BUDGET
    max_matrix_pairs: int = DEFAULT_MAX_MATRIX_PAIRS
    max_impact_pairs: int = DEFAULT_MAX_IMPACT_PAIRS
    asymmetry_threshold: float = 10.0
    major_cost_delta: float = 50.0
    major_cost_ratio: float = 0.5
    criticality_weights: CriticalityWeights = field(default_factory=CriticalityWeights)

    def validate(self) -> None:
        """
        Raises
        ------
        ValueError
            If a limit is not a positive integer or a threshold is negative.
        """
        for name in ("path_limit", "exploration_budget", "max_matrix_pairs", "max_impact_pairs"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}.")
        for name in ("asymmetry_threshold", "major_cost_delta", "major_cost_ratio"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative.")
        self.criticality_weights.validate()


def config_from_mapping(data: Mapping[str, Any]) -> EngineConfig:
    """
    Build and validate an EngineConfig from a plain mapping.

    Missing keys keep their defaults; unknown keys are rejected so a typo in
    a config file does not silently fall back to a default.
    """
    known = {f.name for f in fields(EngineConfig)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}.")

    kwargs = dict(data)
    weights = kwargs.pop("criticality_weights", None)
    if weights is not None:
        weight_keys = {f.name for f in fields(CriticalityWeights)}
        bad = set(weights) - weight_keys
        if bad:
            raise ValueError(f"Unknown criticality weight keys: {', '.join(sorted(bad))}.")
        kwargs["criticality_weights"] = CriticalityWeights(**weights)

    cfg = EngineConfig(**kwargs)
    cfg.validate()
    return cfg


def load_config(path: Path) -> EngineConfig:
    import yaml  # type: ignore

    data = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{path}: expected a mapping at the top level.")
    return config_from_mapping(data)
