"""
Unit tests for DepthFirstPathEnumerator.
"""

import random

import pytest

from netripple.dijkstra_engine import SimpleDijkstraEngine
from netripple.graph import build_graph
from netripple.path_enumerator import DepthFirstPathEnumerator
from netripple.topology import Link, LinkStatus, Node, UnknownNodeError


def _square():
    """
    A -1- B
    |     |
    2     1
    |     |
    C -2- D      plus a costly diagonal A-D (10)
    """
    nodes = [Node(n, "X") for n in "ABCD"]
    links = [
        Link(0, "A", "B", 1, 1),
        Link(1, "B", "D", 1, 1),
        Link(2, "A", "C", 2, 2),
        Link(3, "C", "D", 2, 2),
        Link(4, "A", "D", 10, 10),
    ]
    return build_graph(nodes, links)


def _random_graph(seed, n=7, extra_links=9):
    rng = random.Random(seed)
    ids = [f"n{i}" for i in range(n)]
    nodes = [Node(i, "G") for i in ids]
    links = []
    # spanning chain keeps it connected, extras add alternates
    for i in range(n - 1):
        links.append(Link(len(links), ids[i], ids[i + 1], rng.randint(1, 20), rng.randint(1, 20)))
    for _ in range(extra_links):
        a, b = rng.sample(ids, 2)
        status = LinkStatus.DOWN if rng.random() < 0.2 else LinkStatus.UP
        links.append(Link(len(links), a, b, rng.randint(1, 20), rng.randint(1, 20), status))
    return build_graph(nodes, links), ids


def test_finds_all_simple_paths_sorted():
    result = DepthFirstPathEnumerator().find_paths(_square(), "A", "D", limit=10)

    assert [(p.nodes, p.total_cost) for p in result] == [
        (("A", "B", "D"), 2),
        (("A", "C", "D"), 4),
        (("A", "D"), 10),
    ]
    assert result.best.nodes == ("A", "B", "D")


def test_limit_truncates_ranked_list():
    full = DepthFirstPathEnumerator().find_paths(_square(), "A", "D", limit=10)
    top2 = DepthFirstPathEnumerator().find_paths(_square(), "A", "D", limit=2)

    assert list(top2) == list(full)[:2]


def test_default_limit_comes_from_enumerator():
    enumerator = DepthFirstPathEnumerator(default_limit=1)
    result = enumerator.find_paths(_square(), "A", "D")
    assert len(result) == 1


def test_source_equals_target_is_trivial():
    result = DepthFirstPathEnumerator().find_paths(_square(), "B", "B")

    assert len(result) == 1
    assert result.best.nodes == ("B",)
    assert result.best.total_cost == 0


def test_unreachable_returns_empty():
    nodes = [Node("A", "X"), Node("B", "X"), Node("C", "X")]
    g = build_graph(nodes, [Link(0, "A", "B", 1, 1), Link(1, "B", "C", 1, 1, LinkStatus.DOWN)])

    result = DepthFirstPathEnumerator().find_paths(g, "A", "C")

    assert len(result) == 0
    assert result.best is None
    assert not result.reachable


def test_invalid_limit_and_unknown_nodes():
    enumerator = DepthFirstPathEnumerator()
    with pytest.raises(ValueError):
        enumerator.find_paths(_square(), "A", "D", limit=0)
    with pytest.raises(UnknownNodeError):
        enumerator.find_paths(_square(), "A", "Z")


def test_exploration_budget_marks_result_truncated():
    result = DepthFirstPathEnumerator(exploration_budget=1).find_paths(_square(), "B", "C", limit=5)

    assert result.truncated


def test_truncated_search_still_returns_ranked_simple_paths():
    result = DepthFirstPathEnumerator(exploration_budget=2).find_paths(_square(), "A", "D", limit=5)

    # only A and B get expanded before the budget runs out
    assert result.truncated
    assert [(p.nodes, p.total_cost) for p in result] == [(("A", "B", "D"), 2)]


@pytest.mark.parametrize("seed", [1, 2, 3, 4, 5, 6])
@pytest.mark.parametrize("budget", [3, 8, 20])
def test_truncated_results_keep_path_guarantees(seed, budget):
    g, ids = _random_graph(seed)
    enumerator = DepthFirstPathEnumerator(exploration_budget=budget)
    best = SimpleDijkstraEngine().shortest_cost(g, ids[0], ids[-1])

    result = enumerator.find_paths(g, ids[0], ids[-1], limit=3)

    costs = [p.sort_key() for p in result]
    assert costs == sorted(costs)
    assert len(result) <= 3
    for p in result:
        assert len(set(p.nodes)) == len(p.nodes)
        assert p.nodes[0] == ids[0] and p.nodes[-1] == ids[-1]
    if result.best is not None:
        assert result.best.total_cost >= best


@pytest.mark.parametrize("seed", [1, 2, 3, 4])
def test_paths_are_simple_and_never_beat_dijkstra(seed):
    g, ids = _random_graph(seed)
    engine = SimpleDijkstraEngine()
    enumerator = DepthFirstPathEnumerator()

    for s in ids[:3]:
        for t in ids[-3:]:
            best = engine.shortest_cost(g, s, t)
            result = enumerator.find_paths(g, s, t, limit=6)
            costs = [p.total_cost for p in result]
            assert costs == sorted(costs)
            for p in result:
                assert len(set(p.nodes)) == len(p.nodes)
                assert p.nodes[0] == s and p.nodes[-1] == t
                assert best is not None and best <= p.total_cost
            if best is not None:
                assert costs[0] == best


@pytest.mark.parametrize("seed", [5, 6])
def test_pruned_search_matches_wide_search(seed):
    """Asking for fewer paths returns the head of the longer ranking."""
    g, ids = _random_graph(seed)
    enumerator = DepthFirstPathEnumerator()

    wide = enumerator.find_paths(g, ids[0], ids[-1], limit=1000)
    narrow = enumerator.find_paths(g, ids[0], ids[-1], limit=3)

    assert list(narrow) == list(wide)[:3]
