"""
Unit tests for the group cost matrix.
"""

import math

import numpy as np
import pytest

from netripple.config import EngineConfig
from netripple.cost_matrix import build_matrix, cost_array
from netripple.graph import build_graph
from netripple.path_cache import PathCache
from netripple.topology import Link, LinkStatus, Node, TopologySnapshot


def _snapshot(xy_forward=10, xy_reverse=20):
    nodes = (Node("x1", "X"), Node("x2", "X"), Node("y1", "Y"), Node("z1", "Z"))
    links = (
        Link(0, "x1", "x2", 5, 5),
        Link(1, "x2", "y1", xy_forward, xy_reverse),
        Link(2, "y1", "z1", 1, 1, LinkStatus.DOWN),
    )
    return TopologySnapshot(nodes=nodes, links=links)


def _matrix(snap, config=None):
    g = build_graph(snap.nodes, snap.links)
    return build_matrix(g, snap.nodes_by_group(), config)


def test_cells_aggregate_min_max_mean():
    m = _matrix(_snapshot())

    xy = m[("X", "Y")]
    # x1->y1 = 15, x2->y1 = 10
    assert (xy.min_cost, xy.max_cost, xy.mean_cost) == (10, 15, 12.5)
    assert (xy.reachable_pairs, xy.total_pairs) == (2, 2)
    assert xy.best_path.nodes == ("x2", "y1")

    yx = m[("Y", "X")]
    # y1->x2 = 20, y1->x1 = 25
    assert (yx.min_cost, yx.max_cost, yx.mean_cost) == (20, 25, 22.5)


def test_same_group_skips_self_pairs():
    m = _matrix(_snapshot())

    xx = m[("X", "X")]
    assert xx.total_pairs == 2
    assert xx.min_cost == 5 and xx.max_cost == 5

    yy = m[("Y", "Y")]
    assert yy.total_pairs == 0
    assert yy.min_cost is None and not yy.reachable


def test_unreachable_cell_has_no_costs():
    m = _matrix(_snapshot())

    xz = m[("X", "Z")]
    assert xz.total_pairs == 2
    assert xz.reachable_pairs == 0
    assert xz.unreachable_pairs == 2
    assert xz.min_cost is None and xz.mean_cost is None and xz.best_path is None


def test_asymmetry_flag_and_ratio():
    m = _matrix(_snapshot())
    # forward min 10 vs reverse min 20: difference equals threshold, not above
    assert m[("X", "Y")].reverse_min_cost == 20
    assert not m[("X", "Y")].is_asymmetric
    assert m[("X", "Y")].asymmetry_ratio == pytest.approx(2.0)

    skewed = _matrix(_snapshot(xy_forward=10, xy_reverse=500))
    assert skewed[("X", "Y")].is_asymmetric
    assert skewed[("Y", "X")].is_asymmetric
    assert skewed[("X", "Y")].asymmetry_ratio == pytest.approx(50.0)
    assert [(c.source_group, c.dest_group) for c in skewed.asymmetric_cells()] == [("X", "Y"), ("Y", "X")]


def test_matrix_is_deterministic():
    snap = _snapshot()
    assert _matrix(snap) == _matrix(snap)
    assert list(_matrix(snap)) == list(_matrix(snap))


def test_ceiling_truncates_matrix():
    m = _matrix(_snapshot(), EngineConfig(max_matrix_pairs=1))

    assert m.truncated
    assert list(m) == [("X", "X")]
    assert m[("X", "X")].truncated
    assert m[("X", "X")].total_pairs == 1


def test_shared_cache_is_reused():
    snap = _snapshot()
    g = build_graph(snap.nodes, snap.links)
    cache = PathCache(g)

    build_matrix(g, snap.nodes_by_group(), cache=cache)
    misses = cache.misses
    build_matrix(g, snap.nodes_by_group(), cache=cache)

    # one tree per source, computed during the first build only
    assert misses == 4
    assert cache.misses == misses


def test_min_cost_array_and_cost_array():
    snap = _snapshot()
    m = _matrix(snap)

    arr = m.min_cost_array()
    assert arr.shape == (3, 3)
    assert arr[0, 1] == 10
    assert math.isnan(arr[0, 2])

    g = build_graph(snap.nodes, snap.links)
    grid = cost_array(g, ["x1", "y1"], ["x1", "y1", "z1"])
    np.testing.assert_array_equal(grid, np.array([[0, 15, np.inf], [25, 0, np.inf]]))
