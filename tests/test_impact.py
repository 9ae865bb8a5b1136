"""
Unit tests for before/after impact analysis.
"""

import pytest

from netripple.config import EngineConfig
from netripple.impact import (
    ImpactReport,
    PairImpact,
    Severity,
    analyze_impact,
    changed_links,
    classify,
    group_pairs,
    node_pairs,
)
from netripple.topology import (
    Link,
    LinkEdit,
    LinkStatus,
    Node,
    TopologySnapshot,
    TopologyValidationError,
    UnknownNodeError,
)


def _square():
    """
    A -1- B
    |     |
    2     1
    |     |
    C -2- D
    """
    nodes = tuple(Node(n, "X") for n in "ABCD")
    links = (
        Link(0, "A", "B", 1, 1),
        Link(1, "B", "D", 1, 1),
        Link(2, "A", "C", 2, 2),
        Link(3, "C", "D", 2, 2),
    )
    return TopologySnapshot(nodes=nodes, links=links)


def test_rerouted_pair_is_reported_with_local_and_downstream_nodes():
    before = _square()
    after = before.apply_edits([LinkEdit(0, forward_cost=10)])

    report = analyze_impact(before, after, [("A", "D")])

    assert report.analyzed_pairs == 1
    (impact,) = report.affected
    assert (impact.before_cost, impact.after_cost) == (2, 4)
    assert impact.before_path.nodes == ("A", "B", "D")
    assert impact.after_path.nodes == ("A", "C", "D")
    assert impact.severity is Severity.MAJOR
    assert impact.cost_delta == 2

    assert report.local_impact == {"A", "B"}
    assert report.downstream_impact == {"B", "C"}


def test_load_shifts_onto_unchanged_links():
    before = _square()
    after = before.apply_edits([LinkEdit(0, forward_cost=10)])

    report = analyze_impact(before, after, [("A", "D")])

    assert [(s.stable_index, s.before_count, s.after_count) for s in report.load_shifts] == [
        (2, 0, 1),
        (3, 0, 1),
    ]


def test_unchanged_pairs_count_toward_percentage():
    before = _square()
    after = before.apply_edits([LinkEdit(0, forward_cost=10)])

    # D -> A uses the reverse cost of link 0, which did not change
    report = analyze_impact(before, after, [("A", "D"), ("D", "A"), ("A", "D")])

    assert report.analyzed_pairs == 2
    assert report.affected_count == 1
    assert report.affected_percentage == 50.0
    assert report.average_cost_change == 2


def test_identical_snapshots_have_no_impact():
    snap = _square()
    report = analyze_impact(snap, snap)

    assert report.analyzed_pairs == 12
    assert report.affected == ()
    assert report.link_deltas == ()
    assert report.local_impact == frozenset()
    assert report.downstream_impact == frozenset()
    assert report.affected_percentage == 0.0


def test_links_are_matched_by_stable_index_not_position():
    before = _square()
    after = TopologySnapshot(nodes=before.nodes, links=tuple(reversed(before.links)))

    report = analyze_impact(before, after)

    assert report.link_deltas == ()
    assert report.affected == ()


def test_broken_and_restored_pairs():
    before = _square()
    after = before.apply_edits(
        [LinkEdit(0, status=LinkStatus.DOWN), LinkEdit(2, status=LinkStatus.DOWN)]
    )

    broken = analyze_impact(before, after, [("A", "D"), ("D", "A")])
    assert [p.severity for p in broken.affected] == [Severity.BROKEN, Severity.BROKEN]
    assert all(p.after_path is None and p.cost_delta is None for p in broken.affected)
    assert broken.average_cost_change == 0.0

    restored = analyze_impact(after, before, [("A", "D")])
    assert restored.affected[0].severity is Severity.RESTORED


def test_changed_links_reports_deltas():
    before = _square()
    after = before.apply_edits([LinkEdit(0, forward_cost=10), LinkEdit(3, status=LinkStatus.DOWN)])

    deltas = changed_links(before, after)

    assert [d.stable_index for d in deltas] == [0, 3]
    assert deltas[0].forward_delta == 9
    assert deltas[0].reverse_delta == 0
    assert not deltas[0].status_changed
    assert deltas[1].status_changed
    assert deltas[1].endpoints == ("C", "D")


@pytest.mark.parametrize(
    "before,after,expected",
    [
        (100, 120, Severity.MINOR),
        (100, 151, Severity.MAJOR),
        (10, 16, Severity.MAJOR),
        (10, 14, Severity.MINOR),
        (10, 8, Severity.IMPROVED),
        (None, 5, Severity.RESTORED),
        (5, None, Severity.BROKEN),
    ],
)
def test_classify(before, after, expected):
    assert classify(before, after, EngineConfig()) is expected


def test_ranked_puts_broken_pairs_first():
    major = PairImpact("A", "B", 10, 100, None, None, Severity.MAJOR)
    small_major = PairImpact("A", "C", 10, 70, None, None, Severity.MAJOR)
    broken = PairImpact("A", "D", 10, None, None, None, Severity.BROKEN)
    report = ImpactReport(
        analyzed_pairs=3,
        affected=(major, small_major, broken),
        local_impact=frozenset(),
        downstream_impact=frozenset(),
        link_deltas=(),
    )

    assert report.ranked() == [broken, major, small_major]
    assert report.severity_counts()[Severity.MAJOR] == 2


def test_pair_ceiling_truncates():
    before = _square()
    after = before.apply_edits([LinkEdit(0, forward_cost=10)])

    report = analyze_impact(before, after, [("A", "D"), ("D", "A")], EngineConfig(max_impact_pairs=1))

    assert report.truncated
    assert report.analyzed_pairs == 1


def test_incomparable_snapshots_raise():
    before = _square()
    extra = TopologySnapshot(nodes=before.nodes + (Node("E", "X"),), links=before.links)
    regrouped = TopologySnapshot(
        nodes=(Node("A", "Y"),) + before.nodes[1:], links=before.links
    )

    with pytest.raises(TopologyValidationError):
        analyze_impact(before, extra)
    with pytest.raises(TopologyValidationError):
        analyze_impact(before, TopologySnapshot(nodes=before.nodes, links=before.links[:-1]))
    with pytest.raises(TopologyValidationError):
        analyze_impact(before, regrouped)


def test_unknown_node_in_pairs_raises():
    snap = _square()
    with pytest.raises(UnknownNodeError):
        analyze_impact(snap, snap, [("A", "Z")])


def test_pair_selection_helpers():
    nodes = (Node("a1", "A"), Node("a2", "A"), Node("b1", "B"))
    snap = TopologySnapshot(nodes=nodes, links=(Link(0, "a1", "b1", 1, 1),))

    assert len(node_pairs(snap)) == 6
    assert node_pairs(snap, sources=["a1"], targets=["a1", "b1"]) == [("a1", "b1")]
    assert group_pairs(snap) == [("a1", "b1"), ("a2", "b1"), ("b1", "a1"), ("b1", "a2")]
    assert group_pairs(snap, source_groups=["B"], dest_groups=["A"]) == [("b1", "a1"), ("b1", "a2")]


def test_rewired_link_under_same_index_is_rejected():
    before = _square()
    rewired = tuple(
        Link(0, "A", "D", 1, 1) if link.stable_index == 0 else link for link in before.links
    )
    swapped = tuple(
        Link(0, "B", "A", 1, 1) if link.stable_index == 0 else link for link in before.links
    )

    with pytest.raises(TopologyValidationError) as excinfo:
        analyze_impact(before, TopologySnapshot(nodes=before.nodes, links=rewired))
    assert excinfo.value.stable_index == 0
    with pytest.raises(TopologyValidationError):
        analyze_impact(before, TopologySnapshot(nodes=before.nodes, links=swapped))


def test_same_snapshots_give_same_report():
    before = _square()
    after = before.apply_edits([LinkEdit(0, forward_cost=10), LinkEdit(3, status=LinkStatus.DOWN)])

    first = analyze_impact(before, after)
    second = analyze_impact(before, after)

    assert first.affected_count > 0
    assert first == second
    assert first.ranked() == second.ranked()
