"""
Topology records for netripple.

Nodes and links arrive from an external loader as plain records. Everything
here is immutable: a what-if edit produces a new TopologySnapshot rather than
touching the one it was derived from.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import math


class TopologyValidationError(ValueError):
    """
    Raised when a node/link list cannot be turned into a graph.

    Carries the offending link's stable index and/or node id so callers can
    point at the bad record.
    """

    def __init__(
        self,
        reason: str,
        stable_index: Optional[int] = None,
        node_id: Optional[str] = None,
    ) -> None:
        self.reason = reason
        self.stable_index = stable_index
        self.node_id = node_id
        where = []
        if stable_index is not None:
            where.append(f"link {stable_index}")
        if node_id is not None:
            where.append(f"node {node_id!r}")
        prefix = f"{', '.join(where)}: " if where else ""
        super().__init__(f"{prefix}{reason}")


class UnknownNodeError(KeyError):
    """Query endpoint is not part of the graph."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(node_id)

    def __str__(self) -> str:
        return f"unknown node {self.node_id!r}"


class LinkStatus(Enum):
    UP = "up"
    DOWN = "down"

    @classmethod
    def parse(cls, value: Any) -> "LinkStatus":
        if isinstance(value, LinkStatus):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"unknown link status {value!r}")


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class Node:
    """A router. ``group`` (country, region) is only used for aggregation."""

    id: str
    group: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Node":
        node_id = data.get("id")
        if not _is_text(node_id):
            raise TopologyValidationError(f"node id must be a non-empty string, got {node_id!r}")
        group = data.get("group")
        if not _is_text(group):
            raise TopologyValidationError(
                f"group must be a non-empty string, got {group!r}", node_id=node_id
            )
        return cls(id=node_id, group=group)


@dataclass(frozen=True)
class Link:
    """
    Undirected physical link with independent per-direction OSPF costs.

    forward_cost applies to endpoint_a -> endpoint_b and reverse_cost to
    endpoint_b -> endpoint_a. Both are required; neither is ever derived from
    the other.
    """

    stable_index: int
    endpoint_a: str
    endpoint_b: str
    forward_cost: float
    reverse_cost: float
    status: LinkStatus = LinkStatus.UP

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Link":
        stable_index = data.get("stable_index")
        if not _is_index(stable_index):
            raise TopologyValidationError(f"stable_index must be an integer, got {stable_index!r}")
        missing = [
            key
            for key in ("endpoint_a", "endpoint_b", "forward_cost", "reverse_cost")
            if key not in data
        ]
        if missing:
            raise TopologyValidationError(
                f"missing field(s) {', '.join(missing)}", stable_index=stable_index
            )
        for key in ("endpoint_a", "endpoint_b"):
            if not _is_text(data[key]):
                raise TopologyValidationError(
                    f"{key} must be a non-empty string, got {data[key]!r}",
                    stable_index=stable_index,
                )
        try:
            status = LinkStatus.parse(data.get("status", LinkStatus.UP))
        except ValueError as exc:
            raise TopologyValidationError(str(exc), stable_index=stable_index) from exc
        return cls(
            stable_index=stable_index,
            endpoint_a=data["endpoint_a"],
            endpoint_b=data["endpoint_b"],
            forward_cost=data["forward_cost"],
            reverse_cost=data["reverse_cost"],
            status=status,
        )

    @property
    def is_up(self) -> bool:
        return self.status is LinkStatus.UP

    @property
    def endpoints(self) -> Tuple[str, str]:
        return (self.endpoint_a, self.endpoint_b)

    def is_symmetric(self) -> bool:
        return self.forward_cost == self.reverse_cost


@dataclass(frozen=True)
class LinkEdit:
    """
    Override for one link, keyed by stable index.

    Fields left as None keep the link's current value.
    """

    stable_index: int
    forward_cost: Optional[float] = None
    reverse_cost: Optional[float] = None
    status: Optional[LinkStatus] = None

    def apply(self, link: Link) -> Link:
        changes: Dict[str, Any] = {}
        if self.forward_cost is not None:
            changes["forward_cost"] = self.forward_cost
        if self.reverse_cost is not None:
            changes["reverse_cost"] = self.reverse_cost
        if self.status is not None:
            changes["status"] = LinkStatus.parse(self.status)
        return replace(link, **changes)


def _check_cost(link: Link, name: str) -> None:
    cost = getattr(link, name)
    # bool is an int subclass; True must not silently mean cost 1.
    if isinstance(cost, bool) or not isinstance(cost, (int, float)):
        raise TopologyValidationError(
            f"{name} must be a number, got {cost!r}", stable_index=link.stable_index
        )
    if not math.isfinite(cost) or cost <= 0:
        raise TopologyValidationError(
            f"{name} must be positive and finite, got {cost!r}",
            stable_index=link.stable_index,
        )


def validate_topology(nodes: Iterable[Node], links: Iterable[Link]) -> None:
    """
    Reject malformed topology before any algorithm runs.

    Raises
    ------
    TopologyValidationError
        On duplicate node ids or stable indexes, links whose endpoints are
        not in ``nodes``, costs that are not positive finite numbers, or an
        unrecognised status.
    """

    node_ids = set()
    for node in nodes:
        if not _is_text(node.id):
            raise TopologyValidationError(f"node id must be a non-empty string, got {node.id!r}")
        if not _is_text(node.group):
            raise TopologyValidationError("group must be a non-empty string", node_id=node.id)
        if node.id in node_ids:
            raise TopologyValidationError("duplicate node id", node_id=node.id)
        node_ids.add(node.id)

    seen_indexes = set()
    for link in links:
        if not _is_index(link.stable_index):
            raise TopologyValidationError(
                f"stable_index must be an integer, got {link.stable_index!r}"
            )
        if link.stable_index in seen_indexes:
            raise TopologyValidationError("duplicate stable index", stable_index=link.stable_index)
        seen_indexes.add(link.stable_index)

        for endpoint in link.endpoints:
            if endpoint not in node_ids:
                raise TopologyValidationError(
                    "endpoint not present in node list",
                    stable_index=link.stable_index,
                    node_id=endpoint,
                )
        if not isinstance(link.status, LinkStatus):
            raise TopologyValidationError(
                f"unknown link status {link.status!r}", stable_index=link.stable_index
            )
        _check_cost(link, "forward_cost")
        _check_cost(link, "reverse_cost")


@dataclass(frozen=True)
class TopologySnapshot:
    """
    Immutable (nodes, links) pair at one instant.

    Construction validates the topology; a snapshot that exists is always
    well formed.
    """

    nodes: Tuple[Node, ...]
    links: Tuple[Link, ...]
    _node_index: Dict[str, Node] = field(init=False, repr=False, compare=False)
    _link_index: Dict[int, Link] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "links", tuple(self.links))
        validate_topology(self.nodes, self.links)
        object.__setattr__(self, "_node_index", {n.id: n for n in self.nodes})
        object.__setattr__(self, "_link_index", {l.stable_index: l for l in self.links})

    @classmethod
    def from_records(
        cls,
        nodes: Iterable[Mapping[str, Any]],
        links: Iterable[Mapping[str, Any]],
    ) -> "TopologySnapshot":
        return cls(
            nodes=tuple(Node.from_mapping(n) for n in nodes),
            links=tuple(Link.from_mapping(l) for l in links),
        )

    def node(self, node_id: str) -> Node:
        try:
            return self._node_index[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def link(self, stable_index: int) -> Link:
        try:
            return self._link_index[stable_index]
        except KeyError:
            raise TopologyValidationError("no such link", stable_index=stable_index) from None

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    @property
    def node_ids(self) -> Tuple[str, ...]:
        return tuple(n.id for n in self.nodes)

    @property
    def stable_indexes(self) -> Tuple[int, ...]:
        return tuple(l.stable_index for l in self.links)

    def group_of(self) -> Dict[str, str]:
        """node id -> group."""
        return {n.id: n.group for n in self.nodes}

    def groups(self) -> List[str]:
        return sorted({n.group for n in self.nodes})

    def nodes_by_group(self) -> Dict[str, List[str]]:
        """group -> node ids, groups sorted, nodes in snapshot order."""
        grouped: Dict[str, List[str]] = {g: [] for g in self.groups()}
        for node in self.nodes:
            grouped[node.group].append(node.id)
        return grouped

    def apply_edits(self, edits: Sequence[LinkEdit]) -> "TopologySnapshot":
        """
        Return a new snapshot with ``edits`` applied by stable index.

        Later edits for the same link win. The result is validated like any
        other snapshot, so an edit that sets a non-positive cost is rejected.
        """
        by_index: Dict[int, List[LinkEdit]] = {}
        for edit in edits:
            if edit.stable_index not in self._link_index:
                raise TopologyValidationError("edit targets unknown link", stable_index=edit.stable_index)
            by_index.setdefault(edit.stable_index, []).append(edit)

        new_links = []
        for link in self.links:
            for edit in by_index.get(link.stable_index, ()):
                link = edit.apply(link)
            new_links.append(link)
        return TopologySnapshot(nodes=self.nodes, links=tuple(new_links))
