"""Graph model — nodes, links and the container the layout passes mutate.

A ``SankeyGraph`` owns its ``Node`` and ``Link`` objects. Layout passes
decorate them in place, so hand a graph to the layout only when you are done
editing it (or ``copy.deepcopy`` it first). ``SankeyGraph.from_records``
builds fresh objects from plain mappings and never touches the records.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import networkx as nx

from sankey_layout.errors import InvalidReference


@dataclass(eq=False)
class Node:
    """A node box.

    ``value`` is supplied by the caller and never derived from links.
    Geometry fields are filled in by the layout passes: ``column`` is the
    integer breadth, ``x``/``y`` the top-left corner and ``dx``/``dy`` the box
    size, all in pixels.
    """

    value: float
    id: Any = None
    index: int = -1
    column: int = 0
    x: float = 0.0
    dx: float = 0.0
    y: float = 0.0
    dy: float = 0.0
    source_links: list[Link] = field(default_factory=list)
    target_links: list[Link] = field(default_factory=list)

    @property
    def center(self) -> float:
        """Vertical centre of the box."""
        return self.y + self.dy / 2

    def __repr__(self) -> str:
        label = self.id if self.id is not None else self.index
        return f"Node({label!r}, value={self.value}, x={self.x:g}, y={self.y:g}, dx={self.dx:g}, dy={self.dy:g})"


# A link endpoint before resolution: an index into ``SankeyGraph.nodes`` or
# the node itself. After ``resolve_links`` every endpoint is a ``Node``.
Endpoint = int | Node


@dataclass(eq=False)
class Link:
    """A directed flow band from ``source`` to ``target``."""

    source: Endpoint
    target: Endpoint
    value: float
    id: Any = None
    dy: float = 0.0
    sy: float = 0.0
    ty: float = 0.0

    def __repr__(self) -> str:
        return f"Link({_endpoint_label(self.source)!r} -> {_endpoint_label(self.target)!r}, value={self.value})"


def _endpoint_label(endpoint: Endpoint) -> Any:
    if isinstance(endpoint, Node):
        return endpoint.id if endpoint.id is not None else endpoint.index
    return endpoint


class SankeyGraph:
    """The node and link collections a layout run works on.

    Attributes:
        nodes: Nodes in caller order. The order breaks ties when columns are
            first grouped and gives every node its ``index``.
        links: Links in caller order; their endpoints may still be indices
            until the layout resolves them.
    """

    def __init__(self, nodes: Iterable[Node] = (), links: Iterable[Link] = ()) -> None:
        self.nodes: list[Node] = list(nodes)
        self.links: list[Link] = list(links)
        for i, node in enumerate(self.nodes):
            node.index = i

    @classmethod
    def from_records(
        cls,
        nodes: Iterable[Mapping[str, Any]],
        links: Iterable[Mapping[str, Any]],
    ) -> SankeyGraph:
        """Build a graph from plain mappings without mutating them.

        Node records need ``value`` and may carry ``id`` (or ``name``).
        Link records need ``source``, ``target`` and ``value``; endpoints are
        either int indices or node ids.
        """
        built_nodes: list[Node] = []
        by_id: dict[Any, Node] = {}
        for record in nodes:
            node_id = record.get("id", record.get("name"))
            node = Node(value=float(record.get("value", 0.0)), id=node_id)
            built_nodes.append(node)
            if node_id is not None:
                by_id[node_id] = node

        built_links: list[Link] = []
        for i, record in enumerate(links):
            built_links.append(
                Link(
                    source=_record_endpoint(record.get("source"), by_id, i, "source"),
                    target=_record_endpoint(record.get("target"), by_id, i, "target"),
                    value=float(record.get("value", 0.0)),
                    id=record.get("id"),
                )
            )
        return cls(built_nodes, built_links)

    def sources(self) -> list[Node]:
        """Nodes without incoming links."""
        return [n for n in self.nodes if not n.target_links]

    def sinks(self) -> list[Node]:
        """Nodes without outgoing links."""
        return [n for n in self.nodes if not n.source_links]

    def nodes_by_column(self) -> list[list[Node]]:
        """Group nodes by ``column``, columns ascending, caller order within."""
        columns: dict[int, list[Node]] = {}
        for node in self.nodes:
            columns.setdefault(node.column, []).append(node)
        return [columns[c] for c in sorted(columns)]

    def to_digraph(self) -> nx.DiGraph:
        """Return the resolved link graph as a DiGraph over node indices.

        Parallel links are merged into one edge whose ``value`` is their sum.
        Links must already be resolved.
        """
        g: nx.DiGraph = nx.DiGraph()
        for node in self.nodes:
            g.add_node(node.index, id=node.id, value=node.value)
        for link in self.links:
            src, tgt = link.source.index, link.target.index
            if g.has_edge(src, tgt):
                g[src][tgt]["value"] += link.value
            else:
                g.add_edge(src, tgt, value=link.value)
        return g

    def __repr__(self) -> str:
        return f"SankeyGraph(nodes={len(self.nodes)}, links={len(self.links)})"


def _record_endpoint(reference: Any, by_id: dict[Any, Node], link_index: int, endpoint: str) -> Endpoint:
    """Turn a record endpoint into an index or a node (ids are looked up)."""
    if isinstance(reference, int) and not isinstance(reference, bool):
        return reference
    if isinstance(reference, Hashable) and reference in by_id:
        return by_id[reference]
    raise InvalidReference(link_index, endpoint, reference, "does not name a node")
