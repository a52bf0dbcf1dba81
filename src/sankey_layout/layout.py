"""Layout module — Sankey layout pipeline.

Phases:
  1. Link resolution (endpoints → nodes, per-node adjacency)
  2. Breadth assignment (column per node, box widths)
  3. Depth assignment (relaxation + collision resolution)
  4. Link depths (band stacking offsets)
  5. Breadth centering (narrow boxes centred in their column)

Every pass mutates the ``SankeyGraph`` it is given. ``SankeyLayout`` runs
them in order and returns the decorated graph with any warnings raised on the
way.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import networkx as nx
import structlog

from sankey_layout.config import LayoutConfig
from sankey_layout.errors import (
    ConfigError,
    CyclicGraph,
    DegenerateValue,
    InvalidReference,
    LayoutWarning,
    OverfullColumn,
)
from sankey_layout.graph import Endpoint, Link, Node, SankeyGraph

log = structlog.get_logger(__name__)

# Relaxation step decay applied before every right-to-left pass.
ALPHA_DECAY: float = 0.99

# Tolerance when deciding whether a packed column spilled above the canvas.
_EPSILON: float = 1e-6


def _warn(warnings: list[LayoutWarning], warning: LayoutWarning) -> None:
    warnings.append(warning)
    log.warning("layout_warning", code=warning.code, message=warning.message, **warning.context)


def _ratio(part: float, total: float) -> float:
    """``part / total``, or 0 when the total is zero."""
    return part / total if total else 0.0


# ─── Link Resolution ──────────────────────────────────────────────────────────


def resolve_links(graph: SankeyGraph) -> None:
    """Resolve link endpoints and rebuild every node's adjacency lists.

    Integer endpoints are replaced by ``graph.nodes[i]``. Each link is then
    appended to its source's ``source_links`` and its target's
    ``target_links`` in the order the links were supplied.

    All endpoints are checked before anything is mutated, so a bad reference
    leaves the graph as it was.

    Raises:
        InvalidReference: an index is out of range (negative included), an
            endpoint is neither an int nor a Node, or a Node belongs to
            another graph.
    """
    for i, node in enumerate(graph.nodes):
        node.index = i

    resolved: list[tuple[Node, Node]] = []
    for link_index, link in enumerate(graph.links):
        source = _resolve_endpoint(graph, link.source, link_index, "source")
        target = _resolve_endpoint(graph, link.target, link_index, "target")
        resolved.append((source, target))

    for node in graph.nodes:
        node.source_links = []
        node.target_links = []

    for link, (source, target) in zip(graph.links, resolved):
        link.source = source
        link.target = target
        source.source_links.append(link)
        target.target_links.append(link)

    log.debug("links_resolved", nodes=len(graph.nodes), links=len(graph.links))


def _resolve_endpoint(graph: SankeyGraph, endpoint: Endpoint, link_index: int, side: str) -> Node:
    if isinstance(endpoint, Node):
        idx = endpoint.index
        if 0 <= idx < len(graph.nodes) and graph.nodes[idx] is endpoint:
            return endpoint
        raise InvalidReference(link_index, side, endpoint, "is not a node of this graph")
    if isinstance(endpoint, int) and not isinstance(endpoint, bool):
        if 0 <= endpoint < len(graph.nodes):
            return graph.nodes[endpoint]
        raise InvalidReference(link_index, side, endpoint, f"is out of range for {len(graph.nodes)} nodes")
    raise InvalidReference(link_index, side, endpoint, "is neither a node index nor a Node")


def check_acyclic(graph: SankeyGraph) -> None:
    """Reject link graphs with a directed cycle (self-loops included).

    The breadth sweep follows outgoing links until it runs out of nodes, so a
    cycle would keep it going forever.

    Raises:
        CyclicGraph: carrying the node indices along one offending cycle.
    """
    try:
        edges = nx.find_cycle(graph.to_digraph())
    except nx.NetworkXNoCycle:
        return
    cycle = [src for src, _tgt in edges]
    cycle.append(edges[0][0])
    raise CyclicGraph(cycle)


# ─── Breadth Assignment ───────────────────────────────────────────────────────


def compute_node_breadths(
    graph: SankeyGraph,
    config: LayoutConfig,
    warnings: list[LayoutWarning] | None = None,
) -> int:
    """Assign every node a column and a box width, then map columns to pixels.

    Algorithm: start with every node in the frontier at column 0. Each sweep
    puts the frontier in the current column and replaces it with the
    deduplicated targets of its outgoing links, so a node ends up one column
    past its longest chain of predecessors. Then sinks move to the last
    column and sources (checked second, so they win) to column 0.

    Box width is the larger of the node's share of total node value and
    its largest incident link's share of total link value, mapped onto
    ``[min_node_width, max_node_width]``. A zero total makes its share 0.

    Finally ``x = column * (width - widest_box) / (columns - 1)``; a single
    column graph puts everything at x = 0.

    Links must be resolved and acyclic. Returns the number of columns.
    """
    if warnings is None:
        warnings = []
    if not graph.nodes:
        return 0

    total_nodes_value = sum(node.value for node in graph.nodes)
    total_links_value = sum(link.value for link in graph.links)
    if not total_nodes_value:
        _warn(
            warnings,
            DegenerateValue(
                message="total node value is zero; node widths fall back to link shares",
                context={"quantity": "node_value"},
            ),
        )
    if not total_links_value:
        _warn(
            warnings,
            DegenerateValue(
                message="total link value is zero; link shares and thicknesses clamp to 0",
                context={"quantity": "link_value"},
            ),
        )

    min_w = config.min_node_width
    span = config.max_node_width - config.min_node_width

    remaining: list[Node] = list(graph.nodes)
    column = 0
    while remaining:
        next_nodes: list[Node] = []
        seen: set[int] = set()
        for node in remaining:
            node.column = column

            ms = max((link.value for link in node.source_links), default=0.0)
            mt = max((link.value for link in node.target_links), default=0.0)
            node.dx = max(
                min_w + span * _ratio(node.value, total_nodes_value),
                min_w + span * _ratio(max(ms, mt), total_links_value),
            )

            for link in node.source_links:
                target = link.target
                if target.index not in seen:
                    seen.add(target.index)
                    next_nodes.append(target)
        remaining = next_nodes
        column += 1

    for node in graph.nodes:
        if not node.source_links:
            node.column = column - 1
    for node in graph.nodes:
        if not node.target_links:
            node.column = 0

    widest = max(node.dx for node in graph.nodes)
    kx = max(0.0, (config.width - widest) / (column - 1)) if column > 1 else 0.0
    for node in graph.nodes:
        node.x = node.column * kx

    log.debug("breadths_assigned", nodes=len(graph.nodes), columns=column, kx=kx)
    return column


# ─── Depth Assignment ─────────────────────────────────────────────────────────


def compute_node_depths(
    graph: SankeyGraph,
    config: LayoutConfig,
    iterations: int,
    warnings: list[LayoutWarning] | None = None,
) -> None:
    """Assign every node a vertical position and height; size every link.

    Heights come from one vertical scale shared by all columns, chosen so
    the most crowded column exactly fills the canvas. Positions then go
    through ``iterations`` rounds of relaxation: nodes are pulled toward
    the value-weighted centre of their targets (right to left), then of their
    sources (left to right), with collision resolution after each half step.
    The pull strength ``alpha`` decays by ``ALPHA_DECAY`` every round. There
    is no convergence test; exactly ``iterations`` rounds run.
    """
    if warnings is None:
        warnings = []
    if not graph.nodes:
        return

    columns = graph.nodes_by_column()
    overfull = _initialize_node_depths(graph, columns, config, warnings)
    overfull |= resolve_collisions(columns, config)

    alpha = 1.0
    for _ in range(iterations):
        alpha *= ALPHA_DECAY
        _relax_right_to_left(columns, alpha)
        overfull |= resolve_collisions(columns, config)
        _relax_left_to_right(columns, alpha)
        overfull |= resolve_collisions(columns, config)

    for column in sorted(overfull):
        _warn(
            warnings,
            OverfullColumn(
                message=f"column {column} does not fit the canvas height; its top node sits above 0",
                context={"column": column},
            ),
        )

    log.debug("depths_assigned", columns=len(columns), iterations=iterations, alpha=alpha)


def _initialize_node_depths(
    graph: SankeyGraph,
    columns: list[list[Node]],
    config: LayoutConfig,
    warnings: list[LayoutWarning],
) -> set[int]:
    """Set ``dy``/placeholder ``y`` on nodes and ``dy`` on links.

    Returns the columns that cannot fit even their padding.
    """
    height = config.height
    padding = config.node_padding

    overfull: set[int] = set()
    ky: float | None = None
    for nodes in columns:
        total_dx = sum(node.dx for node in nodes)
        room = height - (len(nodes) - 1) * padding
        if room < 0:
            overfull.add(nodes[0].column)
        if not total_dx:
            continue
        scale = room / total_dx
        if ky is None or scale < ky:
            ky = scale
    ky = max(0.0, ky or 0.0)

    for nodes in columns:
        for i, node in enumerate(nodes):
            node.y = float(i)
            node.dy = node.dx * ky

    total_links_value = sum(link.value for link in graph.links)
    for link in graph.links:
        link.dy = config.max_node_width * _ratio(link.value, total_links_value)

    # Zero-weight sides cannot form a barycenter; relaxation leaves them be.
    for node in graph.nodes:
        for side, links in (("source_links", node.source_links), ("target_links", node.target_links)):
            if links and not sum(link.value for link in links):
                _warn(
                    warnings,
                    DegenerateValue(
                        message=f"node {node.index} has {side} whose values sum to zero",
                        context={"quantity": side, "node": node.index},
                    ),
                )

    return overfull


def _relax_left_to_right(columns: list[list[Node]], alpha: float) -> None:
    """Pull each node toward the value-weighted centre of its sources."""
    for nodes in columns:
        for node in nodes:
            if not node.target_links:
                continue
            weight = sum(link.value for link in node.target_links)
            if not weight:
                continue
            y = sum(link.source.center * link.value for link in node.target_links) / weight
            node.y += (y - node.center) * alpha


def _relax_right_to_left(columns: list[list[Node]], alpha: float) -> None:
    """Pull each node toward the value-weighted centre of its targets."""
    for nodes in reversed(columns):
        for node in nodes:
            if not node.source_links:
                continue
            weight = sum(link.value for link in node.source_links)
            if not weight:
                continue
            y = sum(link.target.center * link.value for link in node.source_links) / weight
            node.y += (y - node.center) * alpha


def resolve_collisions(columns: list[list[Node]], config: LayoutConfig) -> set[int]:
    """Push overlapping nodes apart, column by column.

    Each column list is sorted in place by ``y``. A top-down sweep pushes
    nodes down until consecutive boxes are ``node_padding`` apart. If the
    last box then ends below the canvas, it is moved up to fit and a
    bottom-up sweep pushes the nodes above it up in turn. A column whose
    content cannot fit ends with its top node above 0; those columns are
    returned.
    """
    height = config.height
    padding = config.node_padding

    overfull: set[int] = set()
    for nodes in columns:
        if not nodes:
            continue

        # Push any overlapping nodes down.
        nodes.sort(key=lambda n: n.y)
        y0 = 0.0
        for node in nodes:
            dy = y0 - node.y
            if dy > 0:
                node.y += dy
            y0 = node.y + node.dy + padding

        # If the bottommost node goes outside the bounds, push it back up.
        dy = y0 - padding - height
        if dy > 0:
            last = nodes[-1]
            last.y -= dy
            y0 = last.y

            # Push any overlapping nodes back up.
            for node in reversed(nodes[:-1]):
                dy = node.y + node.dy + padding - y0
                if dy > 0:
                    node.y -= dy
                y0 = node.y

            if nodes[0].y < -_EPSILON:
                overfull.add(nodes[0].column)

    return overfull


# ─── Link Depths ──────────────────────────────────────────────────────────────


def compute_link_depths(graph: SankeyGraph) -> None:
    """Order each node's links by the far end's depth and stack them.

    Outgoing links are sorted by target ``y``, incoming links by source
    ``y`` (stable, so ties keep supply order). Offsets ``sy``/``ty`` then
    accumulate link thickness from 0, so bands never overlap at a node.
    """
    for node in graph.nodes:
        node.source_links.sort(key=lambda link: link.target.y)
        node.target_links.sort(key=lambda link: link.source.y)

    for node in graph.nodes:
        sy = 0.0
        for link in node.source_links:
            link.sy = sy
            sy += link.dy
        ty = 0.0
        for link in node.target_links:
            link.ty = ty
            ty += link.dy

    log.debug("link_depths_assigned", links=len(graph.links))


# ─── Breadth Centering ────────────────────────────────────────────────────────


def center_node_breadths(graph: SankeyGraph) -> None:
    """Centre every box horizontally against the widest box of its column."""
    for nodes in graph.nodes_by_column():
        widest = max(node.dx for node in nodes)
        for node in nodes:
            node.x += (widest - node.dx) / 2


# ─── Full Layout Pipeline ─────────────────────────────────────────────────────


@dataclass
class LayoutResult:
    """A laid-out graph plus the recoverable problems met on the way."""

    graph: SankeyGraph
    config: LayoutConfig
    warnings: list[LayoutWarning] = field(default_factory=list)

    @property
    def nodes(self) -> list[Node]:
        return self.graph.nodes

    @property
    def links(self) -> list[Link]:
        return self.graph.links


class SankeyLayout:
    """Runs the layout passes with one fixed configuration.

    The instance keeps no graph state between calls; a graph handed to
    ``layout`` is decorated in place and returned on the result. Do not lay
    out the same graph from two threads at once.
    """

    def __init__(self, config: LayoutConfig | None = None) -> None:
        self.config = config if config is not None else LayoutConfig()

    def layout(self, graph: SankeyGraph, iterations: int | None = None) -> LayoutResult:
        """Run all five passes on ``graph``.

        Args:
            graph: The graph to lay out; its nodes and links are mutated.
            iterations: Relaxation rounds; defaults to ``config.iterations``.

        Raises:
            InvalidReference: a link endpoint does not resolve.
            CyclicGraph: the link graph has a directed cycle.
            ConfigError: ``iterations`` is negative.
        """
        if iterations is None:
            iterations = self.config.iterations
        if iterations < 0:
            raise ConfigError(f"iterations must be >= 0, got {iterations}")

        warnings: list[LayoutWarning] = []
        resolve_links(graph)
        check_acyclic(graph)
        compute_node_breadths(graph, self.config, warnings)
        compute_node_depths(graph, self.config, iterations, warnings)
        compute_link_depths(graph)
        center_node_breadths(graph)

        log.debug("layout_done", nodes=len(graph.nodes), links=len(graph.links), warnings=len(warnings))
        return LayoutResult(graph=graph, config=self.config, warnings=warnings)

    def relayout(self, graph: SankeyGraph) -> LayoutResult:
        """Restack link bands after nodes were moved by hand.

        Only the link depth pass runs; breadths and depths are kept as they
        are. Running it twice gives the same offsets.
        """
        compute_link_depths(graph)
        return LayoutResult(graph=graph, config=self.config)


def layout(
    graph: SankeyGraph,
    config: LayoutConfig | None = None,
    iterations: int | None = None,
) -> LayoutResult:
    """Lay out ``graph`` with ``config`` (defaults when omitted)."""
    return SankeyLayout(config).layout(graph, iterations)


def relayout(graph: SankeyGraph, config: LayoutConfig) -> LayoutResult:
    """Re-run only the link depth pass on an already laid-out graph.

    ``config`` must be the one the graph was laid out with; the result carries
    it, and renderers take the canvas size and curvature from there.
    """
    return SankeyLayout(config).relayout(graph)
