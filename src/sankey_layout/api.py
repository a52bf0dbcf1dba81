"""Public API — build, lay out and render a Sankey graph in one call."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sankey_layout.config import LayoutConfig
from sankey_layout.graph import SankeyGraph
from sankey_layout.layout import LayoutResult, SankeyLayout
from sankey_layout.renderers.svg import SvgRenderer


def layout_records(
    nodes: Iterable[Mapping[str, Any]],
    links: Iterable[Mapping[str, Any]],
    config: LayoutConfig | None = None,
    iterations: int | None = None,
) -> LayoutResult:
    """Lay out a graph given as plain node/link records.

    The records are copied into a fresh ``SankeyGraph``; they are not mutated.
    """
    graph = SankeyGraph.from_records(nodes, links)
    return SankeyLayout(config).layout(graph, iterations)


def render_svg(
    nodes: Iterable[Mapping[str, Any]],
    links: Iterable[Mapping[str, Any]],
    config: LayoutConfig | None = None,
    iterations: int | None = None,
) -> str:
    """Lay out node/link records and render the result to SVG."""
    return SvgRenderer().render(layout_records(nodes, links, config, iterations))
