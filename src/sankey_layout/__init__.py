"""sankey_layout — node and link geometry for Sankey diagrams."""

from sankey_layout.api import layout_records, render_svg
from sankey_layout.config import LayoutConfig
from sankey_layout.errors import (
    ConfigError,
    CyclicGraph,
    DegenerateValue,
    InvalidReference,
    LayoutWarning,
    OverfullColumn,
    SankeyLayoutError,
)
from sankey_layout.graph import Link, Node, SankeyGraph
from sankey_layout.layout import LayoutResult, SankeyLayout, layout, relayout

__all__ = [
    "ConfigError",
    "CyclicGraph",
    "DegenerateValue",
    "InvalidReference",
    "LayoutConfig",
    "LayoutResult",
    "LayoutWarning",
    "Link",
    "Node",
    "OverfullColumn",
    "SankeyGraph",
    "SankeyLayout",
    "SankeyLayoutError",
    "layout",
    "layout_records",
    "relayout",
    "render_svg",
]
