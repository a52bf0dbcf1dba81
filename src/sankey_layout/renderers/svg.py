"""SVG renderer — renders a laid-out Sankey graph to an SVG string."""

from __future__ import annotations

from sankey_layout.config import DEFAULT_CURVATURE, check_curvature
from sankey_layout.graph import Link, Node
from sankey_layout.layout import LayoutResult

# ─── Constants ──────────────────────────────────────────────────────────────

LINK_STROKE = "#000"
LINK_OPACITY = 0.2
MIN_LINK_STROKE = 1.0

_NODE_STYLE = 'fill="#4682b4" stroke="#2f4f6f" stroke-width="1"'


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _num(value: float) -> str:
    """Format a coordinate: integers without a decimal point, others to 3 places."""
    rounded = round(float(value), 3)
    if rounded.is_integer():
        return str(int(rounded))
    return repr(rounded)


# ─── Link Paths ─────────────────────────────────────────────────────────────


def link_path(link: Link, curvature: float = DEFAULT_CURVATURE) -> str:
    """Return the SVG path of a link as one cubic bezier.

    Both ends are anchored at ``x + dx / 2`` horizontally and ``y + dx / 2``
    vertically of their node (``dx``, not ``dy``, on both axes). The control
    points share the end points' heights and sit at ``curvature`` and
    ``1 - curvature`` of the way from source to target.

    Raises:
        ConfigError: ``curvature`` is outside [0, 1].
    """
    check_curvature(curvature)
    source, target = link.source, link.target
    x0 = source.x + source.dx / 2
    x1 = target.x + target.dx / 2
    x2 = x0 + (x1 - x0) * curvature
    x3 = x0 + (x1 - x0) * (1 - curvature)
    y0 = source.y + source.dx / 2
    y1 = target.y + target.dx / 2
    return f"M{_num(x0)},{_num(y0)}C{_num(x2)},{_num(y0)} {_num(x3)},{_num(y1)} {_num(x1)},{_num(y1)}"


# ─── Shape Rendering ────────────────────────────────────────────────────────


def _render_link(link: Link, curvature: float) -> str:
    width = max(MIN_LINK_STROKE, link.dy)
    return (
        f'<path d="{link_path(link, curvature)}" fill="none" stroke="{LINK_STROKE}" '
        f'stroke-opacity="{LINK_OPACITY}" stroke-width="{_num(width)}"/>'
    )


def _render_node(node: Node) -> str:
    rect = f'<rect x="{_num(node.x)}" y="{_num(node.y)}" width="{_num(node.dx)}" height="{_num(node.dy)}" {_NODE_STYLE}'
    if node.id is None:
        return rect + "/>"
    label = _escape(str(node.id))
    return f"{rect}><title>{label}</title></rect>"


# ─── Public Renderer ────────────────────────────────────────────────────────


class SvgRenderer:
    """SVG renderer — consumes a LayoutResult, produces an SVG string."""

    def __init__(self, curvature: float | None = None) -> None:
        self.curvature = None if curvature is None else check_curvature(curvature)

    def render(self, result: LayoutResult) -> str:
        nodes = result.nodes
        if not nodes:
            return ""

        curvature = self.curvature if self.curvature is not None else result.config.curvature
        svg_w, svg_h = (_num(v) for v in result.config.size)

        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{svg_w}" height="{svg_h}" viewBox="0 0 {svg_w} {svg_h}">',
            '<g class="links">',
        ]
        # Links (behind nodes)
        for link in result.links:
            parts.append(_render_link(link, curvature))
        parts.append("</g>")

        # Nodes (on top)
        parts.append('<g class="nodes">')
        for node in nodes:
            parts.append(_render_node(node))
        parts.append("</g>")

        parts.append("</svg>")
        return "\n".join(parts)
