"""Renderers turning a laid-out graph into drawable output."""

from sankey_layout.renderers.base import Renderer
from sankey_layout.renderers.svg import SvgRenderer, link_path

__all__ = ["Renderer", "SvgRenderer", "link_path"]
