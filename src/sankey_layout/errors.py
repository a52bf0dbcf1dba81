"""Error and warning taxonomy for the Sankey layout pipeline.

Fatal problems are exceptions rooted at ``SankeyLayoutError``. Recoverable
data problems are ``LayoutWarning`` records: the layout carries on with a
clamped value, logs the warning, and hands it back on ``LayoutResult``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class SankeyLayoutError(Exception):
    """Base class for every error raised by sankey_layout."""


class ConfigError(SankeyLayoutError, ValueError):
    """Raised when a ``LayoutConfig`` value is out of range."""


class InvalidReference(SankeyLayoutError, LookupError):
    """Raised when a link endpoint does not resolve to a node of the graph."""

    def __init__(self, link_index: int, endpoint: str, reference: object, reason: str) -> None:
        self.link_index = link_index
        self.endpoint = endpoint
        self.reference = reference
        super().__init__(f"link {link_index}: {endpoint} {reference!r} {reason}")


class CyclicGraph(SankeyLayoutError):
    """Raised when the link graph contains a directed cycle.

    ``cycle`` lists the node indices along the cycle, first node repeated
    at the end.
    """

    def __init__(self, cycle: list[int]) -> None:
        self.cycle = cycle
        if cycle:
            path = " -> ".join(str(i) for i in cycle)
            super().__init__(f"Link graph contains a cycle: {path}")
        else:
            super().__init__("Link graph contains a cycle")


# ─── Warnings ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LayoutWarning:
    """A recoverable problem found while laying out a graph."""

    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DegenerateValue(LayoutWarning):
    """A total used as a divisor is zero; the dependent share was clamped."""

    code: str = "DEGENERATE_VALUE"
    message: str = ""


@dataclass(frozen=True)
class OverfullColumn(LayoutWarning):
    """A column does not fit the canvas height; its top node sits above 0."""

    code: str = "OVERFULL_COLUMN"
    message: str = ""
