"""Layout configuration.

``LayoutConfig`` is immutable: one instance can be shared by any number of
layout runs. Defaults match the classic d3 Sankey layout.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sankey_layout.errors import ConfigError

DEFAULT_SIZE: tuple[float, float] = (1.0, 1.0)
DEFAULT_MIN_NODE_WIDTH: float = 16.0
DEFAULT_MAX_NODE_WIDTH: float = 80.0
DEFAULT_NODE_PADDING: float = 8.0
DEFAULT_ITERATIONS: int = 32
DEFAULT_CURVATURE: float = 0.5


@dataclass(frozen=True)
class LayoutConfig:
    """Canvas bounds and sizing knobs for a layout run.

    Attributes:
        size: Canvas ``(width, height)`` in pixels.
        min_node_width: Lower bound of a node box width (``dx``).
        max_node_width: Upper bound of a node box width; also the thickness
            a link carrying the whole flow would get.
        node_padding: Minimum vertical gap between nodes sharing a column.
        iterations: Default number of relaxation rounds.
        curvature: Bezier control point placement for link paths, in [0, 1].
    """

    size: tuple[float, float] = DEFAULT_SIZE
    min_node_width: float = DEFAULT_MIN_NODE_WIDTH
    max_node_width: float = DEFAULT_MAX_NODE_WIDTH
    node_padding: float = DEFAULT_NODE_PADDING
    iterations: int = DEFAULT_ITERATIONS
    curvature: float = DEFAULT_CURVATURE

    def __post_init__(self) -> None:
        try:
            width, height = self.size
            size = (float(width), float(height))
        except (TypeError, ValueError):
            raise ConfigError(f"size must be a (width, height) pair, got {self.size!r}") from None
        # Normalise lists coming from JSON/YAML mappings.
        object.__setattr__(self, "size", size)

        if self.size[0] <= 0 or self.size[1] <= 0:
            raise ConfigError(f"size must be positive, got {self.size!r}")
        if self.min_node_width < 0:
            raise ConfigError(f"min_node_width must be >= 0, got {self.min_node_width}")
        if self.min_node_width > self.max_node_width:
            raise ConfigError(
                f"min_node_width ({self.min_node_width}) must not exceed max_node_width ({self.max_node_width})"
            )
        if self.node_padding < 0:
            raise ConfigError(f"node_padding must be >= 0, got {self.node_padding}")
        if isinstance(self.iterations, bool) or not isinstance(self.iterations, int) or self.iterations < 0:
            raise ConfigError(f"iterations must be a non-negative int, got {self.iterations!r}")
        check_curvature(self.curvature)

    @property
    def width(self) -> float:
        return self.size[0]

    @property
    def height(self) -> float:
        return self.size[1]

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> LayoutConfig:
        """Build a config from a plain mapping such as a parsed JSON object.

        Missing keys take their defaults; unknown keys raise ``ConfigError``.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        values = dict(mapping)
        if "size" in values:
            values["size"] = tuple(values["size"])
        return cls(**values)

    def replace(self, **changes: Any) -> LayoutConfig:
        """Return a validated copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)


def check_curvature(curvature: float) -> float:
    if not 0.0 <= curvature <= 1.0:
        raise ConfigError(f"curvature must be within [0, 1], got {curvature}")
    return curvature
