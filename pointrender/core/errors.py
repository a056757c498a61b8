from __future__ import annotations


class ConfigurationError(ValueError):
    """Fatal scene/camera/pattern problem detected before any sampling starts."""


class AggregationError(RuntimeError):
    """A pixel identity lost its samples (or gained foreign ones) between sampling and reduce."""


class RenderCancelledError(RuntimeError):
    """Raised when a render pass is abandoned before the reduce barrier."""
