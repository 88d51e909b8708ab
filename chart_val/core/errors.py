"""
Error taxonomy — typed failure categories for the diff pipeline.

Adapters translate tool-specific signals (HTTP 404, missing archive
paths, non-zero helm exits) into these types exactly once, at the
boundary.  The core only ever branches on the exception *type*:

    NotFoundError     → side absent, compare against an empty manifest
    RenderError       → Error result for one environment
    TransportError    → the whole chart fails, other charts continue
    DiscoveryError    → same as TransportError
    PipelineCancelled → the whole run is abandoned
"""

from __future__ import annotations


class ChartValError(Exception):
    """Base class for all chart-val failures."""


class NotFoundError(ChartValError):
    """A chart, path or value file does not exist at a given revision."""

    def __init__(self, resource: str, ref: str = ""):
        self.resource = resource
        self.ref = ref
        message = f"{resource} not found at ref {ref}" if ref else f"{resource} not found"
        super().__init__(message)


class RenderError(ChartValError):
    """The renderer failed for a reason other than absence."""


class TransportError(ChartValError):
    """Chart files could not be obtained (network, auth, git failure)."""


class DiscoveryError(ChartValError):
    """Environments could not be enumerated for a chart directory."""


class PipelineCancelled(ChartValError):
    """The run was cancelled by its caller; partial results are discarded."""
