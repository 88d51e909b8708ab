"""
Cancellation token — binds a pipeline run to its caller's lifetime.

One token is created per triggering request and threaded through the
pipeline down to every subprocess call.  Setting it makes in-flight
processes get killed and the run raise ``PipelineCancelled``.
"""

from __future__ import annotations

import threading

from chart_val.core.errors import PipelineCancelled


class CancelToken:
    """Thread-safe, one-shot cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled("run cancelled")

    def __repr__(self) -> str:
        return f"<CancelToken cancelled={self.cancelled}>"
