"""Cooperative cancellation for page-by-page preview rendering."""

from __future__ import annotations

import threading


class PreviewCancelled(RuntimeError):
    """Raised when a preview render is cancelled before it completes."""


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PreviewCancelled("Preview rendering was cancelled")
