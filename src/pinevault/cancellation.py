"""Cooperative cancellation for multi-step pipelines."""

from __future__ import annotations

import threading


class CancelledError(Exception):
    """Raised at a step boundary after cancellation was requested."""


class CancellationToken:
    """Flag checked between pipeline steps.

    Cancelling never interrupts a step in progress; the next call to
    :meth:`raise_if_cancelled` raises instead.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = ""

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, step: str) -> None:
        if self._event.is_set():
            raise CancelledError(f"Cancelled before {step}: {self._reason}")


__all__ = ["CancellationToken", "CancelledError"]
