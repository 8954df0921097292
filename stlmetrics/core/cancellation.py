"""Cooperative cancellation for long mesh scans."""

import threading
from typing import Optional

from stlmetrics.core.exceptions import CancelledError


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and a scan.

    The caller keeps the token and calls :meth:`cancel`; the scan calls
    :meth:`raise_if_cancelled` once per triangle.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str = "Operation") -> None:
        """Raise CancelledError if cancellation was requested.

        Args:
            operation: Human-readable name of the running scan

        Raises:
            CancelledError: If :meth:`cancel` has been called
        """
        if self._event.is_set():
            raise CancelledError(operation)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or timeout; returns the cancelled state."""
        return self._event.wait(timeout)


def check_cancelled(token: Optional[CancellationToken], operation: str) -> None:
    """Per-iteration check that tolerates a missing token."""
    if token is not None and token.is_cancelled:
        raise CancelledError(operation)
