"""
Cooperative cancellation for mashup requests.

Fetching and rendering dominate the cost of a request, so the pipeline checks
a token between phases (and between per-track renders) rather than
interrupting work mid-buffer.
"""

import logging
import threading
from typing import Optional

from .errors import MashupCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe cancellation flag shared by one mashup request."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Idempotent."""
        if not self._event.is_set():
            logger.info("Cancellation requested")
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, phase: Optional[str] = None) -> None:
        """
        Raise MashupCancelled if cancellation was requested.

        Args:
            phase: Name of the phase about to start (for the error message)
        """
        if self._event.is_set():
            where = f" before {phase}" if phase else ""
            raise MashupCancelled(f"Mashup cancelled{where}")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


def check_cancelled(token: Optional[CancellationToken], phase: Optional[str] = None) -> None:
    """Convenience wrapper accepting a missing token."""
    if token is not None:
        token.raise_if_cancelled(phase)
