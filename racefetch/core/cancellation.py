"""Cooperative cancellation tokens.

A CancellationToken is a one-shot signal. Strategies receive one and are
expected to stop promptly once it fires; nothing is interrupted by force.
Tokens can be chained one way with link_cancellation() so an outer signal
(e.g. the caller giving up) reaches an inner one (the race) without the
inner one ever reaching back out.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class CancellationToken:
    """One-shot cancellation signal with listeners."""

    __slots__ = ("_name", "_cancelled", "_listeners")

    def __init__(self, name: str = ""):
        self._name = name
        self._cancelled = False
        self._listeners: list[Listener] = []

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<CancellationToken {self._name or hex(id(self))} {state}>"

    def is_cancelled(self) -> bool:
        return self._cancelled

    def on_cancel(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it.

        If the token is already cancelled the listener runs immediately.
        """
        if self._cancelled:
            self._invoke(listener)
            return _noop

        self._listeners.append(listener)

        def detach() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return detach

    def cancel(self) -> bool:
        """Fire the token. Returns False if it had already fired."""
        if self._cancelled:
            return False
        self._cancelled = True
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            self._invoke(listener)
        return True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise asyncio.CancelledError(f"{self!r} was cancelled")

    def _invoke(self, listener: Listener) -> None:
        # A broken listener must not stop the others from firing.
        try:
            listener()
        except Exception as e:
            logger.warning(f"Cancellation listener {listener!r} failed: {e}")


def _noop() -> None:
    return None


def link_cancellation(
    external: CancellationToken | None, internal: CancellationToken
) -> Callable[[], None]:
    """Propagate *external* cancellation into *internal*, one way.

    An already-cancelled *external* cancels *internal* before this returns.
    The returned detach callable is idempotent; after it runs, cancelling
    *external* no longer affects *internal*.
    """
    if external is None:
        return _noop
    if external.is_cancelled():
        internal.cancel()
        return _noop
    return external.on_cancel(internal.cancel)
