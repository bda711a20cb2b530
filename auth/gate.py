"""
Wait until the authentication state has settled.
"""

import asyncio
from enum import Enum
from typing import Optional, Union

from auth.state import AuthState, AuthStateStore, get_auth_state_store
from monitoring.logger import get_logger
from monitoring.metrics import Metrics, get_metrics_collector

logger = get_logger(__name__)

# Gate calls currently waiting, across all stores
_waiting = 0


def waiting_count() -> int:
    return _waiting


def _track_waiting(delta: int) -> None:
    global _waiting
    _waiting += delta
    get_metrics_collector().set_gauge(Metrics.AUTH_GATE_WAITERS, _waiting)


class GateOutcome(str, Enum):
    """Gate results that are not an auth state."""
    TIMED_OUT = "timed-out"
    CANCELLED = "cancelled"


class AuthStateGate:
    """Blocks a caller until the auth state is ``authed`` or ``not-authed``.

    Each call installs one subscription on the store and removes it exactly
    once, whether it resolves, times out, is cancelled through ``cancel_event``
    or has its task cancelled. Concurrent calls are independent.
    """

    def __init__(self, store: Optional[AuthStateStore] = None):
        self.store = store or get_auth_state_store()

    async def await_resolved_state(
        self,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Union[AuthState, GateOutcome]:
        """
        Wait for the first terminal auth state.

        Args:
            timeout: Seconds to wait before giving up, None waits forever
            cancel_event: Event that abandons the wait when set

        Returns:
            The first terminal AuthState observed, GateOutcome.TIMED_OUT or
            GateOutcome.CANCELLED
        """
        current = self.store.state
        if current.is_terminal:
            return current

        resolved: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_change(new_state: AuthState) -> None:
            if new_state.is_terminal and not resolved.done():
                subscription.cancel()
                resolved.set_result(new_state)

        subscription = self.store.subscribe(on_change)
        _track_waiting(1)

        waiters = {resolved}
        cancel_waiter = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            subscription.cancel()
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            _track_waiting(-1)

        if resolved.done():
            return resolved.result()

        if cancel_waiter is not None and cancel_event.is_set():
            logger.info("Auth state wait cancelled")
            return GateOutcome.CANCELLED

        get_metrics_collector().increment_counter(Metrics.AUTH_GATE_TIMEOUTS)
        logger.warning("Auth state did not settle in time", extra={"timeout": timeout})
        return GateOutcome.TIMED_OUT


async def await_resolved_state(
    timeout: Optional[float] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> Union[AuthState, GateOutcome]:
    """Wait on the process-wide auth state store."""
    return await AuthStateGate().await_resolved_state(timeout=timeout, cancel_event=cancel_event)
