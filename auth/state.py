"""
Process-wide authentication state and its change notifications.
"""

from enum import Enum
from typing import Callable, List, Optional

from monitoring.logger import get_logger

logger = get_logger(__name__)


class AuthState(str, Enum):
    """Sign-in status of the current user."""
    UNKNOWN = "unknown"
    AUTHED = "authed"
    NOT_AUTHED = "not-authed"

    @property
    def is_terminal(self) -> bool:
        return self is not AuthState.UNKNOWN


StateListener = Callable[[AuthState], None]


class Subscription:
    """Handle returned by ``AuthStateStore.subscribe``."""

    def __init__(self, store: "AuthStateStore", listener: StateListener):
        self._store = store
        self.listener = listener
        self.active = True

    def cancel(self) -> bool:
        """
        Stop receiving notifications.

        Returns:
            True the first time, False on repeated calls
        """
        if not self.active:
            return False
        self.active = False
        self._store._remove(self)
        return True

    __call__ = cancel


class AuthStateStore:
    """Holds the AuthState value and publishes every change, in order.

    Only the authentication subsystem writes to the store. Readers subscribe
    and are notified synchronously from ``set_state``, in subscription order,
    and only when the value actually changes. All access is expected to happen
    on a single event loop.
    """

    def __init__(self, initial: AuthState = AuthState.UNKNOWN):
        self._state = AuthState(initial)
        self._subscriptions: List[Subscription] = []

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: StateListener) -> Subscription:
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        self._subscriptions.remove(subscription)

    def set_state(self, new_state: AuthState) -> None:
        """Set the current state and notify subscribers if it changed."""
        new_state = AuthState(new_state)
        if new_state is self._state:
            return

        previous, self._state = self._state, new_state
        logger.debug(
            "Auth state changed",
            extra={"from": previous.value, "to": new_state.value},
        )

        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.listener(new_state)
            except Exception as e:
                logger.error(f"Auth state listener failed: {e}", exc_info=True)

    def reset(self) -> None:
        """Mark the user as signed out (``not-authed``), as sign-out does."""
        self.set_state(AuthState.NOT_AUTHED)


# Global store instance
_auth_state_store: Optional[AuthStateStore] = None


def get_auth_state_store() -> AuthStateStore:
    """Get or create the process-wide auth state store."""
    global _auth_state_store
    if _auth_state_store is None:
        _auth_state_store = AuthStateStore()
    return _auth_state_store
