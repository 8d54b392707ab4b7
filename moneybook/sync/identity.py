"""
Identity Provider

The data-sync layer does not authenticate anyone. It only needs to know
the current user id (or that there is none) and to hear when that changes.
An auth integration calls set_user() on login and clear() on logout.
"""

from typing import Awaitable, Callable, Optional

import structlog


logger = structlog.get_logger(__name__)

IdentityListener = Callable[[Optional[str]], Awaitable[None]]


class IdentityProvider:
    """Holds the current user id and notifies listeners when it changes."""

    def __init__(self, user_id: Optional[str] = None):
        self._user_id = user_id
        self._listeners: list[IdentityListener] = []

    @property
    def current_user_id(self) -> Optional[str]:
        return self._user_id

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """
        Register a coroutine function called with the new user id.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def set_user(self, user_id: Optional[str]) -> None:
        """
        Change the current identity.

        Listeners run one after another, in subscription order. Setting the
        identity that is already current notifies nobody.

        Every listener is notified even if an earlier one raises; the
        first error is re-raised once all of them have run.
        """
        if user_id == self._user_id:
            return

        logger.info(
            "identity_changed",
            previous=self._user_id is not None,
            authenticated=user_id is not None,
        )
        self._user_id = user_id
        first_error: Optional[Exception] = None
        for listener in list(self._listeners):
            try:
                await listener(user_id)
            except Exception as e:
                logger.warning("identity_listener_failed", error=str(e))
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    async def clear(self) -> None:
        """Log out."""
        await self.set_user(None)
