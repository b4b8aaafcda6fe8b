"""Publish/subscribe for cart snapshots."""
from typing import Callable, Generic, List, TypeVar

from storefront.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


class _Subscription(Generic[T]):
    __slots__ = ("listener", "active")

    def __init__(self, listener: Callable[[T], None]):
        self.listener = listener
        self.active = True


class Publisher(Generic[T]):
    """
    Synchronous fan-out to registered listeners.

    Listeners run in registration order, once per ``publish``. Subscribing
    the same callable twice registers it twice; each returned unsubscribe
    removes only its own registration and is safe to call repeatedly.
    """

    def __init__(self) -> None:
        self._subscriptions: List[_Subscription[T]] = []

    def __len__(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: Callable[[T], None]) -> Unsubscribe:
        subscription = _Subscription(listener)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            self._subscriptions.remove(subscription)

        return unsubscribe

    def publish(self, value: T) -> None:
        # Copy: listeners may (un)subscribe while we iterate
        for subscription in list(self._subscriptions):
            if not subscription.active:
                continue
            try:
                subscription.listener(value)
            except Exception as e:
                logger.error(f"Cart listener {subscription.listener!r} failed: {e}", exc_info=True)


__all__ = ["Publisher", "Unsubscribe"]
