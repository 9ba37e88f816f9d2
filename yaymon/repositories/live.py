import logging
from typing import Any, Awaitable, Callable, List

logger = logging.getLogger(__name__)

Query = Callable[[], Awaitable[Any]]
Listener = Callable[[Any], None]


class _Subscription:
    def __init__(self, query: Query, listener: Listener):
        self.query = query
        self.listener = listener


class LiveQueries:
    """
    Query subscriptions that receive full result sets.

    Every listener gets the current result as soon as it subscribes. When
    `push_updates` is on, each successful write reported through `notify()`
    re-runs every subscribed query and hands the fresh result to its listener.
    Without push updates callers re-query after their own writes.
    """

    def __init__(self, push_updates: bool):
        self.push_updates = push_updates
        self._subscriptions: List[_Subscription] = []

    async def watch(self, query: Query, listener: Listener) -> Callable[[], None]:
        subscription = _Subscription(query, listener)
        self._deliver(subscription, await query())
        if self.push_updates:
            self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return unsubscribe

    async def notify(self) -> None:
        if not self.push_updates:
            return
        for subscription in list(self._subscriptions):
            try:
                result = await subscription.query()
            except Exception as e:
                logger.error(f"Live query refresh failed: {e}", exc_info=True)
                continue
            self._deliver(subscription, result)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    @staticmethod
    def _deliver(subscription: _Subscription, result: Any) -> None:
        try:
            subscription.listener(result)
        except Exception as e:
            logger.error(f"Live query listener raised: {e}", exc_info=True)
