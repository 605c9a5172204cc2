"""Fire-event consumer registry shared by the scheduler and the frontends."""

import inspect
import sys
from typing import Any, Awaitable, Callable, List, Tuple, Union

SendCallback = Callable[[str], Union[Awaitable[Any], Any]]


def _log(msg: str):
    print(msg, file=sys.stderr)


class CallbackRegistry:
    """Ordered set of consumers for scheduled messages.

    Two registration modes: ``set_exclusive`` replaces every consumer,
    ``add`` appends unless the very same object is already registered.
    Consumers may be plain functions or coroutine functions.
    """

    def __init__(self):
        self._callbacks: List[SendCallback] = []

    def set_exclusive(self, callback: SendCallback) -> None:
        self._callbacks = [callback]

    def add(self, callback: SendCallback) -> bool:
        """Append a consumer. Returns False if it was already registered."""
        if any(cb is callback for cb in self._callbacks):
            return False
        self._callbacks = self._callbacks + [callback]
        return True

    def remove(self, callback: SendCallback) -> bool:
        remaining = [cb for cb in self._callbacks if cb is not callback]
        removed = len(remaining) != len(self._callbacks)
        self._callbacks = remaining
        return removed

    def snapshot(self) -> Tuple[SendCallback, ...]:
        return tuple(self._callbacks)

    def __len__(self) -> int:
        return len(self._callbacks)

    async def dispatch(self, message: str, source: str = "cron") -> int:
        """Deliver ``message`` to every consumer in registration order.

        Each consumer is awaited before the next one starts. A failing
        consumer is logged and skipped. Returns the number of consumers
        that completed without raising.
        """
        callbacks = self.snapshot()
        if not callbacks:
            _log(f"[{source}] no send callbacks registered — message dropped: {message[:80]!r}")
            return 0

        delivered = 0
        for callback in callbacks:
            try:
                result = callback(message)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                _log(f"[{source}] send callback {callback!r} failed: {e}")
        return delivered
