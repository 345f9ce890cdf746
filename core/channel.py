"""
Publish/subscribe channel for one piece of toolkit state.

Each owner (clipboard pipeline, layer registry, click dispatcher) holds its own
Channel and is the only caller of publish(). Subscribers are plain callables
invoked synchronously, in subscription order, after the owner has committed the
new state. A subscriber that raises is logged and skipped. The last published
value is kept so late subscribers can read it.
"""

from typing import Any, Callable, Generic, List, Optional, TypeVar

from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class Channel(Generic[T]):
    """Synchronous pub/sub channel that remembers the last published value."""

    def __init__(self, name: str, initial: Optional[T] = None):
        self.name = name
        self._value = initial
        self._subscribers: List[Callable[[T], Any]] = []

    @property
    def value(self) -> Optional[T]:
        return self._value

    def subscribe(self, callback: Callable[[T], Any], replay: bool = False) -> Callable[[T], Any]:
        """
        Register a subscriber.

        Args:
            callback: Called with each published value
            replay: If True, call back immediately with the current value

        Returns:
            The callback, so it can be passed to unsubscribe()
        """
        self._subscribers.append(callback)
        if replay:
            callback(self._value)
        return callback

    def unsubscribe(self, callback: Callable[[T], Any]) -> None:
        try:
            self._subscribers.remove(callback)
        except ValueError:
            pass

    def publish(self, value: T) -> None:
        self._value = value
        logger.debug(f"[{self.name}] publish to {len(self._subscribers)} subscriber(s)")
        for callback in list(self._subscribers):
            # Later subscribers still run when one raises
            try:
                callback(value)
            except Exception as e:
                logger.error(f"[{self.name}] subscriber {callback!r} failed: {e}", exc_info=True)

    def __len__(self) -> int:
        return len(self._subscribers)
