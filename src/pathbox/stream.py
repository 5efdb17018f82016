"""Latest-value stream — the subscribable side of an ObservableBox.

A ValueStream always has a value. New subscribers get it replayed
synchronously before subscribe() returns, then every later send() in order.
There is no coalescing and no dedup: N sends deliver N times. The stream
never completes.

Delivery iterates a snapshot of the subscriber list taken at the start of
each send, so callbacks may subscribe, cancel, or send re-entrantly.
Exceptions raised by a callback propagate to whoever called send().

Re-entrant sends are delivered depth-first, which is the one exception to
"every subscriber sees sends in send order": if the first subscriber sends
2 while handling 1, a later subscriber receives 2 before 1, and value is
already 2 when it receives 1. Without re-entrancy each subscriber sees the
sends exactly in order.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class Subscription(Generic[T]):
    """Handle for one subscriber. cancel() removes it."""

    __slots__ = ("_stream", "_callback")

    def __init__(self, stream: ValueStream[T], callback: Callable[[T], None]) -> None:
        self._stream: ValueStream[T] | None = stream
        self._callback = callback

    @property
    def active(self) -> bool:
        return self._stream is not None

    def cancel(self) -> None:
        """Stop delivery. Idempotent, safe to call during delivery."""
        stream, self._stream = self._stream, None
        if stream is not None:
            stream._remove(self)

    def __enter__(self) -> Subscription[T]:
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled"
        return f"Subscription({self._callback!r}, {state})"


class ValueStream(Generic[T]):
    """Multicast stream that remembers and replays its latest value."""

    __slots__ = ("_value", "_subscribers")

    def __init__(self, value: T) -> None:
        self._value = value
        self._subscribers: list[Subscription[T]] = []

    @property
    def value(self) -> T:
        """The last value sent (or the initial value)."""
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], None]) -> Subscription[T]:
        """Register callback and call it with the current value right away.

        If that first call raises, the subscription is dropped and the
        exception propagates.
        """
        subscription = Subscription(self, callback)
        self._subscribers.append(subscription)
        try:
            callback(self._value)
        except BaseException:
            subscription.cancel()
            raise
        return subscription

    def send(self, value: T) -> None:
        """Make value the latest value and deliver it to every subscriber."""
        self._value = value
        for subscription in list(self._subscribers):
            # Cancelled earlier in this same delivery.
            if subscription._stream is self:
                subscription._callback(value)

    def emit(self) -> None:
        """Re-deliver the current value without any underlying change."""
        self.send(self._value)

    def _remove(self, subscription: Subscription[T]) -> None:
        try:
            self._subscribers.remove(subscription)
        except ValueError:
            pass  # already removed

    def __repr__(self) -> str:
        return f"ValueStream({self._value!r}, subscribers={len(self._subscribers)})"
