"""Channels connecting the scheduler manager to per-slot tasks."""

import asyncio
from collections.abc import Mapping
from typing import Generic, TypeVar

T = TypeVar("T")


class Watch(Generic[T]):
    """Latest-value cell that notifies every subscriber on change."""

    def __init__(self, value: T) -> None:
        self._value = value
        self._receivers: list["WatchReceiver[T]"] = []

    @property
    def value(self) -> T:
        """Current value."""
        return self._value

    def send(self, value: T) -> None:
        """Replace the value and flag every receiver as changed."""
        self._value = value
        for receiver in self._receivers:
            receiver.changed.set()

    def subscribe(self) -> "WatchReceiver[T]":
        """Create a receiver with its own change flag."""
        receiver = WatchReceiver(self)
        self._receivers.append(receiver)
        return receiver

    def unsubscribe(self, receiver: "WatchReceiver[T]") -> None:
        """Stop notifying a receiver; unknown receivers are ignored."""
        if receiver in self._receivers:
            self._receivers.remove(receiver)

    @property
    def receiver_count(self) -> int:
        """Number of live subscribers."""
        return len(self._receivers)


class WatchReceiver(Generic[T]):
    """One subscriber's view of a :class:`Watch`."""

    def __init__(self, watch: Watch[T]) -> None:
        self._watch = watch
        self.changed = asyncio.Event()

    def borrow(self) -> T:
        """Read the current value without acknowledging a change."""
        return self._watch.value

    def borrow_and_update(self) -> T:
        """Read the current value and acknowledge any pending change."""
        self.changed.clear()
        return self._watch.value

    def close(self) -> None:
        """Detach from the watch."""
        self._watch.unsubscribe(self)


async def wait_first(
    events: Mapping[str, asyncio.Event], timeout: float
) -> str | None:
    """Sleep until one of the events is set or the timeout elapses.

    Events already set win immediately, in mapping order.

    Args:
        events: Named events to race against the timer
        timeout: Maximum sleep in seconds

    Returns:
        Name of the first event that fired, or None if the timer won
    """
    for name, event in events.items():
        if event.is_set():
            return name

    waiters = {
        asyncio.create_task(event.wait()): name for name, event in events.items()
    }
    try:
        done, _ = await asyncio.wait(
            waiters.keys(),
            timeout=max(0.0, timeout),
            return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        for waiter in waiters:
            if not waiter.done():
                waiter.cancel()
        await asyncio.gather(*waiters, return_exceptions=True)

    if not done:
        return None
    for name, event in events.items():
        if event.is_set():
            return name
    return None
