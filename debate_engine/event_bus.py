"""Per-debate publish/subscribe with coalesced delivery.

Each debate gets its own channel. A channel is a small actor: broadcasts are
queued, and once the first event of a batch arrives the channel waits for
the debounce window, drains everything that accumulated and delivers it in
order to the listeners subscribed at flush time. Delivery is best effort
and at most once; observers that need completeness use the pull endpoints.

The bus is bound to the event loop it is used from.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .types import DebateEvent, EventListener, EventType

logger = logging.getLogger(__name__)

_CLOSE = object()


def make_event(event_type: EventType, debate_id: str, data: dict[str, Any] | None = None) -> DebateEvent:
    return DebateEvent(
        type=event_type.value,
        debate_id=debate_id,
        data=data or {},
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


class _Channel:
    """Buffer, flush timer and subscriber set for a single debate."""

    def __init__(self, debate_id: str, debounce: float):
        self.debate_id = debate_id
        self.listeners: list[EventListener] = []
        self._debounce = debounce
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"event-channel-{debate_id}"
        )

    def push(self, event: DebateEvent, target: EventListener | None = None) -> None:
        self._queue.put_nowait((event, target))

    def close(self) -> None:
        self._queue.put_nowait(_CLOSE)

    async def wait_closed(self) -> None:
        await asyncio.shield(self._task)

    async def _run(self) -> None:
        while True:
            first = await self._queue.get()
            if first is _CLOSE:
                break
            await asyncio.sleep(self._debounce)

            batch = [first]
            closing = False
            while not self._queue.empty():
                item = self._queue.get_nowait()
                if item is _CLOSE:
                    closing = True
                    break
                batch.append(item)

            await self._flush(batch)
            if closing:
                break
        self.listeners.clear()
        logger.debug(f"Event channel for debate {self.debate_id} closed")

    async def _flush(self, batch: list[tuple[DebateEvent, EventListener | None]]) -> None:
        for event, target in batch:
            recipients = [target] if target is not None else list(self.listeners)
            for listener in recipients:
                if listener not in self.listeners:
                    continue
                try:
                    result = listener(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.debug(f"Dropping listener for debate {self.debate_id}: {e}")
                    self.listeners.remove(listener)


class EventBus:
    """Fan-out of debate events to observers."""

    def __init__(self, debounce_ms: int = 10):
        self._debounce = debounce_ms / 1000
        self._channels: dict[str, _Channel] = {}
        self._teardowns: dict[str, asyncio.TimerHandle] = {}

    def _channel(self, debate_id: str) -> _Channel:
        channel = self._channels.get(debate_id)
        if channel is None:
            channel = _Channel(debate_id, self._debounce)
            self._channels[debate_id] = channel
        return channel

    def subscribe(self, debate_id: str, listener: EventListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unsubscribes it.

        The new listener is sent a ``connected`` acknowledgment of its own.
        """
        channel = self._channel(debate_id)
        channel.listeners.append(listener)
        channel.push(
            make_event(
                EventType.CONNECTED,
                debate_id,
                {"subscribers": len(channel.listeners)},
            ),
            target=listener,
        )
        logger.debug(f"Subscriber added to debate {debate_id} ({len(channel.listeners)} total)")

        def unsubscribe() -> None:
            current = self._channels.get(debate_id)
            if current is not channel:
                return
            if listener in channel.listeners:
                channel.listeners.remove(listener)
            # Last listener gone: drop the channel and its flush task
            if not channel.listeners:
                self.clear_debate(debate_id)

        return unsubscribe

    def broadcast(self, debate_id: str, event: DebateEvent) -> None:
        """Queue ``event`` for everyone subscribed to ``debate_id``.

        Without a channel there is nobody to deliver to, so the event is dropped.
        """
        channel = self._channels.get(debate_id)
        if channel is None:
            return
        channel.push(event)

    def emit(self, debate_id: str, event_type: EventType, **data: Any) -> None:
        self.broadcast(debate_id, make_event(event_type, debate_id, data))

    def subscriber_count(self, debate_id: str) -> int:
        channel = self._channels.get(debate_id)
        return len(channel.listeners) if channel else 0

    def clear_debate(self, debate_id: str) -> None:
        """Flush what is queued for a debate, then drop its channel."""
        handle = self._teardowns.pop(debate_id, None)
        if handle is not None:
            handle.cancel()
        channel = self._channels.pop(debate_id, None)
        if channel is not None:
            channel.close()
            logger.info(f"Event channel for debate {debate_id} torn down")

    def schedule_teardown(self, debate_id: str, grace_seconds: float) -> None:
        """Tear the debate's channel down after ``grace_seconds``."""
        if debate_id not in self._channels:
            return
        previous = self._teardowns.pop(debate_id, None)
        if previous is not None:
            previous.cancel()
        loop = asyncio.get_running_loop()
        self._teardowns[debate_id] = loop.call_later(
            grace_seconds, self.clear_debate, debate_id
        )

    async def close(self) -> None:
        """Tear down every channel and wait for pending deliveries."""
        channels = list(self._channels.values())
        for debate_id in list(self._channels):
            self.clear_debate(debate_id)
        for channel in channels:
            await channel.wait_closed()
