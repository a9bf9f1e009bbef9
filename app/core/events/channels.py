"""
Subscriber channels for the event broadcaster.

A channel is one live connection. ``push`` never blocks and may be called
from any thread; it returns False once the channel can no longer deliver.
"""
import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_CLOSE = object()


class SubscriberChannel(ABC):
    """A live connection identity owned by the broadcaster."""

    def __init__(self, user_id: str, channel_id: Optional[str] = None):
        self.user_id = user_id
        self.channel_id = channel_id or str(uuid.uuid4())
        self.closed = False

    @abstractmethod
    def push(self, message: Dict[str, Any]) -> bool:
        """Queue a message for delivery; False if the channel is gone."""

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={self.channel_id}, user={self.user_id})>"


class QueueChannel(SubscriberChannel):
    """
    Channel backed by an asyncio queue.

    Messages pushed from worker threads are handed to the owning loop
    with ``call_soon_threadsafe``; ``drain_to`` forwards them to a sender.
    """

    def __init__(
        self,
        user_id: str,
        loop: asyncio.AbstractEventLoop,
        channel_id: Optional[str] = None,
        max_queue: int = 1000,
    ):
        super().__init__(user_id, channel_id)
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)

    def _enqueue(self, message: Any) -> None:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Dropping message for slow channel {self.channel_id}")

    def push(self, message: Dict[str, Any]) -> bool:
        if self.closed:
            return False
        try:
            self._loop.call_soon_threadsafe(self._enqueue, message)
        except RuntimeError:
            # Loop already closed
            self.closed = True
            return False
        return True

    def close(self) -> None:
        if self.closed:
            return
        super().close()
        try:
            self._loop.call_soon_threadsafe(self._enqueue, _CLOSE)
        except RuntimeError:
            pass

    async def drain_to(self, send) -> None:
        """
        Forward queued messages to ``send`` until the channel closes.

        Args:
            send: Coroutine function taking one JSON-serializable message
        """
        while True:
            message = await self._queue.get()
            if message is _CLOSE:
                break
            await send(message)
