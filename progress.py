# progress.py
import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 0.1
DEFAULT_IDLE = 0.05

_CLOSED = object()


class ProgressChannel:
    """Append-only, thread-safe chunk channel owned by one session.

    The session sends from its worker thread; the consumer iterates
    ``batches()`` on the event loop. Must be created on that loop.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._detached = False

    @property
    def closed(self) -> bool:
        return self._closed or self._detached

    def send(self, chunk: str) -> bool:
        """Offers a chunk to the consumer from any thread.

        Returns False when the channel is closed, the consumer has gone away,
        or its event loop is no longer running. Producers ignore the result.
        """
        if self.closed:
            return False
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, chunk)
        except RuntimeError:
            self._detached = True
            return False
        return True

    def close(self):
        """Ends the stream; the consumer drains what is queued and stops."""
        if self._closed:
            return
        self._closed = True
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSED)
        except RuntimeError:
            logger.debug("Progress consumer loop already closed")

    def detach(self):
        """Called by the consumer side when it stops listening."""
        self._detached = True

    async def batches(self, window: float = DEFAULT_WINDOW,
                      idle: float = DEFAULT_IDLE) -> AsyncIterator[str]:
        """Yields the chunks received in each window, joined into one string.

        Empty windows yield nothing and pause for ``idle`` seconds. The
        iteration ends once the producer closes the channel.
        """
        loop = asyncio.get_running_loop()
        closed = False
        try:
            while not closed:
                buffer: List[str] = []
                deadline = loop.time() + window
                while True:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        break
                    try:
                        chunk = await asyncio.wait_for(self._queue.get(), timeout=remaining)
                    except asyncio.TimeoutError:
                        break
                    if chunk is _CLOSED:
                        closed = True
                        break
                    buffer.append(chunk)

                if buffer:
                    yield "".join(buffer)
                elif not closed:
                    await asyncio.sleep(idle)
        finally:
            if not closed:
                self.detach()


async def pump(channel: ProgressChannel, consumer: Callable[[str], None],
               window: float = DEFAULT_WINDOW, idle: float = DEFAULT_IDLE) -> None:
    """Feeds every batch from channel to consumer until the channel closes.

    A consumer that raises is detached; the producing session keeps running.
    """
    batches = channel.batches(window, idle)
    try:
        async for batch in batches:
            try:
                consumer(batch)
            except Exception:
                logger.exception("Progress consumer failed, detaching it")
                channel.detach()
                return
    finally:
        await batches.aclose()
