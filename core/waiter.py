import asyncio
import logging
from typing import Any, Dict, Hashable, Optional

log = logging.getLogger(__name__)


class ResponseWaiter:
    """Await a single event per correlation key, giving up after a deadline.

    The selection flow registers the prompt's message id and the dispatcher
    resolves it when the matching component interaction arrives. Anything
    resolved after the deadline finds no waiter and is dropped. `wait_for`
    returns None on timeout, so None cannot be used as a resolution value.
    """

    def __init__(self):
        self._pending: Dict[Hashable, asyncio.Future] = {}

    def pending(self, key: Hashable) -> bool:
        future = self._pending.get(key)
        return future is not None and not future.done()

    async def wait_for(self, key: Hashable, timeout: float) -> Optional[Any]:
        if self.pending(key):
            raise ValueError(f"already waiting on {key!r}")
        future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            log.info("No response for %s within %.1fs", key, timeout)
            return None
        finally:
            if self._pending.get(key) is future:
                del self._pending[key]

    def resolve(self, key: Hashable, value: Any) -> bool:
        if value is None:
            raise ValueError("None is reserved for timed out waits")
        future = self._pending.get(key)
        if future is None or future.done():
            return False
        future.set_result(value)
        return True
