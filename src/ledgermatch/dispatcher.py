"""Runs engine events on a small worker pool."""

import logging
import threading
from collections import deque
from collections.abc import Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field

from .engine import ReconciliationEngine
from .events import Event, lock_key

logger = logging.getLogger(__name__)


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class Dispatcher:
    """Feeds events to the engine, chaining follow-ups in the same worker.

    Events for one document (or one partner) are serialized by a per-key
    lock, so one document's stages never interleave. A key's lock is dropped
    once no event holds or waits for it.
    """

    def __init__(self, engine: ReconciliationEngine, max_workers: int = 4) -> None:
        self.engine = engine
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ledgermatch")
        self._locks: dict[str, _KeyLock] = {}
        self._locks_guard = threading.Lock()

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    @contextmanager
    def _locked(self, event: Event) -> Iterator[None]:
        key = lock_key(event)
        with self._locks_guard:
            entry = self._locks.setdefault(key, _KeyLock())
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    def process(self, event: Event, errors: list[str] | None = None) -> list[Event]:
        """Handle an event and all its follow-ups in the calling thread.

        Returns every event that was handled, in order. A failing handler is
        logged and its chain stops there; pass ``errors`` to collect the
        failure messages.
        """
        handled: list[Event] = []
        queue = deque([event])
        while queue:
            current = queue.popleft()
            try:
                with self._locked(current):
                    follow_ups = self.engine.handle(current)
            except Exception as e:
                logger.exception(f"Handling {current} failed")
                if errors is not None:
                    errors.append(f"{current}: {e}")
                continue
            handled.append(current)
            queue.extend(follow_ups)
        return handled

    def submit(self, event: Event) -> Future:
        return self._executor.submit(self.process, event)

    def publish(self, events: list[Event]) -> list[Future]:
        return [self.submit(event) for event in events]

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
