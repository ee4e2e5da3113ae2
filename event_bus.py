"""In-process event channel between the capture worker, the analysis stream
and the session coordinator.

Events are validated on publish and delivered in publish order on a single
dispatcher thread. That thread is the coordinator's serialization point:
handlers never run concurrently with each other.
"""

from __future__ import annotations

import logging
import threading
import time
from queue import Empty, Queue
from typing import Callable, Optional

from models import PipelineEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[PipelineEvent], None]


class EventBus:
    def __init__(self, name: str = "pipeline-events") -> None:
        self._name = name
        self._queue: Queue[PipelineEvent | None] = Queue()
        self._handlers: list[EventHandler] = []
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._pending = 0
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    def subscribe(self, handler: EventHandler) -> None:
        with self._lock:
            if handler not in self._handlers:
                self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def start(self) -> None:
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            self._stopping = False
            self._thread = threading.Thread(target=self._dispatch_loop, name=self._name, daemon=True)
            self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._stopping = True
        self._queue.put(None)
        if thread is not threading.current_thread():
            thread.join(timeout=timeout)
        with self._lock:
            self._thread = None

    def publish(self, event: PipelineEvent) -> bool:
        try:
            event.validate()
        except (AttributeError, ValueError) as exc:
            logger.warning("Dropping invalid event %r: %s", event, exc)
            return False
        self.start()
        with self._lock:
            if self._stopping:
                logger.debug("Bus stopping, dropping %s", event.kind.value)
                return False
            self._pending += 1
        self._queue.put(event)
        return True

    def flush(self, timeout: float = 2.0) -> bool:
        """Block until every published event was delivered."""
        deadline = time.monotonic() + timeout
        with self._idle:
            while self._pending > 0:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._idle.wait(timeout=remaining)
        return True

    @property
    def is_dispatch_thread(self) -> bool:
        return self._thread is threading.current_thread()

    def _dispatch_loop(self) -> None:
        while True:
            try:
                event = self._queue.get(timeout=0.2)
            except Empty:
                if self._stopping:
                    return
                continue
            if event is None:
                return
            try:
                self._deliver(event)
            finally:
                with self._idle:
                    self._pending -= 1
                    if self._pending <= 0:
                        self._pending = 0
                        self._idle.notify_all()

    def _deliver(self, event: PipelineEvent) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %r failed on %s", handler, event.kind.value)
