#!/usr/bin/env python3
"""
Progress event fan-in.

Workers call ProgressChannel.publish(), which only enqueues; a single
dedicated consumer thread hands events to the handler in arrival order.
A slow renderer therefore never throttles execution, and the handler
itself needs no locking.
"""

import logging
import queue
import threading
from typing import Callable, Optional

from .models import ProgressEvent

logger = logging.getLogger(__name__)

_STOP = object()


class ProgressChannel:
    def __init__(self, handler: Callable[[ProgressEvent], None]):
        self.handler = handler
        self._queue: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "ProgressChannel":
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._consume,
                name="tuna-progress",
                daemon=True,
            )
            self._thread.start()
        return self

    def publish(self, event: ProgressEvent):
        self._queue.put_nowait(event)

    def close(self, timeout: Optional[float] = None):
        """Stop after draining every event published so far."""
        if self._thread is None:
            return
        self._queue.put_nowait(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def _consume(self):
        while True:
            event = self._queue.get()
            if event is _STOP:
                break
            try:
                self.handler(event)
            except Exception:
                logger.exception(f"Progress handler failed on {event.type.value} event")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
