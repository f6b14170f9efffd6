"""
Signal bus between the producer threads and the reconciler.

Every signal category gets its own bounded FIFO queue:
  - lifecycle: ContainerAppeared / ContainerRemoved / SourceClosed
  - stats:     StatsSample
  - input:     KeyPress / Resize (filled by the reconciler thread itself)
  - tick:      Tick

Producers push and carry on; the reconciler is the only consumer and waits
across all queues at once with next_signal().

Thread Safety:
  - queue.Queue handles producer/consumer exclusion per category
  - A threading.Condition wakes the consumer whenever any queue receives data
  - Shutdown is a single-slot threading.Event, set without ever blocking

Fairness:
  - Categories are scanned round-robin starting after the last one served,
    so a busy stats source cannot starve keyboard input.

Backpressure:
  - publish() blocks while the target queue is full, so lifecycle signals are
    never dropped. It wakes every `poll_interval` seconds to notice shutdown.
  - publish_nowait() drops the signal when the queue is full (ticks only).
"""

import logging
import queue
import threading
from typing import Dict, Optional, Tuple

from .model import Quit

logger = logging.getLogger(__name__)

LIFECYCLE = "lifecycle"
STATS = "stats"
INPUT = "input"
TICK = "tick"
CATEGORIES: Tuple[str, ...] = (LIFECYCLE, STATS, INPUT, TICK)


class SignalBus:
    def __init__(self, queue_size: int = 16, poll_interval: float = 0.2):
        self._queues: Dict[str, queue.Queue] = {c: queue.Queue(maxsize=queue_size) for c in CATEGORIES}
        self._ready = threading.Condition()
        self._shutdown = threading.Event()
        self._next_start = 0
        self.poll_interval = poll_interval

    @property
    def closed(self) -> bool:
        return self._shutdown.is_set()

    def publish(self, category: str, signal) -> bool:
        """Enqueue a signal, blocking while the queue is full.

        Returns False if the bus was shut down before the signal got in.
        """
        q = self._queues[category]
        while not self._shutdown.is_set():
            try:
                q.put(signal, timeout=self.poll_interval)
            except queue.Full:
                continue
            self._notify()
            return True
        return False

    def publish_nowait(self, category: str, signal) -> bool:
        if self._shutdown.is_set():
            return False
        try:
            self._queues[category].put_nowait(signal)
        except queue.Full:
            logger.debug(f"Dropped {type(signal).__name__}: {category} queue full")
            return False
        self._notify()
        return True

    def shutdown(self) -> None:
        """Request termination. Safe to call repeatedly and from any thread."""
        self._shutdown.set()
        self._notify()

    def next_signal(self, timeout: Optional[float] = None):
        """Block until any queue has a signal and return it.

        Returns Quit as soon as shutdown was requested, even if other
        signals are still queued. With a timeout, returns None when nothing
        arrived in time.
        """
        with self._ready:
            while True:
                if self._shutdown.is_set():
                    return Quit()
                signal = self._poll()
                if signal is not None:
                    return signal
                if not self._ready.wait(timeout):
                    return None

    def pending(self, category: str) -> int:
        return self._queues[category].qsize()

    def full(self, category: str) -> bool:
        return self._queues[category].full()

    def _poll(self):
        count = len(CATEGORIES)
        for step in range(count):
            idx = (self._next_start + step) % count
            try:
                signal = self._queues[CATEGORIES[idx]].get_nowait()
            except queue.Empty:
                continue
            self._next_start = (idx + 1) % count
            return signal
        return None

    def _notify(self) -> None:
        with self._ready:
            self._ready.notify_all()
