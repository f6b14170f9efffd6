"""
Background producer threads.

Each worker runs in its own daemon thread and only ever talks to the
reconciler by publishing signals on the SignalBus:
  - EventWorker: initial running containers, then the Docker event stream
    (lifecycle queue)
  - StatsWorker: CPU/RAM sample of every tracked container (stats queue,
    every `stats_interval` seconds)
  - TickWorker: fixed-rate Tick for the summary line (tick queue)

Thread Safety:
  - Workers never call curses or touch reconciler state; keys are read by
    the reconciler itself (main.KeyboardInput)
  - EventWorker and StatsWorker share TrackedContainers, which has its own lock
  - Signals are frozen dataclasses, handed off by reference

Worker Lifecycle:
  - Start with start()
  - Stop with stop() (clears running, wakes the thread); daemon threads die
    with the process anyway
"""

import logging
import threading
from typing import Dict, List, Tuple

from .backend import START_ACTIONS, STOP_ACTIONS, DockerBackend
from .bus import LIFECYCLE, STATS, TICK, SignalBus
from .model import (ContainerAppeared, ContainerRemoved, SourceClosed,
                    StatsSample, StatsSnapshot, Tick)

logger = logging.getLogger(__name__)


class TrackedContainers:
    """Ids of running containers known to the event source."""

    def __init__(self):
        self._lock = threading.Lock()
        self._names: Dict[str, str] = {}

    def add(self, container_id: str, name: str) -> None:
        with self._lock:
            self._names[container_id] = name

    def discard(self, container_id: str) -> None:
        with self._lock:
            self._names.pop(container_id, None)

    def items(self) -> List[Tuple[str, str]]:
        """(id, name) pairs ordered by name."""
        with self._lock:
            return sorted(self._names.items(), key=lambda kv: (kv[1], kv[0]))


class Worker(threading.Thread):
    def __init__(self, bus: SignalBus, name: str):
        super().__init__(daemon=True, name=name)
        self.bus = bus
        self.running = True
        self._wakeup = threading.Event()

    @property
    def active(self) -> bool:
        return self.running and not self.bus.closed

    def stop(self) -> None:
        self.running = False
        self._wakeup.set()

    def _sleep(self, seconds: float) -> None:
        self._wakeup.wait(seconds)


class EventWorker(Worker):
    def __init__(self, bus: SignalBus, backend: DockerBackend, tracked: TrackedContainers):
        super().__init__(bus, name="dockdash-events")
        self.backend = backend
        self.tracked = tracked
        self._stream = None

    def stop(self) -> None:
        super().stop()
        stream = self._stream
        if stream is not None and hasattr(stream, "close"):
            try:
                stream.close()
            except Exception as e:
                logger.debug(f"Error closing event stream: {e}")

    def run(self) -> None:
        try:
            # Subscribe before listing so a container starting in between is not missed
            self._stream = self.backend.events()
            for info in self.backend.list_running():
                self.tracked.add(info.id, info.name)
                if not self.bus.publish(LIFECYCLE, ContainerAppeared(info)):
                    return
            logger.info("Initial container list published")

            for event in self._stream:
                if not self.active:
                    return
                self.handle_event(event)
        except Exception as e:
            if self.active:
                logger.error(f"Docker event stream failed: {e}", exc_info=True)
                self.bus.publish(LIFECYCLE, SourceClosed("events", str(e)))
            return

        if self.active:
            logger.error("Docker event stream ended")
            self.bus.publish(LIFECYCLE, SourceClosed("events", "stream ended"))

    def handle_event(self, event: dict) -> None:
        action = event.get('Action') or event.get('status') or ""
        container_id = event.get('id') or event.get('Actor', {}).get('ID')
        if not container_id:
            return

        if action in START_ACTIONS:
            info = self.backend.inspect(container_id)
            if info is None:
                logger.warning(f"Container {container_id[:12]} vanished before inspect")
                return
            self.tracked.add(info.id, info.name)
            logger.debug(f"Container {info.name} {action}")
            self.bus.publish(LIFECYCLE, ContainerAppeared(info))
        elif action in STOP_ACTIONS:
            self.tracked.discard(container_id)
            logger.debug(f"Container {container_id[:12]} {action}")
            self.bus.publish(LIFECYCLE, ContainerRemoved(container_id))


class StatsWorker(Worker):
    def __init__(self, bus: SignalBus, backend: DockerBackend, tracked: TrackedContainers,
                 interval: float = 2.0):
        super().__init__(bus, name="dockdash-stats")
        self.backend = backend
        self.tracked = tracked
        self.interval = interval

    def sample(self) -> StatsSnapshot:
        names, cpu, mem = [], [], []
        for container_id, name in self.tracked.items():
            if not self.active:
                break
            result = self.backend.container_stats(container_id)
            if result is None:
                continue
            names.append(name)
            cpu.append(result[0])
            mem.append(result[1])
        return StatsSnapshot(names=tuple(names), cpu=tuple(cpu), mem=tuple(mem))

    def run(self) -> None:
        while self.active:
            snapshot = self.sample()
            if not self.active or not self.bus.publish(STATS, StatsSample(snapshot)):
                break
            self._sleep(self.interval)


class TickWorker(Worker):
    def __init__(self, bus: SignalBus, interval: float = 1.0):
        super().__init__(bus, name="dockdash-tick")
        self.interval = interval

    def run(self) -> None:
        while True:
            self._sleep(self.interval)
            if not self.active:
                break
            # A pending tick already covers this one
            self.bus.publish_nowait(TICK, Tick())
