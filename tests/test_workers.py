from unittest.mock import MagicMock

import pytest
from dockdash.bus import LIFECYCLE, SignalBus
from dockdash.model import (ContainerAppeared, ContainerInfo, ContainerRemoved, SourceClosed,
                            StatsSample, Tick)
from dockdash.workers import EventWorker, StatsWorker, TickWorker, TrackedContainers


def info(id, name=None):
    return ContainerInfo(id=id, name=name or id, image="alpine", status="running")


def drain(bus, category):
    items = []
    while bus.pending(category):
        items.append(bus.next_signal())
    return items


@pytest.fixture
def bus():
    return SignalBus(queue_size=32)


@pytest.fixture
def backend():
    return MagicMock()


def test_tracked_containers_ordered_by_name():
    tracked = TrackedContainers()
    tracked.add("2", "web")
    tracked.add("1", "api")
    tracked.add("3", "db")
    tracked.discard("3")
    tracked.discard("missing")
    assert tracked.items() == [("1", "api"), ("2", "web")]


def test_event_worker_publishes_initial_containers(bus, backend):
    backend.list_running.return_value = [info("a"), info("b")]
    backend.events.return_value = iter([])
    tracked = TrackedContainers()

    EventWorker(bus, backend, tracked).run()

    signals = drain(bus, LIFECYCLE)
    assert signals[:2] == [ContainerAppeared(info("a")), ContainerAppeared(info("b"))]
    assert [i for i, _ in tracked.items()] == ["a", "b"]


def test_event_worker_follows_start_and_die(bus, backend):
    backend.list_running.return_value = []
    backend.inspect.return_value = info("c", "cache")
    backend.events.return_value = iter([
        {"Type": "container", "Action": "start", "id": "c"},
        {"Type": "container", "Action": "exec_start: sh", "id": "c"},
        {"Type": "container", "Action": "die", "Actor": {"ID": "c"}},
        {"Type": "container", "Action": "start"},
    ])
    tracked = TrackedContainers()

    EventWorker(bus, backend, tracked).run()

    signals = drain(bus, LIFECYCLE)
    assert signals[0] == ContainerAppeared(info("c", "cache"))
    assert signals[1] == ContainerRemoved("c")
    assert isinstance(signals[2], SourceClosed)
    assert len(signals) == 3
    assert tracked.items() == []
    backend.inspect.assert_called_once_with("c")


def test_event_worker_skips_vanished_container(bus, backend):
    backend.list_running.return_value = []
    backend.inspect.return_value = None
    backend.events.return_value = iter([{"Action": "start", "id": "gone"}])

    EventWorker(bus, backend, TrackedContainers()).run()

    signals = drain(bus, LIFECYCLE)
    assert len(signals) == 1
    assert isinstance(signals[0], SourceClosed)


def test_event_worker_reports_stream_failure(bus, backend):
    backend.list_running.return_value = []

    def broken():
        yield {"Action": "stop", "id": "x"}
        raise ConnectionError("daemon went away")

    backend.events.return_value = broken()
    EventWorker(bus, backend, TrackedContainers()).run()

    signals = drain(bus, LIFECYCLE)
    assert signals[0] == ContainerRemoved("x")
    assert signals[1] == SourceClosed("events", "daemon went away")


def test_stopped_event_worker_reports_nothing(bus, backend):
    backend.events.side_effect = ConnectionError("closed")
    worker = EventWorker(bus, backend, TrackedContainers())
    worker.stop()
    worker.run()
    assert bus.pending(LIFECYCLE) == 0


def test_event_worker_stop_closes_stream(bus, backend):
    stream = MagicMock()
    worker = EventWorker(bus, backend, TrackedContainers())
    worker._stream = stream
    worker.stop()
    stream.close.assert_called_once()


def test_stats_worker_sample_skips_unavailable(bus, backend):
    tracked = TrackedContainers()
    tracked.add("1", "web")
    tracked.add("2", "db")
    tracked.add("3", "api")
    results = {"1": (10.0, 1.0), "2": None, "3": (5.0, 2.0)}
    backend.container_stats.side_effect = lambda cid: results[cid]

    snapshot = StatsWorker(bus, backend, tracked).sample()

    assert snapshot.names == ("api", "web")
    assert snapshot.cpu == (5.0, 10.0)
    assert snapshot.mem == (2.0, 1.0)


def test_stats_worker_publishes_until_stopped(bus, backend):
    tracked = TrackedContainers()
    tracked.add("1", "web")
    backend.container_stats.return_value = (1.0, 2.0)
    worker = StatsWorker(bus, backend, tracked, interval=0.01)
    worker.start()

    signal = bus.next_signal()
    worker.stop()
    worker.join(1.0)

    assert isinstance(signal, StatsSample)
    assert signal.snapshot.names == ("web",)
    assert not worker.is_alive()


def test_tick_worker_emits_ticks(bus):
    worker = TickWorker(bus, interval=0.01)
    worker.start()
    assert isinstance(bus.next_signal(), Tick)
    worker.stop()
    worker.join(1.0)
    assert not worker.is_alive()


def test_tick_worker_exits_on_bus_shutdown(bus):
    worker = TickWorker(bus, interval=0.01)
    worker.start()
    bus.shutdown()
    worker.join(1.0)
    assert not worker.is_alive()
