import curses
import threading
from unittest.mock import MagicMock

import pytest
from dockdash.bus import INPUT, LIFECYCLE, STATS, TICK, SignalBus
from dockdash.config import KeyBindings
from dockdash.main import CTRL_C, KeyboardInput, Reconciler, SourceClosedError, build_keymap
from dockdash.model import (MAX_FIELD_INDEX, ContainerAppeared, ContainerInfo, ContainerRemoved,
                            KeyPress, Resize, SourceClosed, StatsSample, StatsSnapshot, Tick)
from dockdash.workers import TickWorker


def container(id, image="nginx:latest"):
    return ContainerInfo(id=id, name=id, image=image, status="running")


def key(ch):
    return KeyPress(ord(ch) if isinstance(ch, str) else ch)


@pytest.fixture
def view():
    return MagicMock()


@pytest.fixture
def rec(view):
    return Reconciler(SignalBus(), view, build_keymap(KeyBindings()), max_visible_rows=30)


def test_build_keymap_defaults():
    keymap = build_keymap(KeyBindings())
    assert keymap[ord("q")] == "quit"
    assert keymap[ord("i")] == "inspect"
    assert keymap[curses.KEY_LEFT] == "left"
    assert keymap[curses.KEY_DOWN] == "down"
    assert keymap[CTRL_C] == "quit"


def test_build_keymap_custom_and_invalid():
    keymap = build_keymap(KeyBindings(quit="x", up="k", down="not-a-key"))
    assert keymap[ord("x")] == "quit"
    assert keymap[ord("k")] == "up"
    assert "down" not in keymap.values()


def test_scenario_add_scroll_remove(rec, view):
    rec.handle(ContainerAppeared(container("a")))
    rec.handle(ContainerAppeared(container("b")))
    assert len(rec.registry) == 2
    assert rec.max_offset == 1

    rec.handle(key(curses.KEY_DOWN))
    rec.handle(key(curses.KEY_DOWN))
    assert rec.cursor.offset == 1

    rec.handle(ContainerRemoved("a"))
    assert rec.max_offset == 0
    assert rec.cursor.offset == 0
    view.render_containers.assert_called_with([container("b")], 0, 0, False)


def test_removing_everything_resets_offset(rec):
    for i in "abcde":
        rec.handle(ContainerAppeared(container(i)))
    for _ in range(4):
        rec.handle(key(curses.KEY_DOWN))
    assert rec.cursor.offset == 4

    for i in "abcde":
        rec.handle(ContainerRemoved(i))
    assert len(rec.registry) == 0
    assert rec.cursor.offset == 0


def test_upsert_idempotence(rec):
    rec.handle(ContainerAppeared(container("a", image="redis:6")))
    rec.handle(ContainerAppeared(container("a", image="redis:7")))
    assert len(rec.registry) == 1
    assert rec.registry.get("a").image == "redis:7"


def test_field_navigation_bounds(rec, view):
    rec.handle(key(curses.KEY_LEFT))
    assert rec.cursor.field_index == 0

    for _ in range(MAX_FIELD_INDEX + 3):
        rec.handle(key(curses.KEY_RIGHT))
    assert rec.cursor.field_index == MAX_FIELD_INDEX
    view.render_containers.assert_called_with([], MAX_FIELD_INDEX, 0, False)


def test_toggle_inspect_twice_restores_render_inputs(rec, view):
    rec.handle(ContainerAppeared(container("a")))
    rec.handle(key(curses.KEY_RIGHT))
    before = view.render_containers.call_args

    rec.handle(key("i"))
    assert view.render_containers.call_args.args[3] is True
    rec.handle(key("i"))
    assert view.render_containers.call_args == before


def test_unrecognized_key_changes_nothing(rec, view):
    rec.handle(ContainerAppeared(container("a")))
    view.reset_mock()
    cursor = rec.cursor

    rec.handle(key("z"))
    assert rec.cursor == cursor
    view.render_containers.assert_not_called()
    view.render.assert_not_called()


def test_tick_without_stats_reports_zero(rec, view):
    rec.handle(ContainerAppeared(container("a")))
    rec.handle(Tick())
    assert rec.summary.container_count == 1
    assert rec.summary.total_cpu == 0
    assert rec.summary.total_mem == 0
    view.set_summary.assert_called_with(" Cons:1  Total CPU:0%  Total Mem:0%")
    view.render.assert_called_once()


def test_tick_aggregates_latest_snapshot(rec, view):
    for i in "ab":
        rec.handle(ContainerAppeared(container(i)))
    rec.handle(StatsSample(StatsSnapshot(names=("x",), cpu=(99,), mem=(99,))))
    rec.handle(StatsSample(StatsSnapshot(names=("a", "b", "c"), cpu=(10, 20, 5), mem=(1, 2, 3))))
    rec.handle(Tick())

    assert rec.summary.total_cpu == 35
    assert rec.summary.total_mem == 6
    assert rec.summary.container_count == 2


def test_stats_sample_renders_at_current_offset(rec, view):
    for i in "abc":
        rec.handle(ContainerAppeared(container(i)))
    rec.handle(key(curses.KEY_DOWN))
    snapshot = StatsSnapshot(names=("a", "b", "c"), cpu=(1, 2, 3), mem=(1, 2, 3))
    rec.handle(StatsSample(snapshot))

    assert rec.stats.current is snapshot
    view.render_stats.assert_called_with(snapshot, 1)


def test_stats_after_shrink_never_uses_stale_offset(rec, view):
    for i in "abc":
        rec.handle(ContainerAppeared(container(i)))
    rec.handle(key(curses.KEY_DOWN))
    rec.handle(key(curses.KEY_DOWN))
    rec.handle(ContainerRemoved("a"))
    rec.handle(ContainerRemoved("b"))

    snapshot = StatsSnapshot(names=("c",), cpu=(1,), mem=(1,))
    rec.handle(StatsSample(snapshot))
    view.render_stats.assert_called_with(snapshot, 0)


def test_resize_resets_layout_and_repaints(rec, view):
    rec.handle(Resize())
    view.reset_size.assert_called_once()
    view.render.assert_called_once()


def test_source_closed_is_fatal(rec):
    with pytest.raises(SourceClosedError):
        rec.handle(SourceClosed("events", "stream ended"))


def test_unknown_signal_type_raises(rec):
    with pytest.raises(TypeError):
        rec.handle(object())


def test_run_processes_until_quit_key(view):
    bus = SignalBus()
    rec = Reconciler(bus, view, build_keymap(KeyBindings()))
    rec.handle(ContainerAppeared(container("a")))
    rec.handle(ContainerAppeared(container("b")))
    bus.publish(INPUT, key(curses.KEY_DOWN))
    bus.publish(INPUT, key("q"))
    bus.publish(INPUT, key(curses.KEY_UP))

    rec.run()

    assert bus.closed
    assert len(rec.registry) == 2
    # The key queued after quit is never applied
    assert rec.cursor.offset == 1


def test_run_stops_before_queued_signals_on_shutdown(view):
    bus = SignalBus()
    rec = Reconciler(bus, view, build_keymap(KeyBindings()))
    bus.publish(LIFECYCLE, ContainerAppeared(container("a")))
    bus.publish(STATS, StatsSample(StatsSnapshot()))
    bus.publish(TICK, Tick())
    bus.shutdown()

    rec.run()

    assert rec.processed == 0
    assert len(rec.registry) == 0
    view.render_containers.assert_not_called()


def test_run_treats_keyboard_interrupt_as_quit(view):
    bus = MagicMock()
    bus.next_signal.side_effect = KeyboardInterrupt
    rec = Reconciler(bus, view, build_keymap(KeyBindings()))

    rec.run()

    bus.shutdown.assert_called_once()
    assert rec.processed == 0


def test_ctrl_c_key_quits(view):
    bus = SignalBus()
    rec = Reconciler(bus, view, build_keymap(KeyBindings()))
    bus.publish(INPUT, KeyPress(CTRL_C))
    rec.run()
    assert bus.closed
    assert rec.processed == 1


def key_window(codes):
    """Mock curses window whose getch() yields `codes`, then ERR forever."""
    window = MagicMock()
    pending = list(codes)
    readers = []

    def getch():
        readers.append(threading.current_thread())
        return pending.pop(0) if pending else curses.ERR

    window.getch.side_effect = getch
    return window, readers


def test_keyboard_input_translates_pending_keys():
    bus = SignalBus()
    window, _ = key_window([ord("i"), curses.KEY_RESIZE])
    keyboard = KeyboardInput(bus, window)

    assert keyboard.poll() == 2
    assert keyboard.poll() == 0

    window.keypad.assert_called_once_with(True)
    window.nodelay.assert_called_once_with(True)
    assert bus.next_signal() == KeyPress(ord("i"))
    assert bus.next_signal() == Resize()


def test_keyboard_input_leaves_keys_in_terminal_when_queue_full():
    bus = SignalBus(queue_size=2)
    window, _ = key_window([ord("a"), ord("b"), ord("c")])
    keyboard = KeyboardInput(bus, window)

    assert keyboard.poll() == 2
    assert window.getch.call_count == 2
    assert bus.pending(INPUT) == 2


def test_keys_are_read_only_on_reconciler_thread(view):
    bus = SignalBus()
    window, readers = key_window([curses.KEY_DOWN, curses.ERR, ord("i"), ord("q")])
    rec = Reconciler(bus, view, build_keymap(KeyBindings()),
                     keyboard=KeyboardInput(bus, window), input_poll_interval=0.01)
    rec.handle(ContainerAppeared(container("a")))
    rec.handle(ContainerAppeared(container("b")))
    ticker = TickWorker(bus, interval=0.005)
    loop = threading.Thread(target=rec.run, name="reconciler")

    ticker.start()
    loop.start()
    loop.join(2.0)
    ticker.stop()
    ticker.join(1.0)

    assert not loop.is_alive()
    assert bus.closed
    assert readers
    assert all(t is loop for t in readers)
    assert rec.cursor.offset == 1
    assert rec.cursor.inspect_mode is True
