"""
Reconciler loop and program startup for dockdash.

This module contains the single loop that owns every piece of view state and
the function that wires the program together:
  - Reconciler: waits on the SignalBus, applies one signal at a time to the
    Registry / Cursor / StatsHolder, then redraws through DockerView
  - build_keymap(): key codes -> actions from the configured key bindings
  - KeyboardInput: non-blocking key reader polled between bus waits
  - run(): builds bus, view and workers around a curses screen

Architecture:
  1. Workers (workers.py) publish signals from their own threads
  2. Reconciler.run() takes the next signal from any queue (fair wait)
  3. The signal is applied completely, then the affected region is drawn
  4. The loop ends when shutdown is requested (quit key, Ctrl-C)

Thread Safety:
  - Registry, Cursor and StatsHolder are only touched by the reconciler
    thread, so they carry no locks
  - No curses calls outside the reconciler thread, key reads included
"""

import curses
import logging
from typing import Dict, Optional

from . import DockdashError
from .backend import DockerBackend
from .bus import INPUT, SignalBus
from .config import AppConfig, KeyBindings
from .model import (ContainerAppeared, ContainerRemoved, Cursor, KeyPress, Quit,
                    Resize, SourceClosed, StatsSample, Tick)
from .state import (Move, Registry, StatsHolder, clamp_cursor, max_offset,
                    move_cursor, toggle_inspect)
from .stats import summarize
from .ui import DockerView
from .workers import EventWorker, StatsWorker, TickWorker, TrackedContainers

logger = logging.getLogger(__name__)

# Actions a key can be bound to
QUIT = "quit"
INSPECT = "inspect"
MOVES = {"left": Move.LEFT, "right": Move.RIGHT, "up": Move.UP, "down": Move.DOWN}

KEY_NAMES = {
    "left": curses.KEY_LEFT,
    "right": curses.KEY_RIGHT,
    "up": curses.KEY_UP,
    "down": curses.KEY_DOWN,
    "enter": 10,
    "space": ord(" "),
    "tab": 9,
    "esc": 27,
}
CTRL_C = 3
CTRL_D = 4


class SourceClosedError(DockdashError):
    """A signal source ended while the dashboard was running."""


def _key_code(binding: str) -> Optional[int]:
    binding = binding.strip()
    if binding.lower() in KEY_NAMES:
        return KEY_NAMES[binding.lower()]
    if len(binding) == 1:
        return ord(binding)
    logger.warning(f"Ignoring unusable key binding {binding!r}")
    return None


def build_keymap(bindings: KeyBindings) -> Dict[int, str]:
    """Map key codes to action names; Ctrl-C and Ctrl-D always quit."""
    keymap = {CTRL_C: QUIT, CTRL_D: QUIT}
    for action in (QUIT, INSPECT, *MOVES):
        code = _key_code(getattr(bindings, action))
        if code is not None:
            keymap[code] = action
    return keymap


class KeyboardInput:
    """Reads pending keys from a curses window without blocking.

    Only the reconciler thread calls poll(), so key reads never overlap
    drawing. KEY_RESIZE becomes Resize, anything else KeyPress.
    """

    def __init__(self, bus: SignalBus, window):
        self.bus = bus
        self.window = window
        self.window.keypad(True)
        self.window.nodelay(True)

    def poll(self) -> int:
        """Move pending keys onto the input queue while it has room."""
        count = 0
        while not self.bus.full(INPUT):
            code = self.window.getch()
            if code == curses.ERR:
                break
            signal = Resize() if code == curses.KEY_RESIZE else KeyPress(code)
            self.bus.publish_nowait(INPUT, signal)
            count += 1
        return count


class Reconciler:
    def __init__(self, bus: SignalBus, view: DockerView, keymap: Dict[int, str],
                 max_visible_rows: int = 30, keyboard: Optional[KeyboardInput] = None,
                 input_poll_interval: float = 0.05):
        self.bus = bus
        self.view = view
        self.keymap = keymap
        self.max_visible_rows = max_visible_rows
        self.keyboard = keyboard
        self.input_poll_interval = input_poll_interval
        self.registry = Registry()
        self.stats = StatsHolder()
        self.cursor = Cursor()
        self.summary = summarize(0, None)
        self.processed = 0
        self._handlers = {
            ContainerAppeared: self._on_appeared,
            ContainerRemoved: self._on_removed,
            StatsSample: self._on_stats,
            KeyPress: self._on_key,
            Resize: self._on_resize,
            Tick: self._on_tick,
            SourceClosed: self._on_source_closed,
        }

    @property
    def max_offset(self) -> int:
        return max_offset(len(self.registry))

    def run(self) -> None:
        """Process signals until shutdown is requested."""
        logger.info("Reconciler started")
        timeout = self.input_poll_interval if self.keyboard is not None else None
        while True:
            try:
                if self.keyboard is not None:
                    self.keyboard.poll()
                signal = self.bus.next_signal(timeout)
                if signal is None:
                    continue
                if isinstance(signal, Quit):
                    break
                self.handle(signal)
            except KeyboardInterrupt:
                logger.info("KeyboardInterrupt caught, exiting...")
                break
        self.bus.shutdown()
        logger.info(f"Reconciler stopped after {self.processed} signals")

    def handle(self, signal) -> None:
        handler = self._handlers.get(type(signal))
        if handler is None:
            raise TypeError(f"Unexpected signal {signal!r}")
        handler(signal)
        self.processed += 1

    # --- Rendering ---

    def _render_containers(self) -> None:
        self.view.render_containers(self.registry.sorted(), self.cursor.field_index,
                                    self.cursor.offset, self.cursor.inspect_mode)

    def _log_cursor(self, what: str) -> None:
        logger.debug(f"{what}: offset={self.cursor.offset} max_offset={self.max_offset} "
                     f"field={self.cursor.field_index}")

    # --- Handlers ---

    def _on_appeared(self, signal: ContainerAppeared) -> None:
        self.registry.upsert(signal.container)
        self.cursor = clamp_cursor(self.cursor, len(self.registry), self.max_visible_rows)
        self._log_cursor(f"Container appeared {signal.container.name}")
        self._render_containers()

    def _on_removed(self, signal: ContainerRemoved) -> None:
        self.registry.remove(signal.container_id)
        self.cursor = clamp_cursor(self.cursor, len(self.registry), self.max_visible_rows)
        self._log_cursor(f"Container removed {signal.container_id[:12]}")
        self._render_containers()

    def _on_stats(self, signal: StatsSample) -> None:
        self.stats.replace(signal.snapshot)
        cursor = clamp_cursor(self.cursor, len(self.registry), self.max_visible_rows)
        if cursor != self.cursor:
            self.cursor = cursor
            self._render_containers()
        self.view.render_stats(signal.snapshot, self.cursor.offset)

    def _on_key(self, signal: KeyPress) -> None:
        action = self.keymap.get(signal.code)
        if action is None:
            logger.debug(f"Got unhandled key {signal.code}")
            return
        if action == QUIT:
            logger.info("Quitting")
            self.bus.shutdown()
            return
        if action == INSPECT:
            self.cursor = toggle_inspect(self.cursor)
        else:
            self.cursor = move_cursor(self.cursor, MOVES[action], len(self.registry), self.max_visible_rows)
        self._log_cursor(f"Key {action}")
        self._render_containers()

    def _on_resize(self, signal: Resize) -> None:
        self.view.reset_size()
        self.view.render()

    def _on_tick(self, signal: Tick) -> None:
        self.summary = summarize(len(self.registry), self.stats.current)
        self.view.set_summary(self.summary.format())
        self.view.render()

    def _on_source_closed(self, signal: SourceClosed) -> None:
        raise SourceClosedError(f"{signal.source} source closed: {signal.reason}")


def run(stdscr, config: AppConfig, backend: DockerBackend) -> int:
    """Run the dashboard on an initialized curses screen. Returns the exit code."""
    logger.info("Main started")
    view = DockerView(stdscr)
    bus = SignalBus(queue_size=config.bus.queue_size)
    tracked = TrackedContainers()

    h, w = stdscr.getmaxyx()
    input_win = curses.newwin(1, 1, max(h - 1, 0), max(w - 1, 0))
    workers = [
        EventWorker(bus, backend, tracked),
        StatsWorker(bus, backend, tracked, config.docker.stats_interval),
        TickWorker(bus, config.ui.tick_interval),
    ]
    keyboard = KeyboardInput(bus, input_win)
    reconciler = Reconciler(bus, view, build_keymap(config.keybindings), config.ui.max_visible_rows,
                            keyboard, config.ui.input_poll_interval)

    view.set_summary(reconciler.summary.format())
    view.render()
    for worker in workers:
        worker.start()
    logger.info("Workers started")

    try:
        reconciler.run()
    finally:
        bus.shutdown()
        for worker in workers:
            worker.stop()
    return 0
