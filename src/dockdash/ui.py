"""
Curses-based Terminal UI rendering engine.

This module handles all terminal rendering via the curses library. It provides:
  - Color initialization and color pair management
  - Container list rendering (name column + one selectable field column)
  - Inspect panel with the full descriptor of one container
  - CPU / memory bars per container
  - Info bar (summary line) and key help footer

Rendering Strategy:
  - Regions are separate curses windows created by reset_size():
    - Info bar: summary line
    - List: names + selected field, or inspect panel
    - Stats: CPU and MEM bars side by side
    - Footer: key help
  - Each render_* call redraws one region and flushes with doupdate()
  - render() repaints everything from the last inputs it was given

Color Pairs (initialized in init_colors):
  1: White (default text)
  2: Green (running / CPU bars)
  3: Red (warnings)
  4: Cyan (headers/borders)
  5: Magenta (memory bars)
  7: Black on cyan (info bar)

Limitations:
  - curses not available on Windows (use WSL)
  - Regions that do not fit the terminal are skipped; drawing errors from a
    too-small terminal are ignored
"""

import curses
import logging
from typing import List, Optional, Tuple

from . import DockdashError
from .model import FIELD_LABELS, FIELDS, ContainerInfo, StatsSnapshot
from .stats import ChartRenderer

logger = logging.getLogger(__name__)

MIN_HEIGHT = 10
MIN_WIDTH = 40
NAME_COL_RATIO = 0.35
STATS_HEIGHT_RATIO = 0.35
HELP_TEXT = " q: Quit | i: Inspect | Left/Right: Field | Up/Down: Scroll "


class DisplayInitError(DockdashError):
    """The terminal could not be prepared for drawing."""


def init_colors():
    curses.start_color()
    curses.use_default_colors()
    curses.init_pair(1, curses.COLOR_WHITE, -1)    # Default
    curses.init_pair(2, curses.COLOR_GREEN, -1)    # Running / CPU
    curses.init_pair(3, curses.COLOR_RED, -1)      # Warning
    curses.init_pair(4, curses.COLOR_CYAN, -1)     # Headers
    curses.init_pair(5, curses.COLOR_MAGENTA, -1)  # Memory
    curses.init_pair(7, curses.COLOR_BLACK, curses.COLOR_CYAN)  # Info bar


def _safe_addstr(win, y: int, x: int, text: str, attr: int = 0) -> None:
    try:
        win.addstr(y, x, text, attr)
    except curses.error:
        # Writing the bottom-right cell or a clipped window raises; ignore
        pass


class DockerView:
    """The only object that draws on the terminal."""

    def __init__(self, stdscr):
        self.stdscr = stdscr
        try:
            curses.curs_set(0)
        except curses.error:
            # Some terminals cannot hide the cursor
            pass
        try:
            init_colors()
        except curses.error as e:
            raise DisplayInitError(f"Cannot initialize colors: {e}") from e

        self.summary = ""
        self.too_small = False
        self.info_win = None
        self.list_win = None
        self.stats_win = None

        self._containers: List[ContainerInfo] = []
        self._field_index = 0
        self._offset = 0
        self._inspect_mode = False
        self._stats: Optional[StatsSnapshot] = None
        self._stats_offset = 0

        self.reset_size()

    # --- Layout ---

    def reset_size(self) -> None:
        """Recompute window geometry from the current terminal size."""
        h, w = self.stdscr.getmaxyx()
        logger.info(f"Layout: {h}x{w}")
        self.height, self.width = h, w
        self.stdscr.clear()
        self.stdscr.noutrefresh()

        if h < MIN_HEIGHT or w < MIN_WIDTH:
            self.too_small = True
            self.info_win = self.list_win = self.stats_win = None
            return

        self.too_small = False
        stats_h = max(3, int(h * STATS_HEIGHT_RATIO))
        list_h = h - stats_h - 2
        self.info_win = curses.newwin(1, w, 0, 0)
        self.list_win = curses.newwin(list_h, w, 1, 0)
        self.stats_win = curses.newwin(stats_h, w, 1 + list_h, 0)

    # --- Public render operations ---

    def set_summary(self, text: str) -> None:
        self.summary = text

    def render_containers(self, containers: List[ContainerInfo], field_index: int,
                          offset: int, inspect_mode: bool) -> None:
        self._containers = list(containers)
        self._field_index = field_index
        self._offset = offset
        self._inspect_mode = inspect_mode
        self._draw_list()
        curses.doupdate()

    def render_stats(self, snapshot: Optional[StatsSnapshot], offset: int) -> None:
        self._stats = snapshot
        self._stats_offset = offset
        self._draw_stats()
        curses.doupdate()

    def render(self) -> None:
        """Full repaint of every region."""
        if self.too_small:
            self.stdscr.erase()
            _safe_addstr(self.stdscr, 0, 0, "Terminal too small!")
            self.stdscr.noutrefresh()
            curses.doupdate()
            return
        self._draw_info()
        self._draw_list()
        self._draw_stats()
        self._draw_footer()
        curses.doupdate()

    # --- Regions ---

    def _draw_info(self) -> None:
        win = self.info_win
        if win is None:
            return
        win.erase()
        _, w = win.getmaxyx()
        _safe_addstr(win, 0, 0, self.summary[:w - 1].ljust(w - 1), curses.color_pair(7) | curses.A_BOLD)
        win.noutrefresh()

    def _draw_footer(self) -> None:
        y = self.height - 1
        _safe_addstr(self.stdscr, y, 0, HELP_TEXT[:self.width - 1], curses.color_pair(4))
        self.stdscr.noutrefresh()

    def _draw_list(self) -> None:
        win = self.list_win
        if win is None:
            return
        win.erase()
        win.attron(curses.color_pair(4))
        win.box()
        win.attroff(curses.color_pair(4))
        if self._inspect_mode:
            self._draw_inspect(win)
        else:
            self._draw_columns(win)
        win.noutrefresh()

    def _draw_columns(self, win) -> None:
        h, w = win.getmaxyx()
        name_w = max(10, int((w - 4) * NAME_COL_RATIO))
        field_w = max(10, w - name_w - 5)
        label = FIELD_LABELS[FIELDS[self._field_index]]

        _safe_addstr(win, 0, 2, f" Containers ({len(self._containers)}) ", curses.A_BOLD)
        _safe_addstr(win, 1, 2, f"{'NAME':<{name_w}} {label.upper()}", curses.color_pair(4) | curses.A_BOLD)

        visible = self._containers[self._offset:self._offset + max(0, h - 3)]
        for i, c in enumerate(visible):
            style = curses.color_pair(2) if c.status == "running" else curses.color_pair(3)
            _safe_addstr(win, 2 + i, 2, f"{c.name[:name_w - 1]:<{name_w}}", style)
            _safe_addstr(win, 2 + i, 3 + name_w, c.field_value(self._field_index)[:field_w])

    def _draw_inspect(self, win) -> None:
        h, w = win.getmaxyx()
        _safe_addstr(win, 0, 2, " Inspect ", curses.A_BOLD)
        if not self._containers or self._offset >= len(self._containers):
            _safe_addstr(win, 1, 2, "No container selected")
            return
        c = self._containers[self._offset]
        rows = [("ID", c.short_id), ("Name", c.name), ("Status", c.status)]
        rows += [(FIELD_LABELS[f], getattr(c, f)) for f in FIELDS]
        selected = FIELD_LABELS[FIELDS[self._field_index]]
        for i, (label, value) in enumerate(rows[:h - 2]):
            attr = curses.A_BOLD if label == selected else curses.A_NORMAL
            _safe_addstr(win, 1 + i, 2, f"{label + ':':<12}{value}"[:w - 4], attr)

    def _draw_stats(self) -> None:
        win = self.stats_win
        if win is None:
            return
        win.erase()
        win.attron(curses.color_pair(4))
        win.box()
        win.attroff(curses.color_pair(4))
        h, w = win.getmaxyx()
        half = (w - 2) // 2
        _safe_addstr(win, 0, 2, " CPU % ", curses.A_BOLD)
        _safe_addstr(win, 0, 2 + half, " Mem % ", curses.A_BOLD)

        snapshot = self._stats
        if snapshot is None:
            _safe_addstr(win, 1, 2, "Waiting for stats...")
            win.noutrefresh()
            return

        rows = max(0, h - 2)
        names, cpu, mem = self._stats_rows(snapshot, rows)
        label_w = max(6, min(16, half // 3))
        bar_w = max(1, half - label_w - 10)
        cpu_lines = ChartRenderer.bar_chart(names, cpu, bar_w, label_w)
        mem_lines = ChartRenderer.bar_chart(names, mem, bar_w, label_w)
        for i, line in enumerate(cpu_lines[:rows]):
            _safe_addstr(win, 1 + i, 2, line[:half - 2], curses.color_pair(2))
        for i, line in enumerate(mem_lines[:rows]):
            _safe_addstr(win, 1 + i, 2 + half, line[:half - 2], curses.color_pair(5))
        win.noutrefresh()

    def _stats_rows(self, snapshot: StatsSnapshot, rows: int) -> Tuple[List[str], List[float], List[float]]:
        """Samples for the visible list rows, matched by name.

        Containers without a sample are skipped. Before any container was
        rendered the snapshot itself is sliced from the offset.
        """
        if not self._containers:
            start = min(self._stats_offset, max(len(snapshot) - 1, 0))
            return (list(snapshot.names[start:start + rows]),
                    list(snapshot.cpu[start:start + rows]),
                    list(snapshot.mem[start:start + rows]))

        samples = {name: (c, m) for name, c, m in zip(snapshot.names, snapshot.cpu, snapshot.mem)}
        names, cpu, mem = [], [], []
        for container in self._containers[self._stats_offset:]:
            if len(names) == rows:
                break
            sample = samples.get(container.name)
            if sample is None:
                continue
            names.append(container.name)
            cpu.append(sample[0])
            mem.append(sample[1])
        return names, cpu, mem
