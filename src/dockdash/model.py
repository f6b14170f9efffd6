"""
Data models and signal types for dockdash.

This module defines the dataclasses that flow between the Docker event
source, the reconciler and the curses view:
  - ContainerInfo: descriptor of one running container
  - Cursor: navigation state (scroll offset, displayed field, inspect flag)
  - StatsSnapshot: one resource-usage sample set (parallel CPU/MEM series)
  - Summary: aggregate computed on every tick for the info bar
  - Signals: ContainerAppeared, ContainerRemoved, StatsSample, KeyPress,
    Resize, Tick, Quit, SourceClosed

Key Fields:
  - All payload dataclasses are frozen: once a producer hands a signal to
    the bus it cannot change it underneath the reconciler.
  - ContainerInfo.id is the only field the reconciler interprets; every
    other field is rendered as-is.

Display Fields:
  FIELDS lists the descriptor attributes that the right-hand column can
  cycle through with left/right. MAX_FIELD_INDEX is its last index.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

# Descriptor attributes the field column can show, in cycling order
FIELDS: Tuple[str, ...] = ("image", "ports", "binds", "command", "entrypoint", "env", "created")
FIELD_LABELS = {
    "image": "Image",
    "ports": "Ports",
    "binds": "Binds",
    "command": "Command",
    "entrypoint": "Entrypoint",
    "env": "Env",
    "created": "Created",
}
MAX_FIELD_INDEX = len(FIELDS) - 1


@dataclass(frozen=True)
class ContainerInfo:
    id: str
    name: str
    image: str
    status: str
    ports: str = ""
    command: str = ""
    entrypoint: str = ""
    env: str = ""
    binds: str = ""
    created: str = ""

    @property
    def short_id(self) -> str:
        return self.id[:12]

    def field_value(self, field_index: int) -> str:
        return getattr(self, FIELDS[field_index])


@dataclass(frozen=True)
class Cursor:
    offset: int = 0
    field_index: int = 0
    inspect_mode: bool = False


@dataclass(frozen=True)
class StatsSnapshot:
    """One sample per tracked container; the three series are index-aligned."""
    names: Tuple[str, ...] = ()
    cpu: Tuple[float, ...] = ()
    mem: Tuple[float, ...] = ()

    def __len__(self) -> int:
        return len(self.names)


@dataclass(frozen=True)
class Summary:
    container_count: int = 0
    total_cpu: float = 0.0
    total_mem: float = 0.0

    def format(self) -> str:
        return (f" Cons:{self.container_count}  Total CPU:{self.total_cpu:.0f}%  "
                f"Total Mem:{self.total_mem:.0f}%")


# --- SIGNALS ---

@dataclass(frozen=True)
class ContainerAppeared:
    container: ContainerInfo


@dataclass(frozen=True)
class ContainerRemoved:
    container_id: str


@dataclass(frozen=True)
class StatsSample:
    snapshot: StatsSnapshot


@dataclass(frozen=True)
class KeyPress:
    code: int


@dataclass(frozen=True)
class Resize:
    pass


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class SourceClosed:
    source: str
    reason: Optional[str] = None
