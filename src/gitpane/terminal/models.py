"""Session domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

GLOBAL_SCOPE_KEY = "global"

Handle = str


class Scope(str, Enum):
    GLOBAL = "global"
    TABPAGE = "tabpage"


class HookEvent(str, Enum):
    ENTER = "enter"
    LEAVE = "leave"
    DISPLAY = "display"


@dataclass
class Session:
    """Buffer, process and last repository root tracked for one scope key.

    ``None`` marks a handle as not allocated. A process is only ever recorded
    while a buffer is recorded; the reverse does not hold.
    """

    buffer: Handle | None = None
    process: Handle | None = None
    last_path: str | None = None

    @property
    def has_buffer(self) -> bool:
        return self.buffer is not None

    @property
    def is_running(self) -> bool:
        return self.process is not None

    def reset(self) -> None:
        self.buffer = None
        self.process = None
