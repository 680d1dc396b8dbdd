"""Editor host services consumed by the session manager."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Literal, Protocol

from gitpane.terminal.models import Handle

NotifyLevel = Literal["info", "warn", "error"]
HookCallback = Callable[[Handle], None]
ExitCallback = Callable[[Handle, int | None], None]


class EditorHost(Protocol):
    def create_buffer(self) -> Handle: ...

    def register_buffer_hooks(
        self,
        buffer: Handle,
        *,
        on_enter: HookCallback,
        on_leave: HookCallback,
        on_display: HookCallback,
    ) -> None: ...

    def buffer_is_loaded(self, buffer: Handle) -> bool: ...

    def delete_buffer(self, buffer: Handle) -> None: ...

    def window_for_buffer(self, buffer: Handle) -> Handle | None: ...

    def open_window(self, buffer: Handle, *, height_fraction: float) -> Handle: ...

    def focus_window(self, window: Handle) -> None: ...

    def close_window(self, window: Handle) -> None: ...

    def start_process(
        self,
        buffer: Handle,
        argv: Sequence[str],
        *,
        cwd: str,
        on_exit: ExitCallback,
    ) -> Handle: ...

    def reset_view(self, buffer: Handle) -> None: ...

    def decorate_window(self, window: Handle) -> None: ...

    def current_tab_key(self) -> str: ...

    def cwd(self) -> str: ...

    def notify(self, message: str, *, level: NotifyLevel = "info") -> None: ...
