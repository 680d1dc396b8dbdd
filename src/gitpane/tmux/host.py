"""Tmux-backed editor host.

A gitpane "buffer" is a tmux pane parked in a detached window named
``gitpane``. Displaying it joins the pane below the caller's pane, and hiding
it breaks the pane back out to a parked window. The pane program is the git
TUI, swapped in with ``respawn-pane``. Tmux cannot call back into Python, so
process exits are found by polling ``list-panes``.
"""

from __future__ import annotations

import asyncio
import logging as py_logging
import os
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from gitpane.errors import ExitCode, GitPaneError
from gitpane.terminal.host import ExitCallback, HookCallback, NotifyLevel
from gitpane.terminal.models import Handle, HookEvent
from gitpane.tmux import commands as tmux

logger = py_logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5
PANE_TITLE = "gitpane"

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass
class _WatchedProcess:
    handle: Handle
    pid: str
    on_exit: ExitCallback


def process_handle(pane_id: str, pid: str) -> Handle:
    return f"{pane_id}:{pid}"


class TmuxHost:
    def __init__(
        self,
        *,
        origin_pane: str = "",
        runner: Runner = subprocess.run,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.origin_pane = origin_pane
        self.poll_interval = poll_interval
        self._runner = runner
        self._hooks: dict[Handle, dict[HookEvent, HookCallback]] = {}
        self._watched: dict[Handle, _WatchedProcess] = {}

    @classmethod
    def from_environment(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        runner: Runner = subprocess.run,
    ) -> TmuxHost:
        env = os.environ if environ is None else environ
        if not env.get("TMUX", "").strip():
            raise GitPaneError(
                "gitpane must run inside a tmux session.",
                code=ExitCode.TMUX_ERROR,
                hint="Start tmux and run gitpane from one of its panes.",
            )
        return cls(origin_pane=env.get("TMUX_PANE", "").strip(), runner=runner)

    def create_buffer(self) -> Handle:
        pane_id = self._run(tmux.new_parked_pane_command()).strip()
        if not pane_id:
            raise GitPaneError(
                "tmux did not report the new pane id.",
                code=ExitCode.TMUX_ERROR,
                hint="Check the tmux server with `tmux info`.",
            )
        logger.debug("Created parked pane=%s", pane_id)
        return pane_id

    def register_buffer_hooks(
        self,
        buffer: Handle,
        *,
        on_enter: HookCallback,
        on_leave: HookCallback,
        on_display: HookCallback,
    ) -> None:
        self._hooks[buffer] = {
            HookEvent.ENTER: on_enter,
            HookEvent.LEAVE: on_leave,
            HookEvent.DISPLAY: on_display,
        }

    def buffer_is_loaded(self, buffer: Handle) -> bool:
        return buffer in self._list_panes()

    def delete_buffer(self, buffer: Handle) -> None:
        self._hooks.pop(buffer, None)
        if buffer not in self._list_panes():
            return
        self._run(tmux.kill_pane_command(buffer))

    def window_for_buffer(self, buffer: Handle) -> Handle | None:
        pane = self._list_panes().get(buffer)
        if pane is None or pane.parked:
            return None
        return pane.pane_id

    def open_window(self, buffer: Handle, *, height_fraction: float) -> Handle:
        self._run(tmux.join_pane_command(buffer, target=self.origin_pane, height_fraction=height_fraction))
        for command in tmux.focus_pane_commands(buffer):
            self._run(command)
        self._fire(buffer, HookEvent.DISPLAY)
        self._fire(buffer, HookEvent.ENTER)
        return buffer

    def focus_window(self, window: Handle) -> None:
        for command in tmux.focus_pane_commands(window):
            self._run(command)
        self._fire(window, HookEvent.ENTER)

    def close_window(self, window: Handle) -> None:
        self._fire(window, HookEvent.LEAVE)
        if window not in self._list_panes():
            return
        self._run(tmux.break_pane_command(window))

    def start_process(
        self,
        buffer: Handle,
        argv: Sequence[str],
        *,
        cwd: str,
        on_exit: ExitCallback,
    ) -> Handle:
        for command in tmux.respawn_commands(buffer, argv, cwd=cwd):
            self._run(command)
        pid = self._run(tmux.display_command("#{pane_pid}", target=buffer)).strip()
        handle = process_handle(buffer, pid)
        self._watched[buffer] = _WatchedProcess(handle=handle, pid=pid, on_exit=on_exit)
        logger.debug("Started process handle=%s argv=%s", handle, list(argv))
        return handle

    def reset_view(self, buffer: Handle) -> None:
        self._run(tmux.quit_copy_mode_command(buffer))

    def decorate_window(self, window: Handle) -> None:
        self._run(tmux.set_title_command(window, PANE_TITLE))

    def current_tab_key(self) -> str:
        return self._run(tmux.display_command("#{window_id}", target=self.origin_pane)).strip()

    def cwd(self) -> str:
        current = self._run(tmux.display_command("#{pane_current_path}", target=self.origin_pane)).strip()
        return current or os.getcwd()

    def notify(self, message: str, *, level: NotifyLevel = "info") -> None:
        log = logger.error if level == "error" else logger.warning if level == "warn" else logger.info
        log("notify: %s", message)
        try:
            self._run(tmux.message_command(f"gitpane: {message}", target=self.origin_pane))
        except GitPaneError:
            logger.debug("tmux display-message failed", exc_info=True)

    def poll(self) -> list[Handle]:
        """Fire exit callbacks for tracked processes whose pane is gone or respawned."""
        if not self._watched:
            return []
        panes = self._list_panes()
        exited: list[Handle] = []
        for pane_id, watched in list(self._watched.items()):
            pane = panes.get(pane_id)
            if pane is not None and not pane.dead and pane.pid == watched.pid:
                continue
            self._watched.pop(pane_id, None)
            exited.append(watched.handle)
            logger.debug("Detected process exit handle=%s", watched.handle)
            watched.on_exit(watched.handle, None)
        return exited

    def watching(self) -> bool:
        return bool(self._watched)

    async def watch(self) -> None:
        while self._watched:
            self.poll()
            if not self._watched:
                break
            await asyncio.sleep(self.poll_interval)

    def _fire(self, buffer: Handle, event: HookEvent) -> None:
        callback = self._hooks.get(buffer, {}).get(event)
        if callback is not None:
            callback(buffer)

    def _list_panes(self) -> dict[str, tmux.PaneInfo]:
        return tmux.parse_panes(self._run(tmux.list_panes_command()))

    def _run(self, command: list[str]) -> str:
        logger.debug("tmux command=%s", command)
        try:
            result = self._runner(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise GitPaneError(
                "tmux could not be executed.",
                code=ExitCode.TMUX_ERROR,
                hint=str(exc) or "Install tmux and make sure it is on PATH.",
            ) from exc
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise GitPaneError(
                f"tmux command failed: {' '.join(command[1:3])}",
                code=ExitCode.TMUX_ERROR,
                hint=stderr[:200] or "Inspect the tmux server state.",
            )
        return result.stdout or ""
