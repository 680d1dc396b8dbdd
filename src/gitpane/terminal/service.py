"""Scope-keyed session lifecycle for the embedded git TUI."""

from __future__ import annotations

import asyncio
import logging as py_logging
from collections.abc import Awaitable, Callable
from pathlib import Path

from gitpane.config import SessionConfig, merge_config
from gitpane.errors import InvalidConfigurationError
from gitpane.git.repo_root import resolve_repository_root
from gitpane.terminal.host import EditorHost
from gitpane.terminal.models import GLOBAL_SCOPE_KEY, Handle, Scope, Session

logger = py_logging.getLogger(__name__)

NOT_A_REPO_MESSAGE = "not a git repo"

RootResolver = Callable[[str], Path | None]
Sleep = Callable[[float], Awaitable[object]]
Defer = Callable[[float, Callable[[], None]], object]


def _call_later(delay: float, callback: Callable[[], None]) -> object:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running event loop; skipping deferred view reset")
        return None
    return loop.call_later(delay, callback)


class SessionManager:
    """Owns every session and the process-wide config.

    All methods are expected to run on the host's single event-loop thread.
    Each step checks for an existing allocation before acting, so redundant
    calls are harmless.
    """

    def __init__(
        self,
        host: EditorHost,
        *,
        config: SessionConfig | None = None,
        resolver: RootResolver | None = None,
        sleep: Sleep = asyncio.sleep,
        defer: Defer | None = None,
    ) -> None:
        self.host = host
        self.config = config or SessionConfig()
        self._resolver = resolver or resolve_repository_root
        self._sleep = sleep
        self._defer = defer or _call_later
        self._sessions: dict[str, Session] = {}

    def configure(self, **options: object) -> SessionConfig:
        self.config = merge_config(self.config, options)
        logger.debug(
            "Session config applied scope=%s winscale=%s",
            self.config.scope,
            self.config.winscale,
        )
        return self.config

    def setup(self, **options: object) -> bool:
        try:
            self.configure(**options)
        except InvalidConfigurationError as exc:
            logger.error("Rejected gitpane options: %s", exc.message)
            self.host.notify(str(exc), level="error")
            return False
        return True

    def active_scope_key(self) -> str:
        if self.config.scope == Scope.TABPAGE.value:
            return self.host.current_tab_key()
        return GLOBAL_SCOPE_KEY

    def session(self, scope_key: str | None = None) -> Session:
        key = scope_key if scope_key is not None else self.active_scope_key()
        return self._sessions.setdefault(key, Session())

    def sessions(self) -> dict[str, Session]:
        return dict(self._sessions)

    async def open(self, path: str | None = None, use_last: bool = True) -> Session | None:
        scope_key = self.active_scope_key()
        session = self.session(scope_key)

        if path:
            target = path
        elif use_last and session.last_path:
            target = session.last_path
        else:
            target = self.host.cwd()

        found = self._resolver(target)
        if found is None:
            logger.warning("No git repository above path=%s", target)
            self.host.notify(NOT_A_REPO_MESSAGE, level="error")
            return None
        root = str(found)

        if root != session.last_path and (session.has_buffer or session.is_running):
            self._record(scope_key, "switch", f"Replacing session for {session.last_path} with {root}.")
            self.drop(scope_key)
            await self._sleep(self.config.settle_delay)

        buffer = self._ensure_buffer(scope_key, session)
        self._ensure_window(scope_key, buffer)
        self._ensure_process(scope_key, session, buffer, root)
        return session

    async def toggle(self, path: str | None = None, use_last: bool = True) -> Session | None:
        scope_key = self.active_scope_key()
        session = self.session(scope_key)
        if session.buffer is not None:
            window = self.host.window_for_buffer(session.buffer)
            if window is not None:
                self.host.close_window(window)
                self._record(scope_key, "hide", "Window hidden; process kept.")
                return session
        return await self.open(path, use_last)

    def drop(self, scope_key: str | None = None) -> None:
        key = scope_key if scope_key is not None else self.active_scope_key()
        session = self.session(key)
        buffer = session.buffer
        if buffer is not None:
            window = self.host.window_for_buffer(buffer)
            if window is not None:
                self.host.close_window(window)
            if self.host.buffer_is_loaded(buffer):
                self.host.delete_buffer(buffer)
        if session.has_buffer or session.is_running:
            self._record(key, "drop", "Session dropped.")
        session.reset()

    def close(self, scope_key: str | None = None) -> None:
        self.drop(scope_key)

    def _ensure_buffer(self, scope_key: str, session: Session) -> Handle:
        if session.buffer is not None:
            return session.buffer
        buffer = self.host.create_buffer()
        session.buffer = buffer
        self.host.register_buffer_hooks(
            buffer,
            on_enter=self._on_enter,
            on_leave=self._on_leave,
            on_display=self._on_display,
        )
        self._record(scope_key, "buffer", f"Created buffer {buffer}.")
        return buffer

    def _ensure_window(self, scope_key: str, buffer: Handle) -> None:
        window = self.host.window_for_buffer(buffer)
        if window is None:
            window = self.host.open_window(buffer, height_fraction=self.config.winscale)
            self._record(scope_key, "window", f"Opened window {window}.")
        else:
            self.host.focus_window(window)

    def _ensure_process(self, scope_key: str, session: Session, buffer: Handle, root: str) -> None:
        if session.process is not None:
            return
        argv = [*self.config.command, root]

        def on_exit(process: Handle, status: int | None) -> None:
            current = self._sessions.get(scope_key)
            if current is None or current.process != process:
                logger.debug("Ignoring exit of replaced process=%s scope=%s", process, scope_key)
                return
            self._record(scope_key, "exit", f"Process {process} exited status={status}.")
            self.drop(scope_key)

        session.process = self.host.start_process(buffer, argv, cwd=root, on_exit=on_exit)
        session.last_path = root
        self._record(scope_key, "start", f"Started {' '.join(argv)}.")

    def _schedule_view_reset(self, buffer: Handle) -> None:
        def reset() -> None:
            if self.host.window_for_buffer(buffer) is not None:
                self.host.reset_view(buffer)

        self._defer(self.config.view_delay, reset)

    def _on_enter(self, buffer: Handle) -> None:
        self._schedule_view_reset(buffer)

    def _on_leave(self, buffer: Handle) -> None:
        if self.host.window_for_buffer(buffer) is not None:
            self._schedule_view_reset(buffer)

    def _on_display(self, buffer: Handle) -> None:
        window = self.host.window_for_buffer(buffer)
        if window is not None:
            self.host.decorate_window(window)

    def _record(self, scope_key: str, step: str, message: str) -> None:
        logger.info("session-event scope=%s step=%s message=%s", scope_key, step, message)
