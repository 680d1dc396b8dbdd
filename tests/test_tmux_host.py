from __future__ import annotations

import asyncio
import subprocess
from pathlib import Path

import pytest

from gitpane.config import SessionConfig
from gitpane.errors import ExitCode, GitPaneError
from gitpane.terminal import SessionManager
from gitpane.tmux.commands import PARK_WINDOW_NAME
from gitpane.tmux.host import TmuxHost


def _cp(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class _FakeTmux:
    """Just enough of a tmux server to drive TmuxHost."""

    def __init__(self) -> None:
        self.panes: dict[str, dict[str, str]] = {
            "%0": {"pid": "100", "window": "@0", "name": "zsh", "path": "/home/dev/proj", "title": ""},
        }
        self.commands: list[list[str]] = []
        self.messages: list[str] = []
        self.copy_mode_quits: list[str] = []
        self._next = 1

    def __call__(self, cmd: list[str], **_: object) -> subprocess.CompletedProcess:
        assert cmd[0] == "tmux"
        self.commands.append(cmd)
        verb, args = cmd[1], cmd[2:]
        handler = getattr(self, "_" + verb.replace("-", "_"), None)
        if handler is None:
            raise AssertionError(f"unexpected command: {cmd}")
        return handler(args)

    def _allocate(self) -> str:
        number = self._next
        self._next += 1
        return str(number)

    def _target(self, args: list[str], flag: str = "-t") -> str:
        return args[args.index(flag) + 1] if flag in args else "%0"

    def _new_window(self, args: list[str]) -> subprocess.CompletedProcess:
        number = self._allocate()
        pane = f"%{number}"
        self.panes[pane] = {
            "pid": str(1000 + int(number)),
            "window": f"@{number}",
            "name": args[args.index("-n") + 1],
            "path": "/home/dev",
            "title": "",
        }
        return _cp(stdout=f"{pane}\n")

    def _list_panes(self, args: list[str]) -> subprocess.CompletedProcess:
        lines = [
            "\t".join([pane, info["pid"], info["window"], info["name"], "0"])
            for pane, info in self.panes.items()
        ]
        return _cp(stdout="\n".join(lines) + "\n")

    def _display_message(self, args: list[str]) -> subprocess.CompletedProcess:
        target = self._target(args)
        if "-p" not in args:
            self.messages.append(args[-1])
            return _cp()
        info = self.panes.get(target)
        if info is None:
            return _cp(1, stderr=f"can't find pane: {target}")
        fmt = args[-1]
        values = {"#{pane_pid}": info["pid"], "#{window_id}": info["window"], "#{pane_current_path}": info["path"]}
        return _cp(stdout=values[fmt] + "\n")

    def _join_pane(self, args: list[str]) -> subprocess.CompletedProcess:
        source = self._target(args, "-s")
        target = self.panes[self._target(args)]
        self.panes[source]["window"] = target["window"]
        self.panes[source]["name"] = target["name"]
        return _cp()

    def _break_pane(self, args: list[str]) -> subprocess.CompletedProcess:
        source = self._target(args, "-s")
        number = self._allocate()
        self.panes[source]["window"] = f"@{number}"
        self.panes[source]["name"] = args[args.index("-n") + 1]
        return _cp()

    def _kill_pane(self, args: list[str]) -> subprocess.CompletedProcess:
        if self.panes.pop(self._target(args), None) is None:
            return _cp(1, stderr="can't find pane")
        return _cp()

    def _select_window(self, args: list[str]) -> subprocess.CompletedProcess:
        return _cp()

    def _select_pane(self, args: list[str]) -> subprocess.CompletedProcess:
        if "-T" in args:
            self.panes[self._target(args)]["title"] = args[args.index("-T") + 1]
        return _cp()

    def _set_option(self, args: list[str]) -> subprocess.CompletedProcess:
        return _cp()

    def _respawn_pane(self, args: list[str]) -> subprocess.CompletedProcess:
        pane = self.panes[self._target(args)]
        pane["pid"] = str(int(pane["pid"]) + 500)
        pane["path"] = args[args.index("-c") + 1]
        return _cp()

    def _copy_mode(self, args: list[str]) -> subprocess.CompletedProcess:
        self.copy_mode_quits.append(self._target(args))
        return _cp()

    def exit_process(self, pane: str) -> None:
        self.panes.pop(pane)


def _host(server: _FakeTmux) -> TmuxHost:
    return TmuxHost(origin_pane="%0", runner=server, poll_interval=0)


def test_from_environment_requires_tmux() -> None:
    with pytest.raises(GitPaneError) as exc:
        TmuxHost.from_environment({})
    assert exc.value.code == ExitCode.TMUX_ERROR

    host = TmuxHost.from_environment({"TMUX": "/tmp/tmux-1000/default,1,0", "TMUX_PANE": "%3"})
    assert host.origin_pane == "%3"


def test_buffer_is_parked_until_window_opens() -> None:
    server = _FakeTmux()
    host = _host(server)

    buffer = host.create_buffer()

    assert buffer == "%1"
    assert server.panes["%1"]["name"] == PARK_WINDOW_NAME
    assert host.buffer_is_loaded(buffer) is True
    assert host.window_for_buffer(buffer) is None

    window = host.open_window(buffer, height_fraction=0.75)

    assert window == "%1"
    assert host.window_for_buffer(buffer) == "%1"
    assert server.panes["%1"]["window"] == "@0"
    join = next(cmd for cmd in server.commands if cmd[1] == "join-pane")
    assert join[join.index("-l") + 1] == "75%"


def test_close_window_parks_pane_and_delete_kills_it() -> None:
    server = _FakeTmux()
    host = _host(server)
    buffer = host.create_buffer()
    host.open_window(buffer, height_fraction=0.5)

    host.close_window(buffer)
    assert host.window_for_buffer(buffer) is None
    assert host.buffer_is_loaded(buffer) is True

    host.delete_buffer(buffer)
    assert host.buffer_is_loaded(buffer) is False
    host.delete_buffer(buffer)


def test_hooks_fire_on_display_enter_and_leave() -> None:
    server = _FakeTmux()
    host = _host(server)
    events: list[str] = []
    buffer = host.create_buffer()
    host.register_buffer_hooks(
        buffer,
        on_enter=lambda b: events.append(f"enter:{b}"),
        on_leave=lambda b: events.append(f"leave:{b}"),
        on_display=lambda b: events.append(f"display:{b}"),
    )

    host.open_window(buffer, height_fraction=0.75)
    host.focus_window(buffer)
    host.close_window(buffer)

    assert events == ["display:%1", "enter:%1", "enter:%1", "leave:%1"]


def test_start_process_respawns_pane_and_poll_detects_exit() -> None:
    server = _FakeTmux()
    host = _host(server)
    exits: list[tuple[str, int | None]] = []
    buffer = host.create_buffer()

    handle = host.start_process(
        buffer,
        ["lazygit", "-p", "/repo"],
        cwd="/repo",
        on_exit=lambda process, status: exits.append((process, status)),
    )

    assert handle == "%1:1501"
    respawn = next(cmd for cmd in server.commands if cmd[1] == "respawn-pane")
    assert respawn[-3:] == ["lazygit", "-p", "/repo"]
    assert host.poll() == []

    server.exit_process(buffer)

    assert host.poll() == [handle]
    assert exits == [(handle, None)]
    assert host.watching() is False


def test_tab_key_cwd_notify_and_view_reset() -> None:
    server = _FakeTmux()
    host = _host(server)

    assert host.current_tab_key() == "@0"
    assert host.cwd() == "/home/dev/proj"

    host.notify("not a git repo", level="error")
    host.reset_view("%0")
    host.decorate_window("%0")

    assert server.messages == ["gitpane: not a git repo"]
    assert server.copy_mode_quits == ["%0"]
    assert server.panes["%0"]["title"] == "gitpane"


def test_failed_tmux_command_raises_tmux_error() -> None:
    def runner(cmd: list[str], **_: object) -> subprocess.CompletedProcess:
        return _cp(1, stderr="no server running on /tmp/tmux-1000/default")

    host = TmuxHost(runner=runner)

    with pytest.raises(GitPaneError) as exc:
        host.create_buffer()
    assert exc.value.code == ExitCode.TMUX_ERROR
    assert "no server running" in exc.value.hint


def test_missing_tmux_binary_raises_tmux_error() -> None:
    def runner(cmd: list[str], **_: object) -> subprocess.CompletedProcess:
        raise FileNotFoundError("tmux")

    with pytest.raises(GitPaneError) as exc:
        TmuxHost(runner=runner).current_tab_key()
    assert exc.value.code == ExitCode.TMUX_ERROR


def test_manager_session_lifecycle_over_tmux(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    server = _FakeTmux()
    host = _host(server)
    manager = SessionManager(host, config=SessionConfig(view_delay=0))

    async def scenario() -> None:
        session = await manager.open(str(tmp_path))
        assert session is not None
        assert session.buffer == "%1"
        assert server.panes["%1"]["path"] == str(tmp_path)
        await asyncio.sleep(0)
        server.exit_process("%1")
        await host.watch()

    asyncio.run(scenario())

    session = manager.session()
    assert (session.buffer, session.process) == (None, None)
    assert session.last_path == str(tmp_path)


def test_drop_after_event_loop_finished_still_kills_pane(tmp_path: Path) -> None:
    (tmp_path / ".git").mkdir()
    server = _FakeTmux()
    manager = SessionManager(_host(server), config=SessionConfig(view_delay=0))

    asyncio.run(manager.open(str(tmp_path)))
    manager.drop()

    session = manager.session()
    assert (session.buffer, session.process) == (None, None)
    assert session.last_path == str(tmp_path)
    assert "%1" not in server.panes
