"""Tmux command builders for parked and joined gitpane panes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from gitpane.errors import ExitCode, GitPaneError

PARK_WINDOW_NAME = "gitpane"
PANE_FORMAT = "#{pane_id}\t#{pane_pid}\t#{window_id}\t#{window_name}\t#{pane_dead}"


@dataclass(frozen=True)
class PaneInfo:
    pane_id: str
    pid: str
    window_id: str
    window_name: str
    dead: bool

    @property
    def parked(self) -> bool:
        return self.window_name == PARK_WINDOW_NAME


def split_percent(height_fraction: float) -> int:
    if height_fraction < 0 or height_fraction > 1:
        raise GitPaneError(
            f"Invalid window fraction: {height_fraction}",
            code=ExitCode.CONFIG_ERROR,
            hint="Use a value between 0 and 1.",
        )
    # tmux rejects a zero-sized split.
    return max(1, round(height_fraction * 100))


def new_parked_pane_command() -> list[str]:
    return ["tmux", "new-window", "-d", "-P", "-F", "#{pane_id}", "-n", PARK_WINDOW_NAME]


def list_panes_command() -> list[str]:
    return ["tmux", "list-panes", "-a", "-F", PANE_FORMAT]


def display_command(fmt: str, *, target: str = "") -> list[str]:
    command = ["tmux", "display-message", "-p"]
    if target:
        command.extend(["-t", target])
    command.append(fmt)
    return command


def join_pane_command(pane_id: str, *, target: str, height_fraction: float) -> list[str]:
    command = ["tmux", "join-pane", "-v", "-f", "-l", f"{split_percent(height_fraction)}%", "-s", pane_id]
    if target:
        command.extend(["-t", target])
    return command


def break_pane_command(pane_id: str) -> list[str]:
    return ["tmux", "break-pane", "-d", "-s", pane_id, "-n", PARK_WINDOW_NAME]


def kill_pane_command(pane_id: str) -> list[str]:
    return ["tmux", "kill-pane", "-t", pane_id]


def focus_pane_commands(pane_id: str) -> list[list[str]]:
    return [
        ["tmux", "select-window", "-t", pane_id],
        ["tmux", "select-pane", "-t", pane_id],
    ]


def respawn_commands(pane_id: str, argv: Sequence[str], *, cwd: str) -> list[list[str]]:
    if not argv:
        raise GitPaneError(
            "Process command cannot be empty.",
            code=ExitCode.CONFIG_ERROR,
            hint="Configure the git TUI command, e.g. lazygit -p.",
        )
    return [
        ["tmux", "set-option", "-p", "-t", pane_id, "remain-on-exit", "off"],
        ["tmux", "respawn-pane", "-k", "-t", pane_id, "-c", cwd, *argv],
    ]


def quit_copy_mode_command(pane_id: str) -> list[str]:
    return ["tmux", "copy-mode", "-q", "-t", pane_id]


def set_title_command(pane_id: str, title: str) -> list[str]:
    return ["tmux", "select-pane", "-t", pane_id, "-T", title]


def message_command(message: str, *, target: str = "") -> list[str]:
    command = ["tmux", "display-message"]
    if target:
        command.extend(["-t", target])
    command.append(message)
    return command


def parse_panes(output: str) -> dict[str, PaneInfo]:
    panes: dict[str, PaneInfo] = {}
    for line in output.splitlines():
        fields = line.split("\t")
        if len(fields) != 5 or not fields[0].strip():
            continue
        pane_id, pid, window_id, window_name, dead = (item.strip() for item in fields)
        panes[pane_id] = PaneInfo(
            pane_id=pane_id,
            pid=pid,
            window_id=window_id,
            window_name=window_name,
            dead=dead == "1",
        )
    return panes
