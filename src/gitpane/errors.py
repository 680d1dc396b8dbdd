"""Error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    REPOSITORY_NOT_FOUND = 5
    TMUX_ERROR = 6


@dataclass
class GitPaneError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class RepositoryNotFoundError(GitPaneError):
    code: ExitCode = ExitCode.REPOSITORY_NOT_FOUND


@dataclass
class InvalidConfigurationError(GitPaneError):
    code: ExitCode = ExitCode.CONFIG_ERROR


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
