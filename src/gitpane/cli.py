"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import logging as py_logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

from .config import load_config
from .errors import ExitCode, GitPaneError, RepositoryNotFoundError, user_facing_error
from .logging import configure_logging, default_log_path
from .terminal.host import EditorHost
from .terminal.service import NOT_A_REPO_MESSAGE, SessionManager

_VALID_SCOPES = ("global", "tabpage")
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


class WatchingHost(EditorHost, Protocol):
    async def watch(self) -> None: ...


def _winscale_type(value: str) -> float:
    try:
        scale = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--winscale must be a number") from exc
    if scale < 0 or scale > 1:
        raise argparse.ArgumentTypeError("--winscale must be between 0 and 1")
    return scale


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitpane",
        description="Open a git TUI for the repository containing PATH in a tmux split.",
    )
    parser.add_argument("path", nargs="?", default=None)
    parser.add_argument("--scope", choices=_VALID_SCOPES, default=None)
    parser.add_argument("--winscale", type=_winscale_type, default=None)
    parser.add_argument(
        "--command",
        default=None,
        help="Git TUI command; the repository root is appended (default: lazygit -p)",
    )
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _default_host() -> WatchingHost:
    from gitpane.tmux.host import TmuxHost

    return TmuxHost.from_environment()


def build_manager(namespace: argparse.Namespace, host: EditorHost) -> SessionManager:
    manager = SessionManager(host, config=load_config(namespace.config))
    accepted = manager.setup(
        scope=namespace.scope,
        winscale=namespace.winscale,
        command=namespace.command.split() if namespace.command else None,
    )
    if not accepted:
        raise GitPaneError(
            "Invalid gitpane options.",
            code=ExitCode.CONFIG_ERROR,
            hint="Check --scope, --winscale and --command.",
        )
    return manager


async def run_session(manager: SessionManager, host: WatchingHost, path: str | None) -> int:
    session = await manager.open(path)
    if session is None:
        raise RepositoryNotFoundError(
            NOT_A_REPO_MESSAGE,
            hint="Run gitpane inside a git checkout or pass a path within one.",
        )
    await host.watch()
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    host_factory: Callable[[], WatchingHost] | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    try:
        host = (host_factory or _default_host)()
        manager = build_manager(namespace, host)
        logger.debug("Opening session path=%s scope=%s", namespace.path, manager.config.scope)
        return asyncio.run(run_session(manager, host, namespace.path))
    except GitPaneError as exc:
        logger.error(
            "Handled GitPaneError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except KeyboardInterrupt:
        logger.info("Interrupted; leaving the git TUI pane running")
        return int(ExitCode.SUCCESS)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        print(user_facing_error("Unexpected runtime failure", hint=f"Inspect logs: {log_path}"), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
