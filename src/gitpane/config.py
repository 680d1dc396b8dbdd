"""Session configuration model and XDG config loading."""

from __future__ import annotations

import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from gitpane.errors import InvalidConfigurationError

DEFAULT_CONFIG_PATH = Path("~/.config/gitpane/config.toml").expanduser()
DEFAULT_SCOPE: Literal["global", "tabpage"] = "global"
DEFAULT_WINSCALE = 0.75
DEFAULT_COMMAND = ("lazygit", "-p")
DEFAULT_SETTLE_DELAY = 0.025
DEFAULT_VIEW_DELAY = 0.02

_VALID_SCOPES = ("global", "tabpage")


class SessionConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    scope: Literal["global", "tabpage"] = DEFAULT_SCOPE
    winscale: float = Field(default=DEFAULT_WINSCALE, ge=0.0, le=1.0)
    command: list[str] = Field(default_factory=lambda: list(DEFAULT_COMMAND))
    settle_delay: float = Field(default=DEFAULT_SETTLE_DELAY, ge=0.0)
    view_delay: float = Field(default=DEFAULT_VIEW_DELAY, ge=0.0)

    @field_validator("command")
    @classmethod
    def _validate_command(cls, value: list[str]) -> list[str]:
        cleaned = [item for item in value if item.strip()]
        if not cleaned:
            raise ValueError("command cannot be empty")
        return cleaned


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "options"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


def merge_config(current: SessionConfig, options: Mapping[str, object]) -> SessionConfig:
    """Return ``current`` overlaid with the non-``None`` entries of ``options``.

    Validation happens on the merged copy, so a rejected option never leaves a
    half-applied config behind.
    """
    overrides = {key: value for key, value in options.items() if value is not None}
    merged = {**current.model_dump(), **overrides}
    try:
        return SessionConfig.model_validate(merged)
    except ValidationError as exc:
        raise InvalidConfigurationError(
            f"Invalid gitpane options ({_describe(exc)})",
            hint=f"scope must be one of {', '.join(_VALID_SCOPES)} and winscale a value between 0 and 1.",
        ) from exc


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _sanitize(raw: dict[str, object]) -> SessionConfig:
    cfg = SessionConfig()

    scope = raw.get("scope", cfg.scope)
    if isinstance(scope, str) and scope in _VALID_SCOPES:
        cfg.scope = scope  # type: ignore[assignment]

    winscale = raw.get("winscale", cfg.winscale)
    if isinstance(winscale, (int, float)) and not isinstance(winscale, bool) and 0 <= winscale <= 1:
        cfg.winscale = float(winscale)

    command = raw.get("command", cfg.command)
    if isinstance(command, str):
        command = command.split()
    if isinstance(command, list) and command and all(isinstance(item, str) for item in command):
        try:
            cfg.command = command
        except ValidationError:
            pass

    for name in ("settle_delay", "view_delay"):
        value = raw.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
            setattr(cfg, name, float(value))

    return cfg


def load_config(path: str | Path | None = None) -> SessionConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return SessionConfig()
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return SessionConfig()
    if not isinstance(raw, dict):
        return SessionConfig()
    return _sanitize(raw)
