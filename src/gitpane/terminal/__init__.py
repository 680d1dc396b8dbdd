"""Embedded git TUI session domain package."""

from .host import EditorHost, ExitCallback, HookCallback
from .models import GLOBAL_SCOPE_KEY, HookEvent, Scope, Session
from .service import NOT_A_REPO_MESSAGE, SessionManager

__all__ = [
    "EditorHost",
    "ExitCallback",
    "GLOBAL_SCOPE_KEY",
    "HookCallback",
    "HookEvent",
    "NOT_A_REPO_MESSAGE",
    "Scope",
    "Session",
    "SessionManager",
]
