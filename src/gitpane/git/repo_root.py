"""Upward git repository root lookup."""

from __future__ import annotations

import os
from pathlib import Path

GIT_MARKER = ".git"


def normalize_path(path: str | Path) -> Path:
    """Expand ``~`` and make ``path`` absolute without following symlinks."""
    return Path(os.path.abspath(Path(path).expanduser()))


def resolve_repository_root(start: str | Path, *, marker: str = GIT_MARKER) -> Path | None:
    """Return the closest ancestor of ``start`` holding a ``marker`` directory.

    The search begins at ``start`` itself (or its parent when ``start`` is a
    file) and stops at the filesystem root. The returned path is the directory
    that contains the marker, never the marker. ``None`` means no repository.
    """
    current = normalize_path(start)
    if current.is_file():
        current = current.parent

    for candidate in (current, *current.parents):
        if (candidate / marker).is_dir():
            return candidate
    return None
