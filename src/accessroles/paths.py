"""Resource path helpers.

Resources are addressed by absolute, slash-separated paths. The repository
root is ``/`` and is the only path without a parent.
"""

from __future__ import annotations

from .exceptions import ValidationError

__all__ = ["ROOT_PATH", "normalize_path", "parent_path", "is_root", "is_within"]

ROOT_PATH = "/"


def normalize_path(path: str) -> str:
    """Normalize a resource path.

    ``"a/b/"`` → ``"/a/b"``, ``""`` → ``"/"``. Relative segments are not
    interpreted; ``.`` and ``..`` are rejected.

    Raises:
        ValidationError: If the path is not a string or contains dot segments.
    """
    if not isinstance(path, str):
        raise ValidationError(f"Resource path must be a string, got {type(path).__name__}")

    segments = [s for s in path.strip().split("/") if s]
    if any(s in (".", "..") for s in segments):
        raise ValidationError(f"Resource path may not contain relative segments: {path!r}")
    return "/" + "/".join(segments)


def is_root(path: str) -> bool:
    return normalize_path(path) == ROOT_PATH


def parent_path(path: str) -> str | None:
    """Return the parent of ``path``, or None for the root."""
    normalized = normalize_path(path)
    if normalized == ROOT_PATH:
        return None
    head = normalized.rsplit("/", 1)[0]
    return head or ROOT_PATH


def is_within(path: str, ancestor: str) -> bool:
    """True if ``path`` equals ``ancestor`` or lies below it."""
    path = normalize_path(path)
    ancestor = normalize_path(ancestor)
    if ancestor == ROOT_PATH:
        return True
    return path == ancestor or path.startswith(ancestor + "/")

