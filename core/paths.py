"""
Workspace path resolution.

Everything here is lexical: no function touches the filesystem, so a path is
rejected before any I/O is performed against it.
"""

import os
from pathlib import PurePath
from typing import Iterable, Optional
from urllib.parse import quote, unquote


class NotInWorkspaceError(ValueError):
    """Raised when a path resolves outside the workspace root."""


def normalize_separators(path: str) -> str:
    """Replace backslashes and the platform separator with '/'."""
    path = str(path or "").replace("\\", "/")
    if os.sep != "/":
        path = path.replace(os.sep, "/")
    return path


def split_segments(raw_path: str, skip: int = 0) -> list[str]:
    """
    Split a raw URL path into decoded, non-empty segments.

    Args:
        raw_path: The (still percent-encoded) URL path
        skip: Number of leading non-empty segments to drop

    Returns:
        List of decoded segments
    """
    parts = normalize_separators(raw_path).split("/")
    segments = [segment for segment in (unquote(p) for p in parts) if segment.strip()]
    return segments[skip:]


def resolve_workspace_path(root: str, segments: Iterable[str]) -> str:
    """
    Join decoded segments onto the workspace root.

    Raises:
        NotInWorkspaceError: if the result escapes the root
    """
    root = os.path.normpath(os.path.abspath(root))
    segments = list(segments)

    if any("\0" in segment for segment in segments):
        raise NotInWorkspaceError("NUL bytes are not allowed in paths")

    relative = normalize_separators("/".join(segments)).lstrip("/")
    candidate = os.path.normpath(os.path.join(root, relative)) if relative else root

    if to_relative_path(root, candidate) is None:
        raise NotInWorkspaceError(f"Path is outside the workspace: {relative}")
    return candidate


def to_relative_path(root: str, path: str) -> Optional[str]:
    """
    Return the path relative to the workspace root.

    The root itself maps to "", children map to "/a/b". Paths outside the
    root (or on another drive) map to None.
    """
    root_path = PurePath(os.path.normpath(os.path.abspath(root)))
    full_path = PurePath(os.path.normpath(os.path.abspath(path)))
    try:
        relative = full_path.relative_to(root_path)
    except ValueError:
        return None

    if not relative.parts:
        return ""
    return "/" + "/".join(relative.parts)


def to_api_path(mount: str, relative: str, *extra: str) -> str:
    """Build an encoded API path such as '/api/workspace/a%20b/c.txt'."""
    segments = [s for s in normalize_separators(relative).split("/") if s]
    segments.extend(extra)
    if not segments:
        return mount
    return mount + "/" + "/".join(quote(s, safe="") for s in segments)
