"""
Tests for workspace path resolution
"""

import os

import pytest

from core.paths import (
    NotInWorkspaceError,
    normalize_separators,
    resolve_workspace_path,
    split_segments,
    to_api_path,
    to_relative_path,
)


ROOT = os.path.abspath(os.path.join(os.sep, "srv", "workspace"))


def test_normalize_separators():
    assert normalize_separators("a\\b/c") == "a/b/c"
    assert normalize_separators(None) == ""


def test_split_segments_decodes_and_drops_empty():
    segments = split_segments("/api/workspace/My%20Docs//a%2Fb.txt", skip=2)
    assert segments == ["My Docs", "a/b.txt"]


def test_split_segments_skips_after_dropping_empty():
    assert split_segments("//api//workspace/a", skip=2) == ["a"]
    assert split_segments("/api/%20/workspace", skip=1) == ["workspace"]


def test_resolve_root():
    assert resolve_workspace_path(ROOT, []) == ROOT


def test_resolve_nested():
    resolved = resolve_workspace_path(ROOT, ["src", "main.py"])
    assert resolved == os.path.join(ROOT, "src", "main.py")


def test_resolve_inner_dot_dot_stays_inside():
    resolved = resolve_workspace_path(ROOT, ["src", "..", "docs"])
    assert resolved == os.path.join(ROOT, "docs")


@pytest.mark.parametrize(
    "segments",
    [
        [".."],
        ["..", "..", "etc", "passwd"],
        ["../../etc/passwd"],
        ["src", "..", "..", "other"],
        ["..\\..\\etc"],
        ["file\0name"],
    ],
)
def test_resolve_rejects_escapes(segments):
    with pytest.raises(NotInWorkspaceError):
        resolve_workspace_path(ROOT, segments)


def test_resolve_does_not_touch_filesystem(monkeypatch):
    """Rejection happens before any stat call."""
    def fail(*args, **kwargs):
        raise AssertionError("filesystem accessed")

    monkeypatch.setattr(os, "stat", fail)
    monkeypatch.setattr(os, "lstat", fail)

    with pytest.raises(NotInWorkspaceError):
        resolve_workspace_path(ROOT, ["..", "etc"])


def test_not_in_workspace_is_value_error():
    assert issubclass(NotInWorkspaceError, ValueError)


def test_to_relative_path():
    assert to_relative_path(ROOT, ROOT) == ""
    assert to_relative_path(ROOT, os.path.join(ROOT, "a", "b")) == "/a/b"
    assert to_relative_path(ROOT, os.path.dirname(ROOT)) is None
    assert to_relative_path(ROOT, ROOT + "-other") is None


def test_to_api_path():
    assert to_api_path("/api/workspace", "") == "/api/workspace"
    assert to_api_path("/api/workspace", "", "a.txt") == "/api/workspace/a.txt"
    assert to_api_path("/api/workspace", "/My Docs", "a#1.txt") == (
        "/api/workspace/My%20Docs/a%231.txt"
    )
