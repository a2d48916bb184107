"""
Workspace API endpoints

    GET  /api/workspace/<path>  - list a directory or download a file
    POST /api/workspace/<path>  - open a file in the editor
"""

import logging
import os
import stat
from datetime import datetime, timezone

import aiofiles
from starlette.concurrency import run_in_threadpool

from backend.context import ApiContext
from backend.registry import ApiModule
from core.mime import detect_mime
from core.models import DirectoryEntry, FileEntry
from core.paths import (
    NotInWorkspaceError,
    resolve_workspace_path,
    split_segments,
    to_api_path,
    to_relative_path,
)

logger = logging.getLogger(__name__)

# HTTP header for defining the resource type
HEADER_FILE_TYPE = "X-Restapi-Type"

MOUNT = "/api/workspace"

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

module = ApiModule("workspace")


def _to_datetime(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _format_time(value: datetime) -> str:
    return value.strftime(TIME_FORMAT)


def _has_leading_dot(name: str) -> bool:
    return name.strip().startswith(".")


def _sort_key(entry):
    return entry.name.strip().lower(), entry.name


async def _is_inside_workspace(root: str, path: str) -> bool:
    """Check that a path still lies inside the workspace once symlinks are followed."""
    real_root, real_path = await run_in_threadpool(
        lambda: (os.path.realpath(root), os.path.realpath(path))
    )
    return to_relative_path(real_root, real_path) is not None


def _times(stats: os.stat_result) -> dict:
    # st_birthtime only exists on some platforms
    birthtime = getattr(stats, "st_birthtime", stats.st_ctime)
    return {
        "birthtime": _to_datetime(birthtime),
        "ctime": _to_datetime(stats.st_ctime),
        "mtime": _to_datetime(stats.st_mtime),
    }


async def list_directory(api: ApiContext, directory: str) -> None:
    """
    Build the listing of a directory.

    Children are classified one after another (one stat / visibility check
    at a time); the listing is only published once all of them are done.
    Any I/O error aborts the whole listing.
    """
    ctx = api.request
    root = ctx.workspace_root

    if not await _is_inside_workspace(root, directory):
        api.send_not_found()
        return

    api.headers[HEADER_FILE_TYPE] = "directory"

    dirs: list[DirectoryEntry] = []
    files: list[FileEntry] = []

    names = await run_in_threadpool(os.listdir, directory)
    for name in names:
        full_path = os.path.join(directory, name)
        stats = await run_in_threadpool(os.lstat, full_path)

        if stat.S_ISDIR(stats.st_mode):
            if _has_leading_dot(name) and not ctx.user.with_dot:
                continue
            dirs.append(DirectoryEntry(name=name, full_path=full_path, **_times(stats)))
        elif stat.S_ISREG(stats.st_mode):
            if not await ctx.user.is_file_visible(full_path):
                continue
            files.append(
                FileEntry(
                    name=name,
                    full_path=full_path,
                    mime=detect_mime(name),
                    size=stats.st_size,
                    **_times(stats),
                )
            )

    dirs.sort(key=_sort_key)
    files.sort(key=_sort_key)

    relative = to_relative_path(root, directory) or ""
    listing = {
        "dirs": [
            {
                "name": d.name,
                "path": to_api_path(MOUNT, relative, d.name),
                "creationTime": _format_time(d.birthtime),
                "lastChangeTime": _format_time(d.ctime),
                "lastModifiedTime": _format_time(d.mtime),
                "type": "dir",
            }
            for d in dirs
        ],
        "files": [
            {
                "name": f.name,
                "path": to_api_path(MOUNT, relative, f.name),
                "mime": f.mime,
                "creationTime": _format_time(f.birthtime),
                "lastChangeTime": _format_time(f.ctime),
                "lastModifiedTime": _format_time(f.mtime),
                "type": "file",
            }
            for f in files
        ],
    }

    # No way up from the workspace root
    if relative:
        parent = to_relative_path(root, os.path.dirname(directory))
        if parent is not None:
            listing["parent"] = to_api_path(MOUNT, parent)

    api.response.data = listing


async def handle_file(api: ApiContext, file: str) -> None:
    """Send the content of a file (GET) or open it in the editor (POST)."""
    ctx = api.request

    api.headers[HEADER_FILE_TYPE] = "file"

    if ctx.method == "get":
        async with aiofiles.open(file, "rb") as f:
            data = await f.read()
        api.set_content(data, detect_mime(file))
    elif not await ctx.editor.open_document(file):
        api.response.code = 1


async def request(api: ApiContext) -> None:
    """/api/workspace"""
    ctx = api.request
    root = ctx.workspace_root

    try:
        # Drop "api" and the module name
        full_path = resolve_workspace_path(root, split_segments(ctx.path, skip=2))
    except NotInWorkspaceError:
        api.send_not_found()
        return

    try:
        stats = await run_in_threadpool(os.lstat, full_path)
    except OSError as e:
        # Missing, name too long, symlink loop, unreadable parent
        logger.debug(f"Cannot stat '{full_path}': {e}")
        api.send_not_found()
        return

    if not await _is_inside_workspace(root, full_path):
        api.send_not_found()
        return

    if stat.S_ISDIR(stats.st_mode):
        is_root = to_relative_path(root, full_path) == ""
        if not is_root and _has_leading_dot(os.path.basename(full_path)) and not ctx.user.with_dot:
            api.send_not_found()
        elif ctx.method == "get":
            await list_directory(api, full_path)
        else:
            api.send_method_not_allowed()
    elif stat.S_ISREG(stats.st_mode):
        # Files hidden from listings are also hidden when addressed directly
        if await ctx.user.is_file_visible(full_path):
            await handle_file(api, full_path)
        else:
            api.send_not_found()
    else:
        api.send_not_found()


get = module.get(request)
post = module.post(request)
