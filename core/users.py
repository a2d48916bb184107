"""
User resolution and per-account file visibility.
"""

import base64
import binascii
import fnmatch
import logging
import os
from typing import Optional

from fastapi.security.utils import get_authorization_scheme_param

from core.models import Account, Configuration
from core.paths import to_relative_path

logger = logging.getLogger(__name__)


class User:
    """An authenticated (or guest) user of the API."""

    def __init__(
        self,
        account: Account,
        config: Configuration,
        workspace_root: str,
        visible_files: dict[str, bool],
        is_guest: bool = False,
    ):
        self.account = account
        self.is_guest = is_guest
        self._config = config
        self._workspace_root = workspace_root
        self._visible_files = visible_files

    @property
    def name(self) -> str:
        return (self.account.name or "").strip()

    @property
    def with_dot(self) -> bool:
        """Whether dotted files and directories are shown to this user."""
        if self.account.with_dot is not None:
            return self.account.with_dot
        return self._config.with_dot

    async def is_file_visible(self, path: str) -> bool:
        """
        Check if a file may be seen by this user.

        Results are cached per account for the lifetime of the host.
        """
        full_path = os.path.normpath(os.path.abspath(path))
        cached = self._visible_files.get(full_path)
        if cached is not None:
            return cached

        visible = self._check_visibility(full_path)
        self._visible_files[full_path] = visible
        return visible

    def _check_visibility(self, full_path: str) -> bool:
        relative = to_relative_path(self._workspace_root, full_path)
        if not relative:
            return False
        relative = relative.lstrip("/")

        # Dotted files and everything below dotted directories
        if not self.with_dot and any(p.startswith(".") for p in relative.split("/")):
            return False

        if not any(_matches(relative, p) for p in self.account.files):
            return False
        return not any(_matches(relative, p) for p in self.account.exclude)


def _matches(relative: str, pattern: str) -> bool:
    pattern = (pattern or "").strip().lstrip("/")
    if not pattern:
        return False
    if fnmatch.fnmatchcase(relative, pattern):
        return True
    # Patterns without a directory part also match by file name
    if "/" not in pattern:
        return fnmatch.fnmatchcase(os.path.basename(relative), pattern)
    return False


def parse_basic_auth(header: Optional[str]) -> Optional[tuple[str, str]]:
    """Return (name, password) from a Basic Authorization header."""
    scheme, credentials = get_authorization_scheme_param(header)
    if not header or scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(credentials).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    name, separator, password = decoded.partition(":")
    if not separator:
        return None
    return name, password


class UserRepository:
    """
    Resolves the acting user of a request.

    Owns the in-memory visibility caches of all accounts; one repository is
    created per host start.
    """

    def __init__(self, config: Configuration, workspace_root: str):
        self.config = config
        self.workspace_root = workspace_root
        self._visible_files: dict[tuple[bool, str], dict[str, bool]] = {}

    def _create_user(self, account: Account, is_guest: bool) -> User:
        key = (is_guest, (account.name or "").strip().lower())
        cache = self._visible_files.setdefault(key, {})
        return User(account, self.config, self.workspace_root, cache, is_guest=is_guest)

    def get_user(self, ctx) -> Optional[User]:
        """
        Resolve the user for a request context.

        Returns:
            The matching account's user, the guest user if guests are allowed
            and no credentials were sent, or None
        """
        credentials = parse_basic_auth(ctx.request.headers.get("authorization"))
        if credentials is not None:
            name, password = credentials
            name = name.strip().lower()
            for account in self.config.users:
                if (account.name or "").strip().lower() != name:
                    continue
                if (account.password or "") == password:
                    return self._create_user(account, is_guest=False)
                break

            logger.debug(f"Invalid credentials for '{name}'")
            return None

        guest = self.config.guest_account
        if guest is None:
            return None
        return self._create_user(guest, is_guest=True)
