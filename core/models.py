"""
Core data models for the workspace REST API.

Pydantic models describe the configuration snapshot; dataclasses represent
the transient filesystem entries built during a directory listing.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Account(BaseModel):
    """Represents a user account that may access the workspace."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    password: Optional[str] = None
    files: list[str] = Field(default_factory=lambda: ["**"])  # Include globs
    exclude: list[str] = Field(default_factory=list)  # Exclude globs
    with_dot: Optional[bool] = Field(default=None, alias="withDot")  # None: use the host setting


class SslConfig(BaseModel):
    """TLS settings. Relative file paths resolve against the workspace root."""
    model_config = ConfigDict(populate_by_name=True)

    ca: Optional[str] = None
    cert: Optional[str] = None
    key: Optional[str] = None
    passphrase: Optional[str] = None
    reject_unauthorized: bool = Field(default=True, alias="rejectUnauthorized")


class Configuration(BaseModel):
    """The host configuration."""
    model_config = ConfigDict(populate_by_name=True)

    users: list[Account] = Field(default_factory=list)
    guest: Union[Account, bool, None] = None
    ssl: Optional[SslConfig] = None
    with_dot: bool = Field(default=False, alias="withDot")
    port: Optional[int] = None
    editor: Optional[str] = None
    cors_origins: list[str] = Field(default_factory=list, alias="corsOrigins")

    @property
    def guest_account(self) -> Optional[Account]:
        """Return the guest account, or None if guests are disabled."""
        if isinstance(self.guest, Account):
            return self.guest
        if self.guest is True or (self.guest is None and not self.users):
            return Account(name="guest")
        return None


class ApiResponse(BaseModel):
    """Standard JSON envelope for structured responses."""
    code: int = 0
    data: Any = None
    msg: Optional[str] = None


@dataclass
class DirectoryEntry:
    """Represents a sub directory found while listing."""
    name: str
    full_path: str
    birthtime: datetime
    ctime: datetime
    mtime: datetime


@dataclass
class FileEntry:
    """Represents a file found while listing."""
    name: str
    full_path: str
    birthtime: datetime
    ctime: datetime
    mtime: datetime
    mime: str
    size: int
