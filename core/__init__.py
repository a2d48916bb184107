"""
Core module - Configuration models, path resolution, compression and users
"""

__version__ = "0.1.0"

from core.models import Configuration, Account, SslConfig, ApiResponse, DirectoryEntry, FileEntry
from core.paths import NotInWorkspaceError, resolve_workspace_path, to_relative_path
from core.encoding import EncodedPayload, compress_for_response
from core.users import User, UserRepository

__all__ = [
    "__version__",
    "Configuration", "Account", "SslConfig", "ApiResponse", "DirectoryEntry", "FileEntry",
    "NotInWorkspaceError", "resolve_workspace_path", "to_relative_path",
    "EncodedPayload", "compress_for_response",
    "User", "UserRepository",
]
