"""
Backend configuration
"""

import os
from pathlib import Path
from typing import Optional

from core.models import Configuration

# Workspace to expose
WORKSPACE_ROOT = os.getenv("WORKSPACE_ROOT", os.getcwd())

# API settings
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "1781"))
API_MOUNT = "/api"

# JSON configuration file (users, guest, ssl, withDot, ...)
CONFIG_PATH = os.getenv("RESTAPI_CONFIG", "")

# CORS origins, comma separated; empty disables CORS
CORS_ORIGINS = [o for o in os.getenv("CORS_ORIGINS", "").split(",") if o]


def load_config(path: Optional[str] = None) -> Configuration:
    """
    Load the host configuration.

    Args:
        path: JSON file to read; defaults to RESTAPI_CONFIG. Without a file an
            empty configuration (guest access only) is used.
    """
    path = path or CONFIG_PATH
    if not path:
        config = Configuration()
    else:
        config = Configuration.model_validate_json(Path(path).read_text(encoding="utf-8"))

    if CORS_ORIGINS and not config.cors_origins:
        config.cors_origins = list(CORS_ORIGINS)
    return config
