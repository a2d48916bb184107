"""
Shared fixtures: a small workspace on disk and clients for the API.
"""

import pytest
from fastapi.testclient import TestClient

from backend.main import create_app
from core.models import Account, Configuration


class FakeEditor:
    """Records open requests instead of launching an editor."""

    def __init__(self, result: bool = True):
        self.result = result
        self.opened = []

    async def open_document(self, path: str) -> bool:
        self.opened.append(path)
        return self.result


@pytest.fixture
def workspace(tmp_path):
    """
    Workspace layout:

        A/inner.txt
        A/B/
        .hidden/secret.txt
        a.txt
        b.txt
        secret.key
    """
    root = tmp_path / "workspace"
    root.mkdir()
    (root / "A").mkdir()
    (root / "A" / "inner.txt").write_text("inner")
    (root / "A" / "B").mkdir()
    (root / ".hidden").mkdir()
    (root / ".hidden" / "secret.txt").write_text("hidden")
    (root / "b.txt").write_text("bee")
    (root / "a.txt").write_text("aaa")
    (root / "secret.key").write_text("key")
    return root


@pytest.fixture
def config():
    """Alice may not see *.key files, guests see everything."""
    return Configuration(
        users=[Account(name="alice", password="wonderland", exclude=["*.key"])],
        guest=True,
    )


@pytest.fixture
def editor():
    return FakeEditor()


@pytest.fixture
def make_client(workspace, editor):
    """Factory for a TestClient bound to a configuration."""
    def _make(config: Configuration) -> TestClient:
        return TestClient(create_app(config, str(workspace), editor=editor))
    return _make


@pytest.fixture
def client(make_client, config):
    return make_client(config)


@pytest.fixture
def alice():
    return ("alice", "wonderland")
