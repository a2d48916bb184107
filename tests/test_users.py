"""
Tests for user resolution and file visibility
"""

import asyncio
import base64
import os
from types import SimpleNamespace

import pytest

from core.models import Account, Configuration
from core.users import UserRepository, parse_basic_auth


def _ctx(authorization=None):
    headers = {}
    if authorization is not None:
        headers["authorization"] = authorization
    return SimpleNamespace(request=SimpleNamespace(headers=headers))


def _basic(name, password):
    token = base64.b64encode(f"{name}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


@pytest.fixture
def repository(tmp_path):
    config = Configuration(
        users=[
            Account(name="Alice", password="wonderland", exclude=["*.key", "build/*"]),
            Account(name="bob", password="builder", files=["src/*"]),
        ],
    )
    return UserRepository(config, str(tmp_path))


def test_parse_basic_auth():
    assert parse_basic_auth(_basic("alice", "a:b")) == ("alice", "a:b")
    assert parse_basic_auth(None) is None
    assert parse_basic_auth("Bearer abc") is None
    assert parse_basic_auth("Basic !!!") is None


def test_user_with_valid_credentials(repository):
    user = repository.get_user(_ctx(_basic("alice", "wonderland")))

    assert user is not None
    assert user.name == "Alice"
    assert not user.is_guest


def test_wrong_password(repository):
    assert repository.get_user(_ctx(_basic("alice", "nope"))) is None


def test_unknown_user(repository):
    assert repository.get_user(_ctx(_basic("mallory", "x"))) is None


def test_no_guest_when_users_are_configured(repository):
    assert repository.get_user(_ctx()) is None


def test_guest_without_users(tmp_path):
    repository = UserRepository(Configuration(), str(tmp_path))
    user = repository.get_user(_ctx())

    assert user is not None
    assert user.is_guest


def test_guest_disabled_explicitly(tmp_path):
    repository = UserRepository(Configuration(guest=False), str(tmp_path))
    assert repository.get_user(_ctx()) is None


def test_guest_account_object(tmp_path):
    config = Configuration.model_validate(
        {"users": [{"name": "alice"}], "guest": {"name": "visitor", "exclude": ["*.log"]}}
    )
    user = UserRepository(config, str(tmp_path)).get_user(_ctx())

    assert user.is_guest
    assert user.name == "visitor"


def test_file_visibility(repository, tmp_path):
    alice = repository.get_user(_ctx(_basic("alice", "wonderland")))
    bob = repository.get_user(_ctx(_basic("bob", "builder")))

    def visible(user, *parts):
        return asyncio.run(user.is_file_visible(os.path.join(tmp_path, *parts)))

    assert visible(alice, "readme.md")
    assert not visible(alice, "id.key")
    assert not visible(alice, "src", "id.key")
    assert not visible(alice, "build", "out.bin")
    assert not visible(alice, ".env")

    assert visible(bob, "src", "main.py")
    assert not visible(bob, "readme.md")


def test_dot_files_visible_with_dot(tmp_path):
    repository = UserRepository(Configuration(withDot=True), str(tmp_path))
    user = repository.get_user(_ctx())

    assert asyncio.run(user.is_file_visible(os.path.join(tmp_path, ".env")))


def test_account_with_dot_override(tmp_path):
    config = Configuration(
        users=[
            Account(name="dev", password="x", withDot=True),
            Account(name="ops", password="y", withDot=False),
            Account(name="qa", password="z"),
        ],
        withDot=True,
    )
    repository = UserRepository(config, str(tmp_path))
    path = os.path.join(tmp_path, ".env")

    dev = repository.get_user(_ctx(_basic("dev", "x")))
    ops = repository.get_user(_ctx(_basic("ops", "y")))
    qa = repository.get_user(_ctx(_basic("qa", "z")))

    assert asyncio.run(dev.is_file_visible(path))
    assert not asyncio.run(ops.is_file_visible(path))
    assert asyncio.run(qa.is_file_visible(path))
    assert qa.with_dot is True


def test_files_outside_workspace_are_not_visible(repository, tmp_path):
    alice = repository.get_user(_ctx(_basic("alice", "wonderland")))
    outside = os.path.join(os.path.dirname(tmp_path), "other.txt")

    assert not asyncio.run(alice.is_file_visible(outside))


def test_visibility_cache_is_per_account(repository, tmp_path):
    path = os.path.join(tmp_path, "notes.txt")

    first = repository.get_user(_ctx(_basic("alice", "wonderland")))
    asyncio.run(first.is_file_visible(path))

    # A later request of the same account shares the cache
    second = repository.get_user(_ctx(_basic("alice", "wonderland")))
    assert second._visible_files is first._visible_files
    assert second._visible_files[os.path.normpath(path)] is True

    bob = repository.get_user(_ctx(_basic("bob", "builder")))
    assert bob._visible_files is not first._visible_files
