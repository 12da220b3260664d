from __future__ import annotations

import json
import stat

import pytest

from tablebase.db.registry import PROJECT_CONFIG, ProjectRegistry
from tablebase.exceptions import InvalidProject, ValidationError

pytestmark = pytest.mark.tenancy


def test_resolve_creates_project_directory(tmp_path):
    registry = ProjectRegistry(tmp_path)
    handle = registry.resolve("p1")
    assert handle.path == tmp_path / "p1"
    assert handle.path.is_dir()
    assert len(handle.secret) == 32
    assert "secret=" not in repr(handle)


def test_secret_is_persisted_and_reused(tmp_path):
    first = ProjectRegistry(tmp_path).get_secret("p1")
    config = json.loads((tmp_path / "p1" / PROJECT_CONFIG).read_text())
    assert config["jwt_secret"] == first.hex()
    assert stat.S_IMODE((tmp_path / "p1" / PROJECT_CONFIG).stat().st_mode) == 0o600
    assert ProjectRegistry(tmp_path).get_secret("p1") == first


def test_projects_get_distinct_secrets(tmp_path):
    registry = ProjectRegistry(tmp_path)
    assert registry.get_secret("p1") != registry.get_secret("p2")


def test_secret_factory_is_injectable(tmp_path):
    registry = ProjectRegistry(tmp_path, secret_factory=lambda: b"k" * 32)
    assert registry.get_secret("p1") == b"k" * 32


def test_rotate_secret_replaces_persisted_value(tmp_path):
    secrets = iter([b"a" * 32, b"b" * 32])
    registry = ProjectRegistry(tmp_path, secret_factory=lambda: next(secrets))
    assert registry.get_secret("p1") == b"a" * 32
    assert registry.rotate_secret("p1") == b"b" * 32
    assert ProjectRegistry(tmp_path).get_secret("p1") == b"b" * 32


@pytest.mark.parametrize("name", ["", "   ", "..", ".hidden", "a/b", "a\\b", "x" * 129, None])
def test_invalid_project_names(tmp_path, name):
    with pytest.raises(InvalidProject):
        ProjectRegistry(tmp_path).resolve(name)


def test_create_folder_marker(tmp_path):
    registry = ProjectRegistry(tmp_path)
    folder = registry.create_folder("p1", "products")
    assert folder == tmp_path / "p1" / "folders" / "products"
    assert folder.is_dir()
    with pytest.raises(ValidationError):
        registry.create_folder("p1", "../escape")


@pytest.mark.asyncio
async def test_collections_are_isolated_per_project(tmp_path):
    registry = ProjectRegistry(tmp_path)
    one = await registry.get_collection("p1", "products")
    two = await registry.get_collection("p2", "products")
    assert one is not two
    assert one is await registry.get_collection("p1", "products")

    await one.insert({"name": "only in p1"})
    assert await two.count() == 0
    assert (tmp_path / "p1" / "products.db").exists()
    assert registry.open_collections == 2

    await registry.close()
    assert registry.open_collections == 0


def test_lookup_does_not_create_projects(tmp_path):
    registry = ProjectRegistry(tmp_path)
    assert registry.lookup("ghost") is None
    assert not (tmp_path / "ghost").exists()

    created = registry.resolve("p1")
    assert registry.lookup("p1") == created
