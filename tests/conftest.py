"""
Shared fixtures.

- ``registry``: a ProjectRegistry rooted in a per-test temporary directory
- ``app`` / ``client``: the HTTP app over that registry
- ``signup``: registers and logs in a user, returns auth headers
"""

from __future__ import annotations

import os

# must be set before tablebase settings are first read
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("AUTH_BCRYPT_ROUNDS", "4")

from typing import Callable

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from tablebase.api.fastapi import create_app
from tablebase.db.registry import ProjectRegistry

PREFIX = "/rest/v1"


def pytest_configure(config):
    for name, desc in [
        ("storage", "File storage backend tests"),
        ("security", "Auth and token tests"),
        ("tenancy", "Project isolation tests"),
        ("acceptance", "End-to-end HTTP scenarios"),
    ]:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "projects"


@pytest.fixture
def registry(data_dir) -> ProjectRegistry:
    return ProjectRegistry(data_dir)


@pytest.fixture
def app(registry) -> FastAPI:
    return create_app(registry=registry)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def project_headers(project: str, token: str | None = None) -> dict[str, str]:
    headers = {"X-Project-Name": project}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


@pytest.fixture
def signup(client) -> Callable[..., dict[str, str]]:
    """Register (if needed) and log in; returns headers carrying the bearer token."""

    def _signup(project: str = "p1", email: str = "a@x.com", password: str = "secret1") -> dict[str, str]:
        client.post(
            f"{PREFIX}/auth/register",
            json={"email": email, "password": password},
            headers=project_headers(project),
        )
        r = client.post(
            f"{PREFIX}/auth/login",
            json={"email": email, "password": password},
            headers=project_headers(project),
        )
        assert r.status_code == 200, r.text
        return project_headers(project, r.json()["token"])

    return _signup
