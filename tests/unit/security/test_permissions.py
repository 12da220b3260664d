from __future__ import annotations

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from tablebase.api.fastapi.middleware.errors.handlers import register_error_handlers
from tablebase.db.registry import ProjectRegistry
from tablebase.security.permissions import ROLE_ADMIN, ROLE_USER, RequireRoles, authorize
from tablebase.security.tokens import TokenClaims, issue_token

pytestmark = pytest.mark.security


def test_authorize():
    admin = TokenClaims(user_id="1", email="a@x.com", role=ROLE_ADMIN)
    user = TokenClaims(user_id="2", email="b@x.com", role=ROLE_USER)
    assert authorize(admin, [ROLE_ADMIN])
    assert not authorize(user, [ROLE_ADMIN])
    assert authorize(user, [ROLE_ADMIN, ROLE_USER])


@pytest.fixture
def guarded(tmp_path):
    registry = ProjectRegistry(tmp_path)
    app = FastAPI()
    app.state.registry = registry
    register_error_handlers(app)

    @app.get("/admin", dependencies=[RequireRoles(ROLE_ADMIN)])
    async def admin_only():
        return {"ok": True}

    with TestClient(app) as client:
        yield client, registry


def _token(registry, role, project="p1"):
    return issue_token(registry.get_secret(project), TokenClaims(user_id="u", email="u@x.com", role=role))


def test_missing_token_is_401(guarded):
    client, _ = guarded
    r = client.get("/admin", headers={"X-Project-Name": "p1"})
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"


def test_wrong_role_is_403(guarded):
    client, registry = guarded
    r = client.get(
        "/admin",
        headers={"X-Project-Name": "p1", "Authorization": f"Bearer {_token(registry, ROLE_USER)}"},
    )
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"


def test_token_for_other_project_is_403(guarded):
    client, registry = guarded
    r = client.get(
        "/admin",
        headers={"X-Project-Name": "p1", "Authorization": f"Bearer {_token(registry, ROLE_ADMIN, 'p2')}"},
    )
    assert r.status_code == 403
    assert r.json()["code"] == "TOKEN_INVALID"


def test_admin_passes(guarded):
    client, registry = guarded
    r = client.get(
        "/admin",
        headers={"X-Project-Name": "p1", "Authorization": f"Bearer {_token(registry, ROLE_ADMIN)}"},
    )
    assert r.status_code == 200
    assert r.json() == {"ok": True}
