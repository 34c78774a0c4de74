"""
Test fixtures for proske.

Provides db (in-memory Supabase), client (FastAPI TestClient with auth and
database dependencies overridden), and helpers to create users and switch the
authenticated user.
"""

import uuid
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from proske.core.dependencies import get_current_user_id
from proske.core.rate_limit import limiter
from proske.database.supabase_client import get_supabase, get_service_supabase
from proske.main import app
from tests.fake_supabase import FakeSupabase

API = "/api/v1"


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def identity():
    """Holds the id of the user the client is authenticated as (None = anonymous)."""
    return SimpleNamespace(user_id=None)


@pytest.fixture
def client(db, identity):
    def current_user():
        if identity.user_id is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return {"id": identity.user_id, "email": f"{identity.user_id}@example.com", "user_metadata": {}}

    app.dependency_overrides[get_supabase] = lambda: db
    app.dependency_overrides[get_service_supabase] = lambda: db
    app.dependency_overrides[get_current_user_id] = current_user
    limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def make_user(db):
    """Create a profile plus a user_roles row; returns the user id."""
    def _make(role="student", name="Aluno Teste", **profile):
        user_id = str(uuid.uuid4())
        db.seed(
            "profiles",
            id=user_id,
            name=name,
            email=profile.pop("email", f"{user_id[:8]}@example.com"),
            **profile
        )
        if role:
            db.seed("user_roles", user_id=user_id, role=role)
        return user_id
    return _make


@pytest.fixture
def login(identity):
    """Authenticate the client as the given user id."""
    def _login(user_id):
        identity.user_id = user_id
        return user_id
    return _login


@pytest.fixture
def admin(make_user, login):
    return login(make_user("admin", name="Admin"))


@pytest.fixture
def community(db, admin):
    return db.seed("communities", name="Matemática", subject="math", created_by=admin)
