"""
Pytest configuration: in-memory SQLite, no OpenAI key, no Supabase, and a
bearer-token stub where the token *is* the user id.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"

from typing import Any, Dict

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from pitchmatch.api.ai.agents import reset_openai_client
from pitchmatch.api.dependencies import oauth2_scheme, verify_token
from pitchmatch.database import crud
from pitchmatch.database.database import SessionLocal, db_session, drop_db, init_db
from pitchmatch.main import app
from pitchmatch.storage import client as supabase_client


def _fake_verify_token(token: str = Depends(oauth2_scheme)) -> Dict[str, Any]:
    return {
        "id": token,
        "email": f"{token}@example.com",
        "first_name": None,
        "last_name": None,
        "profile_image_url": None,
    }


def auth(user_id: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {user_id}"}


def startup_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        "title": "GreenLedger",
        "description": "Carbon accounting software that plugs into accounting ledgers for SMEs.",
        "problem": "Small businesses cannot measure their emissions cheaply.",
        "solution": "Automatic emission estimates from existing bookkeeping data.",
        "target_market": "European small and medium enterprises",
        "industry": "Climate",
        "stage": "mvp",
        "business_model": "SaaS",
        "geography": "Europe",
        "funding_ask": "$1.5M",
        "tags": ["climate", "fintech"],
    }
    payload.update(overrides)
    return payload


def create_user(user_id: str, role: str = None, **extra: Any) -> str:
    with db_session() as db:
        crud.upsert_user(db, {"id": user_id, "email": f"{user_id}@example.com", **extra})
        crud.update_user_role(db, user_id, role)
    return user_id


def create_startup(founder_id: str, **overrides: Any) -> str:
    data = startup_payload()
    data.update(overrides)
    with db_session() as db:
        startup = crud.create_startup(db, founder_id, data)
        return startup.id


@pytest.fixture(autouse=True)
def database():
    init_db()
    yield
    drop_db()


@pytest.fixture(autouse=True)
def offline_services(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_KEY", raising=False)
    monkeypatch.setenv("AI_RETRY_DELAY_SECONDS", "0")
    monkeypatch.setattr(supabase_client, "supabase", None)
    monkeypatch.setattr(supabase_client, "_init_attempted", True)
    reset_openai_client()
    yield
    reset_openai_client()


@pytest.fixture
def client():
    app.dependency_overrides[verify_token] = _fake_verify_token
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def founder():
    return create_user("founder-1", "founder", first_name="Fay", last_name="Founder", company="GreenLedger Ltd")


@pytest.fixture
def investor():
    return create_user("investor-1", "investor", investment_focus=["Climate", "Fintech"])


@pytest.fixture
def admin():
    return create_user("admin-1", "admin")
