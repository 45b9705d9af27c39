"""
Shared fixtures for the evidence API test suite.

Tests run against a throwaway SQLite file through aiosqlite; every test starts
from freshly created tables.
"""

import os
import sys
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Must be set before app.core.config is imported anywhere
_TEST_DB_DIR = tempfile.mkdtemp(prefix="evidence-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_DIR}/evidence.db"
os.environ["APP_ENV"] = "test"

PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import httpx  # noqa: E402

from app.core.database import AsyncSessionLocal, Base, engine, init_db  # noqa: E402
from app.models.evidence import Evidence, EvidenceStatus  # noqa: E402
from app.models.session import AdminSession  # noqa: E402
from tests.helpers import solve  # noqa: E402


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def database():
    """Fresh schema per test; disposes pooled connections afterwards."""
    await init_db()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(database):
    async with AsyncSessionLocal() as session:
        yield session


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client(database):
    from app.main import app

    transport = httpx.ASGITransport(app=app, client=("203.0.113.10", 51000))
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_headers(db):
    token = uuid.uuid4().hex
    db.add(
        AdminSession(
            token=token,
            username="moderator",
            role="admin",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=24),
        )
    )
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def answered_payload(client):
    """Factory: fetch a challenge and build a submission body that answers it."""

    async def _make(title="Theft", description="Saw it happen", **extra):
        resp = await client.get("/challenge")
        assert resp.status_code == 200
        challenge = resp.json()
        body = {
            "title": title,
            "description": description,
            "challengeId": challenge["id"],
            "challengeAnswer": solve(challenge["question"]),
        }
        body.update(extra)
        return body

    return _make


@pytest.fixture
def make_evidence(db):
    """Factory that inserts evidence rows directly, with controllable timestamps."""

    async def _make(
        title="Broken fence",
        description="Near the depot",
        email=None,
        ip_address="198.51.100.7",
        status=EvidenceStatus.submitted,
        age_seconds=0,
    ):
        created = datetime.now(timezone.utc) - timedelta(seconds=age_seconds)
        evidence = Evidence(
            title=title,
            description=description,
            email=email,
            ip_address=ip_address,
            status=status,
            created_at=created,
            updated_at=created,
        )
        db.add(evidence)
        await db.commit()
        return evidence

    return _make
