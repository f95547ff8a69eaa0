import json
import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# In-memory DB and no external API keys for tests
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["LLM_PROVIDER"] = "auto"
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["SEED_DEMO_DATA"] = "false"

from clinidash.database import close_db, init_db
from clinidash.main import app


@pytest_asyncio.fixture
async def db():
    """Provide a fresh in-memory database for each test."""
    import clinidash.database as db_mod

    if db_mod._db is not None:
        try:
            await db_mod._db.close()
        except Exception:
            pass
    db_mod._db = None

    db_mod.DATABASE_PATH = ":memory:"
    db_mod.SEED_DEMO_DATA = False

    await init_db()
    database = await db_mod.get_db()
    yield database
    await close_db()


@pytest_asyncio.fixture
async def async_client(db):
    """Provide an async httpx client for async HTTP tests."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def _insert_patient(db, patient_id: str = "pt-1", **fields) -> dict:
    """Insert a raw patient document, bypassing the store."""
    document = {"id": patient_id, "name": "Jane Doe", "age": 30, "gender": "Female", "allergies": []}
    document.update(fields)
    await db.execute(
        "INSERT INTO patients (id, created_at, updated_at, document) VALUES (?, ?, ?, ?)",
        (patient_id, "2026-01-01T00:00:00+00:00", "2026-01-01T00:00:00+00:00", json.dumps(document)),
    )
    await db.commit()
    return document


async def _insert_prescription(db, rx_id: str, patient_id: str = "pt-1", created_at: str = "2026-01-01T00:00:00+00:00",
                              status: str = "completed", **fields) -> dict:
    """Insert a raw prescription document, bypassing the store."""
    document = {
        "id": rx_id,
        "patient_id": patient_id,
        "diagnosis": "Test",
        "medications": [],
        "status": status,
        "created_at": created_at,
    }
    document.update(fields)
    await db.execute(
        """INSERT INTO prescriptions (id, patient_id, doctor_id, status, created_at, updated_at, document)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (rx_id, patient_id, document.get("doctor_id"), status, created_at, created_at, json.dumps(document)),
    )
    await db.commit()
    return document


@pytest.fixture
def make_patient(db):
    async def _make(patient_id: str = "pt-1", **fields) -> dict:
        return await _insert_patient(db, patient_id, **fields)
    return _make


@pytest.fixture
def make_prescription(db):
    async def _make(rx_id: str, patient_id: str = "pt-1", **fields) -> dict:
        return await _insert_prescription(db, rx_id, patient_id, **fields)
    return _make
