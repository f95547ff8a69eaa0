from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Iterable, Sequence

import aiosqlite

from clinidash.config import DATABASE_PATH, SEED_DEMO_DATA

logger = logging.getLogger(__name__)


@dataclass
class SQLiteAdapter:
    conn: aiosqlite.Connection

    async def execute(self, query: str, params: Sequence | None = None) -> None:
        await self.conn.execute(query, params or ())

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:
        await self.conn.executemany(query, seq_params)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchone()

    async def fetch_all(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchall()

    async def commit(self) -> None:
        await self.conn.commit()

    async def close(self) -> None:
        await self.conn.close()

    async def executescript(self, script: str) -> None:
        await self.conn.executescript(script)


_db: SQLiteAdapter | None = None


async def get_db() -> SQLiteAdapter:
    global _db
    if _db is None:
        conn = await aiosqlite.connect(DATABASE_PATH)
        conn.row_factory = aiosqlite.Row
        _db = SQLiteAdapter(conn)
        logger.info("Connected to SQLite database at %s", DATABASE_PATH)
    return _db


# Each row keeps the full JSON document plus the columns the store filters on.
SQLITE_SCHEMA = """
    CREATE TABLE IF NOT EXISTS patients (
        id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL,
        updated_at TEXT,
        document TEXT NOT NULL DEFAULT '{}'
    );

    CREATE TABLE IF NOT EXISTS prescriptions (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        doctor_id TEXT,
        status TEXT NOT NULL DEFAULT 'pending',
        created_at TEXT NOT NULL,
        updated_at TEXT,
        document TEXT NOT NULL DEFAULT '{}'
    );

    CREATE INDEX IF NOT EXISTS idx_prescriptions_patient
        ON prescriptions (patient_id, created_at);
"""


async def init_db() -> None:
    db = await get_db()
    await db.executescript(SQLITE_SCHEMA)
    await db.commit()

    if SEED_DEMO_DATA:
        await _seed_demo_data(db)


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None


def _demo_prescription(rx_id: str, patient: dict, created: datetime, status: str,
                       diagnosis: str, medications: list[dict]) -> dict:
    return {
        "id": rx_id,
        "patient_id": patient["id"],
        "patient_name": patient["name"],
        "doctor_id": "DOC001",
        "doctor_name": "Dr. Smith",
        "date": created.date().isoformat(),
        "diagnosis": diagnosis,
        "symptoms": [],
        "medications": medications,
        "notes": "",
        "status": status,
        "created_at": created.isoformat(),
        "updated_at": created.isoformat(),
        "is_ai_generated": False,
    }


async def _seed_demo_data(db: SQLiteAdapter) -> None:
    """Seed demo patients and a short prescription history for UI previews."""
    now = datetime.now(UTC)

    patients = [
        {
            "id": "demo-patient-1",
            "name": "Maria Lopez",
            "age": 68,
            "gender": "Female",
            "allergies": ["Penicillin"],
            "medical_history": ["Atrial fibrillation", "Hypertension"],
            "condition": "Hypertension",
        },
        {
            "id": "demo-patient-2",
            "name": "John David Smith",
            "age": 45,
            "gender": "Male",
            "allergies": [],
            "medical_history": ["Diabetes mellitus type 2"],
            "condition": "Diabetes",
        },
        {
            "id": "demo-patient-3",
            "name": "Ethan Brooks",
            "age": 24,
            "gender": "Male",
            "allergies": [],
            "medical_history": [],
            "condition": None,
        },
    ]

    ibuprofen = {"name": "Ibuprofen", "strength": "400mg", "frequency": "Every 8 hours",
                 "duration": "3-5 days", "instructions": "Take with food"}
    amlodipine = {"name": "Amlodipine", "strength": "5mg", "frequency": "Once daily",
                  "duration": "90 days", "instructions": None}
    prescriptions = [
        _demo_prescription("demo-rx-1", patients[0], now - timedelta(days=120), "completed",
                           "Hypertension", [amlodipine]),
        _demo_prescription("demo-rx-2", patients[0], now - timedelta(days=10), "active",
                           "Hypertension follow-up", [amlodipine]),
        _demo_prescription("demo-rx-3", patients[0], now - timedelta(days=3), "completed",
                           "Lower back pain", [ibuprofen]),
    ]

    existing_rows = await db.fetch_all(
        "SELECT id FROM patients WHERE id IN ('demo-patient-1', 'demo-patient-2', 'demo-patient-3')"
    )
    existing = {row["id"] for row in existing_rows}
    patients = [p for p in patients if p["id"] not in existing]
    if not patients:
        return

    stamp = now.isoformat()
    await db.executemany(
        "INSERT INTO patients (id, created_at, updated_at, document) VALUES (?, ?, ?, ?)",
        [
            (p["id"], stamp, stamp, json.dumps({**p, "created_at": stamp, "updated_at": stamp}))
            for p in patients
        ],
    )
    seeded_ids = {p["id"] for p in patients}
    await db.executemany(
        """INSERT INTO prescriptions (
            id, patient_id, doctor_id, status, created_at, updated_at, document
        ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
        [
            (rx["id"], rx["patient_id"], rx["doctor_id"], rx["status"],
             rx["created_at"], rx["updated_at"], json.dumps(rx))
            for rx in prescriptions
            if rx["patient_id"] in seeded_ids
        ],
    )
    await db.commit()
    logger.info("Seeded %d demo patient(s)", len(patients))
