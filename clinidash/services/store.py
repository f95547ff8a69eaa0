"""Patient and prescription document store.

Documents are kept as JSON in SQLite and normalized into pydantic records
here, so the rest of the application never sees a missing field.
"""

import json
import logging
import re
import uuid
from datetime import UTC, datetime

from clinidash.database import SQLiteAdapter, get_db
from clinidash.models.patient import Patient, PatientCreate, PatientUpdate
from clinidash.models.prescription import PrescriptionRecord
from clinidash.services.interpreter import as_text, coerce_medication

logger = logging.getLogger(__name__)

_STATUSES = ("pending", "active", "completed", "cancelled")
_PATIENT_TEXT = ("name", "gender", "condition", "created_at", "updated_at")
_PRESCRIPTION_TEXT = (
    "patient_name", "doctor_id", "doctor_name", "date", "diagnosis", "notes",
    "created_at", "updated_at", "approved_at",
)
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class NotFound(ValueError):
    """A patient or prescription id did not resolve."""


def _snake_keys(document: dict) -> dict:
    # Legacy documents use camelCase keys (patientId, medicalHistory, ...)
    out = {}
    for key, value in document.items():
        snake = _CAMEL_BOUNDARY.sub("_", key).lower()
        if snake not in out or out[snake] is None:
            out[snake] = value
    return out


def _load_document(row) -> dict:
    try:
        document = json.loads(row["document"] or "{}")
    except (ValueError, RecursionError):
        logger.warning("Failed to parse stored document %s", row["id"])
        document = {}
    if not isinstance(document, dict):
        document = {}
    document = _snake_keys(document)
    return {key: value for key, value in document.items() if value is not None}


def _coerce_text(doc: dict, keys: tuple[str, ...]) -> None:
    for key in keys:
        if key in doc and not isinstance(doc[key], str):
            doc[key] = as_text(doc[key])


def _string_list(value: object) -> list[str]:
    # Elements are stringified; nulls and blanks are skipped
    if not isinstance(value, list):
        return []
    return [text for text in (as_text(item) for item in value) if text]


def normalize_patient(row) -> Patient:
    doc = _load_document(row)
    doc["id"] = row["id"]
    if "age" in doc:
        try:
            doc["age"] = int(doc["age"])
        except (TypeError, ValueError, OverflowError):
            doc.pop("age")
    _coerce_text(doc, _PATIENT_TEXT)
    for key in ("allergies", "medical_history"):
        if key in doc:
            doc[key] = _string_list(doc[key])
    return Patient.model_validate(doc)


def _normalize_analysis(value: object) -> dict | None:
    if not isinstance(value, dict):
        return None
    analysis = _snake_keys(value)
    return {
        "conflict_warnings": _string_list(analysis.get("conflict_warnings")),
        "recommendations": _string_list(analysis.get("recommendations")),
        "reasoning": as_text(analysis.get("reasoning")),
        "source": as_text(analysis.get("source")),
    }


def normalize_prescription(row) -> PrescriptionRecord:
    doc = _load_document(row)
    doc["id"] = row["id"]
    doc["patient_id"] = row["patient_id"]
    doc.setdefault("created_at", row["created_at"])

    status = doc.get("status", "pending")
    if not isinstance(status, str) or status not in _STATUSES:
        logger.debug("Prescription %s has legacy status %r, treating as completed", row["id"], status)
        doc["status"] = "completed"

    _coerce_text(doc, _PRESCRIPTION_TEXT)

    # Bare-string medications are a legacy shape and stay as they are
    medications = doc.get("medications", [])
    if not isinstance(medications, list):
        medications = []
    doc["medications"] = []
    for item in medications:
        entry = item if isinstance(item, str) else coerce_medication(item)
        if entry is not None:
            doc["medications"].append(entry)
    if "symptoms" in doc:
        doc["symptoms"] = _string_list(doc["symptoms"])

    if "ai_confidence" in doc:
        try:
            doc["ai_confidence"] = float(doc["ai_confidence"])
        except (TypeError, ValueError, OverflowError):
            doc.pop("ai_confidence")
    if not isinstance(doc.get("is_ai_generated", False), bool):
        doc["is_ai_generated"] = as_text(doc["is_ai_generated"]).lower() in ("1", "true", "yes")
    if "ai_analysis" in doc:
        doc["ai_analysis"] = _normalize_analysis(doc["ai_analysis"])
    return PrescriptionRecord.model_validate(doc)


def _now() -> str:
    return datetime.now(UTC).isoformat()


class PrescriptionStore:
    def __init__(self, db: SQLiteAdapter | None = None) -> None:
        self._db = db

    async def _conn(self) -> SQLiteAdapter:
        if self._db is None:
            return await get_db()
        return self._db

    # --- patients ---

    async def find_patient(self, patient_id: str) -> Patient:
        db = await self._conn()
        row = await db.fetch_one("SELECT * FROM patients WHERE id = ?", (patient_id,))
        if not row:
            raise NotFound(f"Patient with ID {patient_id} not found")
        return normalize_patient(row)

    async def list_patients(self) -> list[Patient]:
        db = await self._conn()
        rows = await db.fetch_all("SELECT * FROM patients ORDER BY created_at DESC, rowid DESC")
        return [normalize_patient(row) for row in rows]

    async def insert_patient(self, body: PatientCreate) -> Patient:
        db = await self._conn()
        now = _now()
        patient = Patient(id=f"PT{uuid.uuid4().hex[:10].upper()}", created_at=now, updated_at=now,
                          **body.model_dump())
        await db.execute(
            "INSERT INTO patients (id, created_at, updated_at, document) VALUES (?, ?, ?, ?)",
            (patient.id, now, now, patient.model_dump_json()),
        )
        await db.commit()
        return patient

    async def update_patient(self, patient_id: str, body: PatientUpdate) -> Patient:
        patient = await self.find_patient(patient_id)
        changes = {
            key: value
            for key, value in body.model_dump(exclude_unset=True).items()
            if value is not None or key == "condition"
        }
        updated = patient.model_copy(update={**changes, "updated_at": _now()})
        db = await self._conn()
        await db.execute(
            "UPDATE patients SET document = ?, updated_at = ? WHERE id = ?",
            (updated.model_dump_json(), updated.updated_at, patient_id),
        )
        await db.commit()
        return updated

    # --- prescriptions ---

    async def list_prescriptions(self, patient_id: str, newest_first: bool = True) -> list[PrescriptionRecord]:
        order = "DESC" if newest_first else "ASC"
        db = await self._conn()
        rows = await db.fetch_all(
            f"SELECT * FROM prescriptions WHERE patient_id = ? ORDER BY created_at {order}, rowid {order}",
            (patient_id,),
        )
        return [normalize_prescription(row) for row in rows]

    async def query_prescriptions(
        self,
        patient_id: str | None = None,
        status: str | None = None,
        doctor_id: str | None = None,
    ) -> list[PrescriptionRecord]:
        clauses = []
        params = []
        for column, value in (("patient_id", patient_id), ("status", status), ("doctor_id", doctor_id)):
            if value:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f"WHERE {' AND '.join(clauses)} " if clauses else ""
        db = await self._conn()
        rows = await db.fetch_all(
            f"SELECT * FROM prescriptions {where}ORDER BY created_at DESC, rowid DESC",
            params,
        )
        return [normalize_prescription(row) for row in rows]

    async def get_prescription(self, prescription_id: str) -> PrescriptionRecord:
        db = await self._conn()
        row = await db.fetch_one("SELECT * FROM prescriptions WHERE id = ?", (prescription_id,))
        if not row:
            raise NotFound(f"Prescription {prescription_id} not found")
        return normalize_prescription(row)

    async def insert_prescription(self, record: PrescriptionRecord) -> str:
        db = await self._conn()
        await db.execute(
            """INSERT INTO prescriptions (
                id, patient_id, doctor_id, status, created_at, updated_at, document
            ) VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                record.id,
                record.patient_id,
                record.doctor_id,
                record.status,
                record.created_at,
                record.updated_at,
                record.model_dump_json(),
            ),
        )
        await db.commit()
        return record.id

    async def update_prescription_status(self, prescription_id: str, status: str) -> PrescriptionRecord:
        record = await self.get_prescription(prescription_id)
        updated = record.model_copy(update={"status": status, "updated_at": _now()})
        db = await self._conn()
        await db.execute(
            "UPDATE prescriptions SET status = ?, updated_at = ?, document = ? WHERE id = ?",
            (status, updated.updated_at, updated.model_dump_json(), prescription_id),
        )
        await db.commit()
        return updated
