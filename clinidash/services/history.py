"""Aggregate facts about a patient's prescription history."""

import logging
from datetime import UTC, datetime, timedelta

from clinidash.models.patient import Patient
from clinidash.models.prescription import HistoryAnalysis, MedicationEntry, PrescriptionRecord

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=30)
COMMON_MEDICATION_LIMIT = 5


def _parse_timestamp(value: str) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def issued_at(record: PrescriptionRecord) -> datetime | None:
    return _parse_timestamp(record.created_at or record.date)


def medication_name(entry: MedicationEntry | str) -> str:
    if isinstance(entry, str):
        return entry
    return entry.name


def rank_medications(records: list[PrescriptionRecord], limit: int = COMMON_MEDICATION_LIMIT) -> list[str]:
    """Most frequent medication names, ties kept in first-seen order."""
    counts: dict[str, int] = {}
    for record in records:
        for entry in record.medications:
            name = medication_name(entry)
            if not name:
                continue
            counts[name] = counts.get(name, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [name for name, _ in ranked[:limit]]


def analyze_history(
    records: list[PrescriptionRecord],
    patient: Patient,
    now: datetime,
) -> HistoryAnalysis:
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    cutoff = now - RECENT_WINDOW

    active = [r for r in records if r.status == "active"]
    recent = []
    for record in records:
        issued = issued_at(record)
        if issued is not None and issued >= cutoff:
            recent.append(record)

    common = rank_medications(records)

    warnings: list[str] = []
    recommendations: list[str] = []

    if active:
        warnings.append(f"Patient has {len(active)} active prescription(s)")
        recommendations.append("Review active medications for potential interactions")

    if len(recent) > 2:
        warnings.append(f"Patient has received {len(recent)} prescriptions in the last 30 days")
        recommendations.append("Consider underlying cause for frequent prescriptions")

    if common:
        recommendations.append(f"Patient frequently uses: {', '.join(common[:3])}")

    logger.debug(
        "History for patient %s: %d total, %d active, %d recent",
        patient.id, len(records), len(active), len(recent),
    )

    return HistoryAnalysis(
        has_history=len(records) > 0,
        total_prescriptions=len(records),
        active_prescriptions=active,
        recent_prescriptions=recent,
        common_medications=common,
        allergic_reactions=list(patient.allergies),
        effective_treatments=list(common),
        warnings=warnings,
        recommendations=recommendations,
    )
