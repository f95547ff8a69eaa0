"""Prescription drafting workflow.

generate: history -> prompt -> AI (one attempt, bounded) -> interpret,
falling back to the rule-based recommender. The draft comes back as a
pending record; only ``save_prescription`` writes it.
"""

import logging
import time
import uuid
from datetime import UTC, datetime

from clinidash.config import AI_PRESCRIPTION_ENABLED, DEFAULT_DOCTOR_ID, DEFAULT_DOCTOR_NAME
from clinidash.models.prescription import (
    AIAnalysis,
    GenerationResult,
    HistoryOverview,
    PrescriptionDraft,
    PrescriptionRecord,
    Recommendation,
    SaveResult,
)
from clinidash.services.fallback import recommend_fallback
from clinidash.services.history import analyze_history
from clinidash.services.interpreter import coerce_recommendation, interpret_response
from clinidash.services.llm import GenerativeServiceFailure, LLMClient, get_llm_client
from clinidash.services.prompts import build_prescription_prompt
from clinidash.services.store import PrescriptionStore

logger = logging.getLogger(__name__)

AI_SOURCE = "Analyzed with AI"
FALLBACK_SOURCE = "Used fallback analysis"


def new_prescription_id() -> str:
    return f"RX{int(time.time() * 1000)}{uuid.uuid4().hex[:4].upper()}"


async def _ai_recommendation(client: LLMClient, prompt: str) -> Recommendation | None:
    if not AI_PRESCRIPTION_ENABLED:
        logger.info("AI prescription drafting disabled, using fallback analysis")
        return None
    if not client.available():
        logger.info("LLM provider unavailable, using fallback analysis")
        return None
    try:
        raw = await client.complete(prompt)
    except GenerativeServiceFailure as exc:
        logger.error("AI prescription analysis failed: %s", exc)
        return None
    return coerce_recommendation(interpret_response(raw))


async def generate_prescription(
    patient_id: str,
    symptoms: list[str],
    diagnosis: str | None = None,
    doctor_id: str | None = None,
    doctor_name: str | None = None,
    *,
    store: PrescriptionStore | None = None,
    client: LLMClient | None = None,
    now: datetime | None = None,
) -> GenerationResult:
    """Draft a prescription for review. Raises ``NotFound`` for an unknown patient."""
    store = store or PrescriptionStore()
    client = client or get_llm_client()
    now = now or datetime.now(UTC)

    patient = await store.find_patient(patient_id)
    history = await store.list_prescriptions(patient_id, newest_first=True)
    analysis = analyze_history(history, patient, now)

    prompt = build_prescription_prompt(patient, symptoms, diagnosis, analysis)
    recommendation = await _ai_recommendation(client, prompt)
    source = "ai"
    if recommendation is None:
        source = "fallback"
        recommendation = recommend_fallback(symptoms, patient.allergies, analysis, diagnosis)

    stamp = now.isoformat()
    prescription = PrescriptionRecord(
        id=new_prescription_id(),
        patient_id=patient_id,
        patient_name=patient.name,
        doctor_id=doctor_id or DEFAULT_DOCTOR_ID,
        doctor_name=doctor_name or DEFAULT_DOCTOR_NAME,
        date=now.date().isoformat(),
        diagnosis=recommendation.final_diagnosis or diagnosis or "To be determined",
        symptoms=list(symptoms),
        medications=list(recommendation.medications),
        notes=recommendation.notes,
        status="pending",
        created_at=stamp,
        updated_at=stamp,
        is_ai_generated=True,
        ai_confidence=recommendation.confidence,
        ai_analysis=AIAnalysis(
            conflict_warnings=recommendation.conflict_warnings,
            recommendations=recommendation.recommendations,
            reasoning=recommendation.reasoning,
            source=AI_SOURCE if source == "ai" else FALLBACK_SOURCE,
        ),
    )
    logger.info("Drafted %s prescription for patient %s (%s)", source, patient_id, prescription.id)

    return GenerationResult(
        prescription=prescription,
        recommendation=recommendation,
        history_analysis=analysis,
        source=source,
    )


def _record_from_draft(draft: PrescriptionDraft, status: str, now: datetime) -> PrescriptionRecord:
    stamp = now.isoformat()
    data = draft.model_dump(exclude={"status"})
    data["date"] = data["date"] or now.date().isoformat()
    return PrescriptionRecord(
        **data,
        id=new_prescription_id(),
        status=status,
        created_at=stamp,
        updated_at=stamp,
    )


async def save_prescription(
    draft: PrescriptionDraft,
    *,
    store: PrescriptionStore | None = None,
    now: datetime | None = None,
) -> SaveResult:
    """Persist a reviewed draft as an active prescription.

    A plain insert: nothing is re-analyzed, and retrying after a failure
    can store the same draft twice.
    """
    store = store or PrescriptionStore()
    now = now or datetime.now(UTC)
    record = _record_from_draft(draft, "active", now)
    record.approved_at = record.created_at
    prescription_id = await store.insert_prescription(record)
    logger.info("Saved prescription %s for patient %s", prescription_id, record.patient_id)
    return SaveResult(id=prescription_id, prescription=record)


async def create_prescription(
    draft: PrescriptionDraft,
    *,
    store: PrescriptionStore | None = None,
    now: datetime | None = None,
) -> PrescriptionRecord:
    """Manually entered prescription; status defaults to active."""
    store = store or PrescriptionStore()
    record = _record_from_draft(draft, draft.status or "active", now or datetime.now(UTC))
    await store.insert_prescription(record)
    return record


async def get_history_overview(
    patient_id: str,
    *,
    store: PrescriptionStore | None = None,
    now: datetime | None = None,
) -> HistoryOverview:
    store = store or PrescriptionStore()
    patient = await store.find_patient(patient_id)
    history = await store.list_prescriptions(patient_id, newest_first=True)
    return HistoryOverview(
        patient=patient,
        prescription_history=history,
        history_analysis=analyze_history(history, patient, now or datetime.now(UTC)),
    )
