import logging

from fastapi import APIRouter, HTTPException

from clinidash.models.prescription import (
    GenerateRequest,
    GenerationResult,
    HistoryOverview,
    PrescriptionDraft,
    PrescriptionRecord,
    PrescriptionStatus,
    PrescriptionStatusUpdate,
    SaveRequest,
    SaveResult,
)
from clinidash.services.prescriptions import (
    create_prescription,
    generate_prescription,
    get_history_overview,
    save_prescription,
)
from clinidash.services.store import NotFound, PrescriptionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prescriptions", tags=["prescriptions"])
ai_router = APIRouter(prefix="/api/ai-prescription", tags=["ai-prescription"])


@router.get("", response_model=list[PrescriptionRecord])
async def list_prescriptions(
    patient_id: str | None = None,
    status: PrescriptionStatus | None = None,
    doctor_id: str | None = None,
):
    """List prescriptions, newest first, optionally filtered."""
    return await PrescriptionStore().query_prescriptions(
        patient_id=patient_id, status=status, doctor_id=doctor_id,
    )


@router.post("", response_model=PrescriptionRecord)
async def create(body: PrescriptionDraft):
    """Record a manually written prescription."""
    return await create_prescription(body)


@router.get("/{prescription_id}", response_model=PrescriptionRecord)
async def get_prescription(prescription_id: str):
    try:
        return await PrescriptionStore().get_prescription(prescription_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Prescription not found") from None


@router.patch("/{prescription_id}", response_model=PrescriptionRecord)
async def update_status(prescription_id: str, body: PrescriptionStatusUpdate):
    """Move a prescription to a new status (e.g. approve, complete, cancel)."""
    try:
        return await PrescriptionStore().update_prescription_status(prescription_id, body.status)
    except NotFound:
        raise HTTPException(status_code=404, detail="Prescription not found") from None


@ai_router.post("/generate", response_model=GenerationResult)
async def generate(body: GenerateRequest):
    """Draft a prescription from symptoms and the patient's history.

    The draft is returned with status ``pending`` and is not stored; the
    doctor reviews it and submits it to ``/save``.
    """
    try:
        return await generate_prescription(
            body.patient_id,
            body.symptoms,
            diagnosis=body.diagnosis,
            doctor_id=body.doctor_id,
            doctor_name=body.doctor_name,
        )
    except NotFound:
        raise HTTPException(status_code=404, detail="Patient not found") from None


@ai_router.post("/save", response_model=SaveResult)
async def save(body: SaveRequest):
    """Store a reviewed draft as an active prescription."""
    try:
        return await save_prescription(body.prescription)
    except Exception as e:
        logger.error("Failed to save prescription for %s: %s", body.prescription.patient_id, e)
        raise HTTPException(status_code=500, detail="Failed to save prescription") from None


@ai_router.get("/history/{patient_id}", response_model=HistoryOverview)
async def history(patient_id: str):
    """Patient record, prescription history and its analysis."""
    try:
        return await get_history_overview(patient_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Patient not found") from None
