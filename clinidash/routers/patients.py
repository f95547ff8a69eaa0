import logging

from fastapi import APIRouter, HTTPException

from clinidash.models.patient import Patient, PatientCreate, PatientUpdate
from clinidash.services.store import NotFound, PrescriptionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["patients"])


@router.get("", response_model=list[Patient])
async def list_patients():
    """List all patients, newest first."""
    return await PrescriptionStore().list_patients()


@router.post("", response_model=Patient)
async def create_patient(body: PatientCreate):
    """Register a new patient."""
    patient = await PrescriptionStore().insert_patient(body)
    logger.info("Created patient %s", patient.id)
    return patient


@router.get("/{patient_id}", response_model=Patient)
async def get_patient(patient_id: str):
    try:
        return await PrescriptionStore().find_patient(patient_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Patient not found") from None


@router.patch("/{patient_id}", response_model=Patient)
async def update_patient(patient_id: str, body: PatientUpdate):
    """Update demographics, allergies or history for a patient."""
    try:
        return await PrescriptionStore().update_patient(patient_id, body)
    except NotFound:
        raise HTTPException(status_code=404, detail="Patient not found") from None
