from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from clinidash.models.patient import Patient

PrescriptionStatus = Literal["pending", "active", "completed", "cancelled"]


class MedicationEntry(BaseModel):
    name: str = ""
    strength: str = ""
    frequency: str = ""
    duration: str = ""
    instructions: str | None = None


class AIAnalysis(BaseModel):
    conflict_warnings: list[str] = []
    recommendations: list[str] = []
    reasoning: str = ""
    source: str = ""


class PrescriptionRecord(BaseModel):
    """Normalized prescription document.

    Legacy documents may list medications as bare name strings, so both
    shapes are accepted.
    """
    id: str = ""
    patient_id: str
    patient_name: str = ""
    doctor_id: str = ""
    doctor_name: str = ""
    date: str = ""
    diagnosis: str = ""
    symptoms: list[str] = []
    medications: list[MedicationEntry | str] = []
    notes: str = ""
    status: PrescriptionStatus = "pending"
    created_at: str = ""
    updated_at: str = ""
    approved_at: str | None = None
    is_ai_generated: bool = False
    ai_confidence: float | None = None
    ai_analysis: AIAnalysis | None = None


class PrescriptionDraft(BaseModel):
    """A prescription as submitted by a doctor, before the store assigns an id."""
    patient_id: str
    patient_name: str = ""
    doctor_id: str = ""
    doctor_name: str = ""
    date: str = ""
    diagnosis: str = ""
    symptoms: list[str] = []
    medications: list[MedicationEntry] = []
    notes: str = ""
    status: PrescriptionStatus | None = None
    is_ai_generated: bool = False
    ai_confidence: float | None = Field(None, ge=0.0, le=1.0)
    ai_analysis: AIAnalysis | None = None


class HistoryAnalysis(BaseModel):
    has_history: bool = False
    total_prescriptions: int = 0
    active_prescriptions: list[PrescriptionRecord] = []
    recent_prescriptions: list[PrescriptionRecord] = []
    common_medications: list[str] = []
    allergic_reactions: list[str] = []
    effective_treatments: list[str] = []
    warnings: list[str] = []
    recommendations: list[str] = []


class Recommendation(BaseModel):
    """Structured prescription recommendation.

    Serialized with the camelCase keys the AI is asked to produce
    (``finalDiagnosis``, ``conflictWarnings``, ...).
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    final_diagnosis: str = ""
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reasoning: str = ""
    medications: list[MedicationEntry] = Field(default_factory=list, max_length=4)
    conflict_warnings: list[str] = []
    recommendations: list[str] = []
    notes: str = ""
    history_insights: str = ""


class GenerateRequest(BaseModel):
    patient_id: str
    symptoms: list[str] = []
    diagnosis: str | None = None
    doctor_id: str | None = None
    doctor_name: str | None = None


class GenerationResult(BaseModel):
    prescription: PrescriptionRecord
    recommendation: Recommendation
    history_analysis: HistoryAnalysis
    source: Literal["ai", "fallback"]


class SaveRequest(BaseModel):
    prescription: PrescriptionDraft


class SaveResult(BaseModel):
    id: str
    prescription: PrescriptionRecord


class HistoryOverview(BaseModel):
    patient: Patient
    prescription_history: list[PrescriptionRecord]
    history_analysis: HistoryAnalysis


class PrescriptionStatusUpdate(BaseModel):
    status: PrescriptionStatus

