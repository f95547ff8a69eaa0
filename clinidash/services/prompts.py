from clinidash.models.patient import Patient
from clinidash.models.prescription import HistoryAnalysis, MedicationEntry, PrescriptionRecord

RECENT_PRESCRIPTION_LIMIT = 3

RESPONSE_SCHEMA = """{
  "finalDiagnosis": "Your diagnosis based on symptoms and history",
  "confidence": 0.85,
  "reasoning": "Detailed explanation of your analysis considering patient history",
  "medications": [
    {
      "name": "Medication Name",
      "strength": "Dosage",
      "frequency": "How often",
      "duration": "How long",
      "instructions": "Special instructions"
    }
  ],
  "conflictWarnings": ["Any warnings about drug interactions or contradictions"],
  "recommendations": ["Clinical recommendations based on history"],
  "notes": "Additional clinical notes and follow-up instructions",
  "historyInsights": "Key insights from prescription history analysis"
}"""

FOCUS_POINTS = """Focus on:
1. Drug interactions with current medications
2. Allergy considerations
3. Pattern analysis from prescription history
4. Effectiveness of previous treatments
5. Safety considerations based on patient profile
6. Alternative treatments if current approach isn't working

Provide safe, evidence-based recommendations while considering the patient's unique medical history."""


def _format_medication(entry: MedicationEntry | str) -> str:
    if isinstance(entry, str):
        return entry
    return f"{entry.name} {entry.strength}".strip()


def _format_record(record: PrescriptionRecord) -> str:
    meds = ", ".join(_format_medication(m) for m in record.medications) or "No medications listed"
    return f"- {record.diagnosis} ({record.date}): {meds}"


def _format_records(records: list[PrescriptionRecord]) -> str:
    return "\n".join(_format_record(r) for r in records) or "None"


def build_prescription_prompt(
    patient: Patient,
    symptoms: list[str],
    diagnosis: str | None,
    analysis: HistoryAnalysis,
) -> str:
    """Render the prescription-drafting prompt. Pure formatting, no I/O."""
    allergies = ", ".join(patient.allergies) or "None reported"
    history = ", ".join(patient.medical_history) or patient.condition or "None reported"
    age = patient.age if patient.age is not None else "Unknown"
    common = ", ".join(analysis.common_medications) or "None"

    return f"""As a medical AI assistant, analyze the following patient case and provide prescription recommendations:

PATIENT INFORMATION:
- Name: {patient.name}
- Age: {age}
- Gender: {patient.gender or "Unknown"}
- Known Allergies: {allergies}
- Medical History: {history}

CURRENT CONSULTATION:
- Symptoms: {", ".join(symptoms)}
- Diagnosis: {diagnosis or "To be determined"}

PRESCRIPTION HISTORY:
- Total Past Prescriptions: {analysis.total_prescriptions}
- Active Prescriptions: {len(analysis.active_prescriptions)}
- Recent Prescriptions (30 days): {len(analysis.recent_prescriptions)}
- Commonly Prescribed Medications: {common}

ACTIVE MEDICATIONS:
{_format_records(analysis.active_prescriptions)}

RECENT PRESCRIPTION HISTORY:
{_format_records(analysis.recent_prescriptions[:RECENT_PRESCRIPTION_LIMIT])}

Please provide your analysis in the following JSON format only. Do not include any other text before or after the JSON:

{RESPONSE_SCHEMA}

IMPORTANT: Respond with ONLY the JSON object above, no additional text.

{FOCUS_POINTS}"""
