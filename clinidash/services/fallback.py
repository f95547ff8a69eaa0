"""Rule-based prescription recommender.

Used whenever the AI service is disabled, fails or times out. Maps symptom
text onto a fixed table of treatment groups; no I/O and no randomness, so
the same inputs always give the same recommendation.
"""

import logging
from dataclasses import dataclass

from clinidash.models.prescription import HistoryAnalysis, MedicationEntry, Recommendation

logger = logging.getLogger(__name__)

MAX_MEDICATIONS = 4
MEDICATIONS_PER_GROUP = 2
PREFIX_LENGTH = 3

MATCHED_CONFIDENCE = 0.8
UNMATCHED_CONFIDENCE = 0.6

PENICILLIN = "Penicillin"
PENICILLIN_WARNING = "Patient allergic to Penicillin - avoid beta-lactam antibiotics"


@dataclass(frozen=True)
class PatternGroup:
    triggers: tuple[str, ...]
    medications: tuple[MedicationEntry, ...]

    @property
    def label(self) -> str:
        return self.triggers[0]


def _med(name: str, strength: str, frequency: str, duration: str, instructions: str) -> MedicationEntry:
    return MedicationEntry(
        name=name, strength=strength, frequency=frequency, duration=duration, instructions=instructions,
    )


PATTERN_GROUPS: tuple[PatternGroup, ...] = (
    # Respiratory
    PatternGroup(
        triggers=("cough", "dry cough", "productive cough", "persistent cough", "chest congestion"),
        medications=(
            _med("Dextromethorphan", "15mg", "Every 4 hours", "7 days", "Take as needed for cough suppression"),
            _med("Guaifenesin", "400mg", "Every 4 hours", "7 days", "Helps loosen mucus"),
        ),
    ),
    # Cold and flu
    PatternGroup(
        triggers=("cold", "flu", "runny nose", "stuffy nose", "nasal congestion", "sneezing"),
        medications=(
            _med("Pseudoephedrine", "30mg", "Every 6 hours", "5 days", "For nasal congestion"),
            _med("Acetaminophen", "500mg", "Every 6 hours", "5 days", "For aches and fever"),
        ),
    ),
    # Fever and general pain
    PatternGroup(
        triggers=("fever", "high temperature", "chills", "body aches", "muscle pain"),
        medications=(
            _med("Ibuprofen", "400mg", "Every 8 hours", "3-5 days", "Take with food to reduce stomach upset"),
            _med("Acetaminophen", "500mg", "Every 6 hours", "3-5 days",
                 "Alternative to ibuprofen for fever reduction"),
        ),
    ),
    # Headache
    PatternGroup(
        triggers=("headache", "migraine", "head pain", "tension headache", "sinus headache"),
        medications=(
            _med("Ibuprofen", "600mg", "Every 8 hours", "3 days", "Take with food for headache relief"),
            _med("Sumatriptan", "50mg", "As needed", "For migraines only",
                 "For severe migraines - max 2 doses per day"),
        ),
    ),
    # Stomach
    PatternGroup(
        triggers=("nausea", "vomiting", "stomach upset", "indigestion", "acid reflux"),
        medications=(
            _med("Ondansetron", "4mg", "Every 8 hours", "3 days", "For nausea and vomiting"),
            _med("Omeprazole", "20mg", "Once daily", "14 days", "For acid reflux, take before meals"),
        ),
    ),
    # Allergies
    PatternGroup(
        triggers=("allergy", "allergic reaction", "hives", "itching", "rash", "hay fever"),
        medications=(
            _med("Cetirizine", "10mg", "Once daily", "7-14 days", "For allergic reactions"),
            _med("Loratadine", "10mg", "Once daily", "7-14 days", "Non-drowsy allergy relief"),
        ),
    ),
    # Bacterial infection
    PatternGroup(
        triggers=("bacterial infection", "strep throat", "urinary tract infection", "uti", "skin infection"),
        medications=(
            _med("Amoxicillin", "500mg", "Every 8 hours", "7-10 days", "Complete full course even if feeling better"),
            _med("Azithromycin", "250mg", "Once daily", "5 days", "Alternative antibiotic for penicillin allergies"),
        ),
    ),
    # Anxiety and stress
    PatternGroup(
        triggers=("anxiety", "stress", "panic", "nervous", "worried"),
        medications=(
            _med("Lorazepam", "0.5mg", "As needed", "Short-term use only", "For acute anxiety - use sparingly"),
        ),
    ),
    # Sleep
    PatternGroup(
        triggers=("insomnia", "trouble sleeping", "can't sleep", "sleep problems"),
        medications=(
            _med("Melatonin", "3mg", "30 minutes before bed", "2 weeks", "Natural sleep aid"),
            _med("Diphenhydramine", "25mg", "Before bed", "3-5 days", "May cause drowsiness"),
        ),
    ),
)

# Evaluated top to bottom, first hit wins.
GENERAL_TREATMENTS: tuple[tuple[tuple[str, ...], MedicationEntry], ...] = (
    (
        ("pain", "ache", "sore"),
        _med("Ibuprofen", "400mg", "Every 8 hours", "3-5 days", "Take with food for pain relief"),
    ),
    (
        ("tired", "fatigue", "weak"),
        _med("Multivitamin", "1 tablet", "Once daily", "30 days", "To support energy and general health"),
    ),
)

DEFAULT_TREATMENT = _med(
    "Acetaminophen", "500mg", "Every 6 hours as needed", "3-5 days", "For general symptomatic relief",
)


def trigger_matches(symptom: str, trigger: str) -> bool:
    if symptom in trigger or trigger in symptom:
        return True
    # Shared 3-letter stem catches typos and truncations ("migrane", "nauseous")
    if len(symptom) > PREFIX_LENGTH and len(trigger) > PREFIX_LENGTH:
        return symptom.startswith(trigger[:PREFIX_LENGTH]) or trigger.startswith(symptom[:PREFIX_LENGTH])
    return False


def match_pattern_groups(symptoms: list[str]) -> list[PatternGroup]:
    """Every group hit by any symptom, each recorded once, in first-hit order."""
    matched: list[PatternGroup] = []
    seen: set[str] = set()
    for symptom in (s.lower().strip() for s in symptoms):
        for group in PATTERN_GROUPS:
            if group.label in seen:
                continue
            if any(trigger_matches(symptom, trigger) for trigger in group.triggers):
                logger.debug("Matched symptom %r to pattern %r", symptom, group.label)
                seen.add(group.label)
                matched.append(group)
    return matched


def general_treatment(symptoms: list[str]) -> MedicationEntry:
    text = " ".join(symptoms).lower()
    for keywords, medication in GENERAL_TREATMENTS:
        if any(k in text for k in keywords):
            return medication.model_copy()
    return DEFAULT_TREATMENT.model_copy()


def penicillin_conflicts(allergies: list[str], medications: list[MedicationEntry]) -> list[str]:
    # Literal name check only; penicillin-class drugs such as Amoxicillin are not caught.
    if PENICILLIN in allergies and any(PENICILLIN in m.name for m in medications):
        return [PENICILLIN_WARNING]
    return []


def recommend_fallback(
    symptoms: list[str],
    allergies: list[str],
    analysis: HistoryAnalysis,
    diagnosis: str | None = None,
) -> Recommendation:
    matched = match_pattern_groups(symptoms)
    labels = [group.label for group in matched]

    medications: list[MedicationEntry] = []
    for group in matched:
        medications.extend(m.model_copy() for m in group.medications[:MEDICATIONS_PER_GROUP])
    if not medications:
        medications.append(general_treatment(symptoms))
    medications = medications[:MAX_MEDICATIONS]

    reasoning = "Enhanced AI analysis using pattern matching. "
    if labels:
        reasoning += f"Identified patterns: {', '.join(labels)}. "
    reasoning += (
        "Previous prescriptions reviewed for safety."
        if analysis.has_history
        else "No prescription history available."
    )

    recommendations = list(analysis.recommendations)
    recommendations.append("Monitor patient response to treatment")
    if len(labels) > 1:
        recommendations.append("Multiple symptoms identified - monitor for interactions")
    else:
        recommendations.append("Schedule follow-up in 3-5 days")
    if not labels:
        recommendations.append("Consider specialist consultation for unspecified symptoms")

    notes = f"Enhanced pattern-based treatment for: {', '.join(labels) or 'general symptoms'}. "
    if analysis.has_history:
        notes += f"Patient has {analysis.total_prescriptions} previous prescriptions."

    if analysis.has_history:
        insights = f"Patient commonly uses: {', '.join(analysis.common_medications[:3])}"
    else:
        insights = "No prescription history available"

    logger.info(
        "Fallback recommendation: %d medication(s) from patterns: %s",
        len(medications), ", ".join(labels) or "general treatment",
    )

    return Recommendation(
        final_diagnosis=diagnosis or f"Symptoms: {', '.join(symptoms)}",
        confidence=MATCHED_CONFIDENCE if labels else UNMATCHED_CONFIDENCE,
        reasoning=reasoning,
        medications=medications,
        conflict_warnings=penicillin_conflicts(allergies, medications),
        recommendations=recommendations,
        notes=notes,
        history_insights=insights,
    )
