"""Turn free-form AI output into a prescription recommendation."""

import json
import logging
import re

from clinidash.models.prescription import MedicationEntry, Recommendation

logger = logging.getLogger(__name__)

MAX_MEDICATIONS = 4
RAW_NOTES_LIMIT = 500
DEFAULT_CONFIDENCE = 0.7


def _extract_json_span(text: str) -> str | None:
    # Greedy: first "{" through last "}", even across several objects
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start:end + 1]


def _canned(text: str, diagnosis: str, confidence: float, reasoning: str, recommendation: str) -> dict:
    return {
        "finalDiagnosis": diagnosis,
        "confidence": confidence,
        "reasoning": reasoning,
        "medications": [],
        "conflictWarnings": ["AI analysis incomplete"],
        "recommendations": [recommendation],
        "notes": text[:RAW_NOTES_LIMIT],
        "historyInsights": "AI analysis did not return structured output",
    }


def interpret_response(text: str) -> dict:
    """Extract the recommendation object from raw AI text.

    The parsed object is returned untouched; use ``coerce_recommendation``
    to apply defaults. Never raises: unusable text degrades to a canned,
    low-confidence result whose ``notes`` hold the (truncated) raw text.
    """
    text = text or ""
    span = _extract_json_span(text)
    if span is None:
        logger.warning("No JSON object found in AI response, using canned result")
        return _canned(
            text,
            "Diagnosis based on symptoms",
            0.6,
            "AI analysis completed with limited structured output: no JSON object found in the response",
            "Please review AI suggestions carefully",
        )

    # ValueError also covers integer literals past the int conversion limit
    try:
        parsed = json.loads(span)
    except (ValueError, RecursionError) as exc:
        logger.warning("Failed to parse AI response JSON: %s", exc)
        return _canned(
            text,
            "Unable to parse AI response",
            0.3,
            "AI response parsing failed: the JSON object in the response was malformed",
            "Manual review required",
        )
    return parsed


def as_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_confidence(value: object) -> float:
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return 1.0
    else:
        match = re.search(r"(\d+(?:\.\d+)?)\s*%?", as_text(value))
        if not match:
            return DEFAULT_CONFIDENCE
        number = float(match.group(1))
    if number != number or number <= 0:
        return DEFAULT_CONFIDENCE
    if number > 1.0:
        number = number / 100.0
    return max(0.0, min(1.0, number))


def coerce_medication(item: object) -> MedicationEntry | None:
    if isinstance(item, str):
        return MedicationEntry(name=item.strip()) if item.strip() else None
    if not isinstance(item, dict):
        return None
    name = as_text(item.get("name"))
    if not name:
        return None
    instructions = item.get("instructions")
    return MedicationEntry(
        name=name,
        strength=as_text(item.get("strength")),
        frequency=as_text(item.get("frequency")),
        duration=as_text(item.get("duration")),
        instructions=as_text(instructions) if instructions is not None else None,
    )


def _coerce_strings(value: object) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [as_text(item) for item in value if as_text(item)]


def coerce_recommendation(payload: object) -> Recommendation:
    """Apply defaults to an interpreted payload whose fields may be missing or mistyped."""
    data = payload if isinstance(payload, dict) else {}

    medications = []
    raw_meds = data.get("medications")
    for item in raw_meds if isinstance(raw_meds, list) else []:
        entry = coerce_medication(item)
        if entry is not None:
            medications.append(entry)

    return Recommendation(
        final_diagnosis=as_text(data.get("finalDiagnosis")),
        confidence=_parse_confidence(data.get("confidence")),
        reasoning=as_text(data.get("reasoning")),
        medications=medications[:MAX_MEDICATIONS],
        conflict_warnings=_coerce_strings(data.get("conflictWarnings")),
        recommendations=_coerce_strings(data.get("recommendations")),
        notes=as_text(data.get("notes")),
        history_insights=as_text(data.get("historyInsights")),
    )
