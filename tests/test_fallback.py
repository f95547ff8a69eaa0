"""Tests for the rule-based prescription recommender."""

import itertools

import pytest

from clinidash.models.prescription import HistoryAnalysis, MedicationEntry
from clinidash.services.fallback import (
    PATTERN_GROUPS,
    PENICILLIN_WARNING,
    match_pattern_groups,
    penicillin_conflicts,
    recommend_fallback,
    trigger_matches,
)

NO_HISTORY = HistoryAnalysis()
WITH_HISTORY = HistoryAnalysis(
    has_history=True,
    total_prescriptions=3,
    common_medications=["Amlodipine", "Ibuprofen", "Zinc", "Aspirin"],
    recommendations=["Review active medications for potential interactions"],
)


def _names(rec) -> list[str]:
    return [m.name for m in rec.medications]


class TestTable:
    def test_group_order(self):
        assert [g.label for g in PATTERN_GROUPS] == [
            "cough", "cold", "fever", "headache", "nausea", "allergy",
            "bacterial infection", "anxiety", "insomnia",
        ]

    def test_at_most_two_medications_per_group(self):
        assert all(1 <= len(g.medications) <= 2 for g in PATTERN_GROUPS)

    def test_result_does_not_share_table_entries(self):
        rec = recommend_fallback(["cough"], [], NO_HISTORY)
        rec.medications[0].name = "Changed"
        assert PATTERN_GROUPS[0].medications[0].name == "Dextromethorphan"


class TestTriggerMatching:
    @pytest.mark.parametrize("symptom,trigger", [
        ("cough", "cough"),
        ("bad cough at night", "cough"),
        ("flu", "flu"),
        ("nose", "runny nose"),
        ("migrane", "migraine"),
        ("nauseous", "nausea"),
    ])
    def test_matches(self, symptom, trigger):
        assert trigger_matches(symptom, trigger)

    @pytest.mark.parametrize("symptom,trigger", [
        ("knee pain", "muscle pain"),
        ("flow", "flu"),
        ("dizzy", "cough"),
    ])
    def test_no_match(self, symptom, trigger):
        assert not trigger_matches(symptom, trigger)


class TestPatternScan:
    @pytest.mark.parametrize("symptom", ["cough", "dry cough", "chest congestion", "  COUGH  "])
    def test_cough_group(self, symptom):
        rec = recommend_fallback([symptom], [], NO_HISTORY)
        assert _names(rec) == ["Dextromethorphan", "Guaifenesin"]
        assert rec.confidence == 0.8

    def test_cough_medications_in_mixed_lists(self):
        for extra in ("nausea", "insomnia", "hives"):
            rec = recommend_fallback(["dry cough", extra], [], NO_HISTORY)
            assert "Dextromethorphan" in _names(rec)
            assert "Guaifenesin" in _names(rec)

    def test_group_recorded_once(self):
        rec = recommend_fallback(["cough", "dry cough", "persistent cough"], [], NO_HISTORY)
        assert _names(rec) == ["Dextromethorphan", "Guaifenesin"]
        assert "Identified patterns: cough. " in rec.reasoning
        assert "Schedule follow-up in 3-5 days" in rec.recommendations

    def test_order_follows_first_match(self):
        assert [g.label for g in match_pattern_groups(["nausea", "cough"])] == ["nausea", "cough"]
        assert [g.label for g in match_pattern_groups(["cough", "nausea"])] == ["cough", "nausea"]

    def test_one_symptom_can_match_several_groups(self):
        # "strep throat" shares the "str" stem with "stress"
        labels = [g.label for g in match_pattern_groups(["strep throat"])]
        assert labels == ["bacterial infection", "anxiety"]

    def test_capped_at_four(self):
        rec = recommend_fallback(["cough", "runny nose", "fever"], [], NO_HISTORY)
        assert _names(rec) == ["Dextromethorphan", "Guaifenesin", "Pseudoephedrine", "Acetaminophen"]

    def test_never_more_than_four(self):
        triggers = [t for g in PATTERN_GROUPS for t in g.triggers]
        for pair in itertools.combinations(triggers, 2):
            assert len(recommend_fallback(list(pair), [], NO_HISTORY).medications) <= 4
        assert len(recommend_fallback(triggers, [], NO_HISTORY).medications) == 4


class TestGeneralTreatment:
    def test_pain_bucket(self):
        rec = recommend_fallback(["knee pain"], [], NO_HISTORY)
        assert len(rec.medications) == 1
        assert rec.medications[0].name == "Ibuprofen"
        assert rec.medications[0].strength == "400mg"
        assert rec.confidence == 0.6

    def test_pain_wins_over_fatigue(self):
        rec = recommend_fallback(["feeling tired", "sore knee"], [], NO_HISTORY)
        assert _names(rec) == ["Ibuprofen"]

    def test_fatigue_bucket(self):
        rec = recommend_fallback(["feeling tired"], [], NO_HISTORY)
        assert _names(rec) == ["Multivitamin"]
        assert rec.medications[0].strength == "1 tablet"

    def test_default_bucket(self):
        rec = recommend_fallback(["dizzy"], [], NO_HISTORY)
        assert _names(rec) == ["Acetaminophen"]
        assert rec.medications[0].instructions == "For general symptomatic relief"

    def test_unmatched_recommendations(self):
        rec = recommend_fallback(["dizzy"], [], NO_HISTORY)
        assert rec.recommendations == [
            "Monitor patient response to treatment",
            "Schedule follow-up in 3-5 days",
            "Consider specialist consultation for unspecified symptoms",
        ]
        assert rec.reasoning == "Enhanced AI analysis using pattern matching. No prescription history available."
        assert rec.notes.startswith("Enhanced pattern-based treatment for: general symptoms.")

    def test_empty_symptom_list(self):
        rec = recommend_fallback([], [], NO_HISTORY)
        assert _names(rec) == ["Acetaminophen"]


class TestAllergyCheck:
    def test_strep_throat_with_penicillin_allergy_has_no_warning(self):
        rec = recommend_fallback(["strep throat"], ["Penicillin"], NO_HISTORY)
        assert "Amoxicillin" in _names(rec)
        assert "Azithromycin" in _names(rec)
        assert rec.conflict_warnings == []

    def test_literal_name_match_warns(self):
        meds = [MedicationEntry(name="Penicillin V"), MedicationEntry(name="Ibuprofen")]
        assert penicillin_conflicts(["Penicillin"], meds) == [PENICILLIN_WARNING]

    def test_allergy_must_match_exactly(self):
        meds = [MedicationEntry(name="Penicillin V")]
        assert penicillin_conflicts(["penicillin"], meds) == []
        assert penicillin_conflicts([], meds) == []


class TestNarrative:
    def test_headache_and_fever_without_history(self):
        rec = recommend_fallback(["headache", "fever"], [], NO_HISTORY)
        names = _names(rec)
        assert names[:2] == ["Ibuprofen", "Sumatriptan"]
        assert rec.medications[0].strength == "600mg"
        assert rec.medications[2].name == "Ibuprofen"
        assert rec.medications[2].strength == "400mg"
        assert len(names) == 4
        assert rec.confidence == 0.8
        assert "Identified patterns:" in rec.reasoning
        assert "No prescription history available." in rec.reasoning
        assert "Monitor patient response to treatment" in rec.recommendations
        assert "Multiple symptoms identified - monitor for interactions" in rec.recommendations
        assert rec.history_insights == "No prescription history available"
        assert rec.final_diagnosis == "Symptoms: headache, fever"

    def test_with_history(self):
        rec = recommend_fallback(["cough"], [], WITH_HISTORY, diagnosis="Bronchitis")
        assert rec.final_diagnosis == "Bronchitis"
        assert rec.reasoning.endswith("Previous prescriptions reviewed for safety.")
        assert rec.recommendations[:2] == [
            "Review active medications for potential interactions",
            "Monitor patient response to treatment",
        ]
        assert rec.notes == "Enhanced pattern-based treatment for: cough. Patient has 3 previous prescriptions."
        assert rec.history_insights == "Patient commonly uses: Amlodipine, Ibuprofen, Zinc"

    def test_history_recommendations_not_mutated(self):
        before = list(WITH_HISTORY.recommendations)
        recommend_fallback(["cough"], [], WITH_HISTORY)
        assert WITH_HISTORY.recommendations == before

    def test_deterministic(self):
        args = (["headache", "nausea", "rash"], ["Penicillin"], WITH_HISTORY)
        assert recommend_fallback(*args) == recommend_fallback(*args)
