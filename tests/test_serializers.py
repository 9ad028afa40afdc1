"""
Tests for record parsing and JSON output.

Covers row validation (missing fields vs malformed values), bundle
parsing and the read-only RecordStore.
"""

import json

import pytest

from meso_engine.core.errors import InsufficientDataError, InvalidInputError
from meso_engine.core.models import VolumeLandmarks
from meso_engine.core.strength import calibrate_lift
from meso_engine.io.record_store import RecordStore, parse_bundle
from meso_engine.io.serializers import (
    ValidationError,
    dict_to_body_composition,
    dict_to_landmarks,
    dict_to_mesocycle,
    dict_to_performance_log,
    dict_to_preferences,
    dict_to_readiness,
    dict_to_set_log,
    dict_to_sex,
    dict_to_strength_test,
    to_dict,
    to_json,
    validate_date,
)

BUNDLE = {
    "profile": {"sex": "male", "experience": "intermediate", "goal": "bulk", "days_per_week": 4},
    "body_composition": [
        {"total_weight_kg": 80, "height_cm": 180, "body_fat_percentage": 15, "measured_on": "2026-03-01"},
        {"total_weight_kg": 79, "height_cm": 180, "body_fat_percentage": 16, "measured_on": "2026-01-01"},
    ],
    "strength_tests": [{"lift_id": "bench_press", "weight_kg": 100, "reps": 5}],
    "set_logs": [
        {"exercise_id": "barbell_bench_press", "weight_kg": 80, "reps": 8, "rpe": 7,
         "performed_on": "2026-03-02"},
    ],
    "performance_logs": [{"week_number": 2, "missed_target_reps": True}],
    "landmark_overrides": {"chest": [8, 16, 22], "back": {"mev": 10, "mav": 16, "mrv": 24}},
    "readiness": {"sleep_hours": 7.5, "sleep_quality": 4},
    "mesocycle": {"split_type": "Upper/Lower", "total_weeks": 6, "days_per_week": 4, "current_week": 3},
}


class TestValidateDate:

    @pytest.mark.parametrize("value", ["2026-02-16", "2026-02-16T07:30:00"])
    def test_valid(self, value):
        assert validate_date(value) == value

    @pytest.mark.parametrize("value", ["16/02/2026", "2026-13-01", "2026-02-30", "", 20260216])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_date(value)


class TestRowConversion:

    def test_body_composition(self):
        bc = dict_to_body_composition(BUNDLE["body_composition"][0])
        assert bc.lean_mass_kg == pytest.approx(68.0)
        assert bc.measured_on == "2026-03-01"

    def test_missing_field_is_insufficient_data(self):
        with pytest.raises(InsufficientDataError, match="height_cm"):
            dict_to_body_composition({"total_weight_kg": 80, "body_fat_percentage": 15})

    def test_bad_number_is_validation_error(self):
        with pytest.raises(ValidationError):
            dict_to_body_composition({"total_weight_kg": "heavy", "height_cm": 180, "body_fat_percentage": 15})

    def test_bool_is_not_a_number(self):
        with pytest.raises(ValidationError):
            dict_to_set_log({"exercise_id": "x", "weight_kg": True, "reps": 5})

    def test_fractional_reps_rejected(self):
        with pytest.raises(ValidationError):
            dict_to_set_log({"exercise_id": "x", "weight_kg": 50, "reps": 5.5})

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_weight_rejected(self, value):
        with pytest.raises(ValidationError, match="finite"):
            dict_to_body_composition({"total_weight_kg": value, "height_cm": 180, "body_fat_percentage": 15})

    def test_infinite_reps_rejected(self):
        with pytest.raises(ValidationError):
            dict_to_set_log({"exercise_id": "x", "weight_kg": 50, "reps": float("inf")})

    def test_logged_rpe_uses_full_scale(self):
        log = dict_to_set_log({"exercise_id": "barbell_bench_press", "weight_kg": 60, "reps": 8, "rpe": 5})
        assert log.rpe == 5.0
        with pytest.raises(InvalidInputError):
            dict_to_set_log({"exercise_id": "barbell_bench_press", "weight_kg": 60, "reps": 8, "rpe": 11})
        with pytest.raises(InvalidInputError):
            dict_to_readiness({"previous_session_rpe": 0.5})

    def test_out_of_range_is_invalid_input(self):
        # The record itself rejects body fat outside (0, 100)
        with pytest.raises(InvalidInputError):
            dict_to_body_composition({"total_weight_kg": 80, "height_cm": 180, "body_fat_percentage": 120})

    def test_strength_test_defaults(self):
        test = dict_to_strength_test({"lift_id": "pullup", "reps": 8})
        assert test.weight_kg == 0.0
        assert test.rpe is None

    def test_set_log_flags(self):
        log = dict_to_set_log({"exercise_id": "squat", "weight_kg": 60, "reps": 5, "is_warmup": True})
        assert log.is_warmup
        with pytest.raises(ValidationError):
            dict_to_set_log({"exercise_id": "squat", "weight_kg": 60, "reps": 5, "is_warmup": "yes"})

    def test_performance_log(self):
        log = dict_to_performance_log({"week_number": 3, "perceived_fatigue": 4, "joint_pain": True})
        assert log.week_number == 3
        assert log.joint_pain
        with pytest.raises(InsufficientDataError):
            dict_to_performance_log({"perceived_fatigue": 4})

    def test_landmarks_forms(self):
        assert dict_to_landmarks([8, 14, 20]) == VolumeLandmarks(8, 14, 20)
        assert dict_to_landmarks({"mev": 8, "mav": 14, "mrv": 20}) == VolumeLandmarks(8, 14, 20)
        with pytest.raises(ValidationError):
            dict_to_landmarks([8, 14])

    def test_preferences(self):
        prefs = dict_to_preferences({**BUNDLE["profile"], "injuries": ["shoulder"]})
        assert prefs.days_per_week == 4
        assert prefs.injuries == ("shoulder",)
        assert prefs.equipment is None
        with pytest.raises(InvalidInputError):
            dict_to_preferences({**BUNDLE["profile"], "goal": "shred"})

    def test_sex(self):
        assert dict_to_sex({"sex": "female"}) == "female"
        with pytest.raises(ValidationError):
            dict_to_sex({"sex": "other"})

    def test_mesocycle_defaults_deload_to_last_week(self):
        meso = dict_to_mesocycle(BUNDLE["mesocycle"])
        assert meso.deload_week == 6
        assert meso.current_week == 3
        assert meso.status == "planned"
        with pytest.raises(ValidationError):
            dict_to_mesocycle({**BUNDLE["mesocycle"], "status": "paused"})


class TestParseBundle:

    def test_full_bundle(self):
        bundle = parse_bundle(BUNDLE)
        sex, prefs = bundle.require_profile()
        assert sex == "male"
        assert prefs.goal == "bulk"
        assert bundle.latest_body_composition.measured_on == "2026-03-01"
        assert len(bundle.strength_tests) == 1
        assert len(bundle.set_logs) == 1
        assert bundle.performance_logs[0].missed_target_reps
        assert bundle.landmark_overrides["chest"].mrv == 22
        assert bundle.landmark_overrides["back"].mev == 10
        assert bundle.readiness.sleep_hours == 7.5
        assert bundle.mesocycle.current_week == 3

    def test_empty_bundle(self):
        bundle = parse_bundle({})
        assert bundle.set_logs == ()
        with pytest.raises(InsufficientDataError):
            bundle.require_profile()
        with pytest.raises(InsufficientDataError):
            bundle.latest_body_composition

    def test_section_types_checked(self):
        with pytest.raises(ValidationError):
            parse_bundle({"set_logs": {"exercise_id": "x"}})
        with pytest.raises(ValidationError):
            parse_bundle({"profile": ["male"]})
        with pytest.raises(ValidationError):
            parse_bundle([])


class TestRecordStore:

    def test_load(self, tmp_path):
        path = tmp_path / "records.json"
        path.write_text(json.dumps(BUNDLE))
        store = RecordStore(path)
        assert store.exists()
        assert store.load().sex == "male"

    def test_missing_file(self, tmp_path):
        store = RecordStore(tmp_path / "nope.json")
        assert not store.exists()
        with pytest.raises(InsufficientDataError):
            store.load()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "records.json"
        path.write_text("{not json")
        with pytest.raises(ValidationError):
            RecordStore(path).load()


class TestJsonOutput:

    def test_nested_dataclasses(self):
        bundle = parse_bundle(BUNDLE)
        result = calibrate_lift("bench_press", 100, 5, "male", bundle.latest_body_composition)
        data = json.loads(to_json([result]))
        assert data[0]["estimated_1rm"] == 112.5
        assert data[0]["percentiles"]["vs_general"] == pytest.approx(91.4)

    def test_plain_values_pass_through(self):
        assert to_dict(None) is None
        assert to_dict({"a": (1, 2)}) == {"a": [1, 2]}
