from datetime import datetime, timedelta
from itertools import permutations

import pytest

from scoreboard.errors import InvalidInput
from scoreboard.merge import (
    DERIVED_FIELDS,
    FIELD_POLICIES,
    MAX_COUNT,
    SNAPSHOT_FIELDS,
    FieldPolicy,
    is_guest,
    merge_counts,
    merge_record,
    normalize_counts,
    validate_submission,
)
from scoreboard.schemas import PlayerRecord, SubmitScoreRequest

T0 = datetime(2024, 1, 1, 12, 0, 0)


def submission(**body):
    body.setdefault("name", "Alice")
    body.setdefault("score", 0)
    return validate_submission(SubmitScoreRequest(**body))


def apply(*bodies, size=118):
    record = None
    for i, body in enumerate(bodies):
        record = merge_record(record, submission(**body), T0 + timedelta(minutes=i), size)
    return record


def test_every_record_field_has_a_policy():
    assert set(FIELD_POLICIES) == set(PlayerRecord.model_fields)
    assert FIELD_POLICIES["score"] is FieldPolicy.MAX
    assert FIELD_POLICIES["completedCounts"] is FieldPolicy.MERGE_MAX
    assert "timeSeconds" in SNAPSHOT_FIELDS
    assert "ptPercent" in DERIVED_FIELDS


def test_new_record_defaults():
    record = merge_record(None, submission(score=100), T0)
    assert record.name == "Alice"
    assert record.category == "overall"
    assert record.score == 100
    assert record.createdAt == T0
    assert record.updatedAt == T0
    assert record.completedCounts == {}
    assert record.ptPercent == 0


def test_lower_score_keeps_best_but_refreshes_snapshot():
    first = merge_record(None, submission(score=100, timeSeconds=300, deaths=2), T0)
    later = T0 + timedelta(hours=1)
    second = merge_record(first, submission(score=40, timeSeconds=120), later)

    assert second.score == 100
    assert second.createdAt == T0
    assert second.updatedAt == later
    assert second.timeSeconds == 120
    # Not supplied this time, so the previous snapshot value stays.
    assert second.deaths == 2


def test_merge_does_not_mutate_existing():
    first = merge_record(None, submission(score=10, completedCounts={"1": 1}), T0)
    merge_record(first, submission(score=50, completedCounts={"1": 5, "2": 1}), T0)
    assert first.score == 10
    assert first.completedCounts == {"1": 1}


@pytest.mark.parametrize("order", list(permutations([30, 120, 5, 77])))
def test_score_is_max_regardless_of_order(order):
    record = apply(*[{"score": score} for score in order])
    assert record.score == 120


def test_counts_are_high_water_marks():
    record = apply(
        {"completedCounts": {"1": 3, "2": 1}},
        {"completedCounts": {"1": 1, "8": 2}},
        {"completedCounts": {"2": 4}},
    )
    assert record.completedCounts == {"1": 3, "2": 4, "8": 2}


def test_counts_omitted_keep_previous():
    record = apply({"completedCounts": {"1": 3}}, {"score": 5})
    assert record.completedCounts == {"1": 3}


def test_derived_fields_ignore_client_values():
    body = {
        "completedCounts": {"1": 2, "2": 0},
        "ptPercent": 99,
        "uniqueElements": 50,
        "protonsGathered": 1000,
    }
    record = apply(body, size=10)
    assert record.ptPercent == 20
    assert record.uniqueElements == 1
    assert record.totalCollected == 2
    assert record.elementsCreated == 2
    assert record.protonsGathered == 2


def test_invalid_snapshot_values_are_ignored():
    record = apply({"timeSeconds": 50, "deaths": 1}, {"timeSeconds": "soon", "deaths": float("inf")})
    assert record.timeSeconds == 50
    assert record.deaths == 1


def test_numeric_strings_are_accepted():
    record = apply({"score": "42.5", "molPercent": "12"})
    assert record.score == 42.5
    assert record.molPercent == 12


@pytest.mark.parametrize("score", [None, "", "abc", -1, "-5", True, float("nan"), float("inf"), [1]])
def test_invalid_score_is_rejected(score):
    with pytest.raises(InvalidInput):
        validate_submission(SubmitScoreRequest(name="Alice", score=score))


@pytest.mark.parametrize("name", [None, "", "   ", 5])
def test_invalid_name_is_rejected(name):
    with pytest.raises(InvalidInput):
        validate_submission(SubmitScoreRequest(name=name, score=1))


def test_name_is_trimmed_and_category_defaults():
    sub = validate_submission(SubmitScoreRequest(name="  Bob ", score=1, category=""))
    assert sub.name == "Bob"
    assert sub.category == "overall"


@pytest.mark.parametrize("name,expected", [("guest", True), (" GUEST ", True), ("Guest", True), ("guests", False)])
def test_guest_detection(name, expected):
    assert is_guest(name) is expected


def test_normalize_counts_coerces_values():
    assert normalize_counts({1: 2, "2": "3", "3": None, "4": -2, "5": 1.9}) == {
        "1": 2,
        "2": 3,
        "3": 0,
        "4": 0,
        "5": 1,
    }
    assert normalize_counts(["1", "2"]) == {}


def test_merge_counts_keeps_both_sides():
    assert merge_counts({"1": 1, "2": 5}, {"2": 3, "3": 1}) == {"1": 1, "2": 5, "3": 1}
    assert merge_counts(None, None) == {}


def test_score_beyond_float_range_is_rejected():
    with pytest.raises(InvalidInput):
        validate_submission(SubmitScoreRequest(name="Alice", score=10**400))


def test_snapshot_beyond_float_range_is_ignored():
    sub = validate_submission(SubmitScoreRequest(name="Alice", score=1, deaths=10**400, timeSeconds=5))
    assert "deaths" not in sub.snapshots
    assert sub.snapshots["timeSeconds"] == 5


def test_counts_are_clamped_to_max_count():
    assert normalize_counts({"118": 1e18, "1": 10**400, "2": 7}) == {
        "118": MAX_COUNT,
        "1": 0,
        "2": 7,
    }
