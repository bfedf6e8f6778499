import pytest

from scoreboard.progress import (
    MAX_STAT,
    derive_stats,
    percent_of_catalog,
    total_units_collected,
    unique_units_collected,
    weighted_sum,
)


def test_catalog_of_ten_example():
    counts = {"1": 2, "2": 0}
    assert unique_units_collected(counts) == 1
    assert percent_of_catalog(counts, 10) == 20
    assert total_units_collected(counts) == 2


def test_percent_of_empty_or_missing_counts_is_zero():
    assert percent_of_catalog({}, 118) == 0
    assert percent_of_catalog(None, 118) == 0
    assert percent_of_catalog({"1": 1}, 0) == 0


def test_percent_is_clamped_and_rounded_half_up():
    many = {str(n): 1 for n in range(1, 30)}
    assert percent_of_catalog(many, 10) == 100
    # 1/8 = 12.5% rounds up
    assert percent_of_catalog({"1": 1}, 8) == 13
    for size in range(1, 20):
        assert 0 <= percent_of_catalog({"1": 1, "2": 3}, size) <= 100


def test_totals_treat_bad_values_as_zero():
    counts = {"1": 3, "2": "x", "3": None, "4": "2"}
    assert total_units_collected(counts) == 5
    assert unique_units_collected(counts) == 2


def test_weighted_sum_uses_atomic_number():
    # 1*2 + 8*3
    assert weighted_sum({"1": 2, "8": 3}) == 26


def test_weighted_sum_skips_bad_keys_and_counts():
    counts = {"abc": 5, "0": 4, "-3": 2, "6": 0, "7": -1, "2": 1}
    assert weighted_sum(counts) == 2


@pytest.mark.parametrize("bad", [None, [], "counts", 42])
def test_malformed_input_yields_zero(bad):
    assert percent_of_catalog(bad, 118) == 0
    assert unique_units_collected(bad) == 0
    assert total_units_collected(bad) == 0
    assert weighted_sum(bad) == 0


def test_derive_stats_fields():
    stats = derive_stats({"1": 2, "2": 0, "6": 1}, 10)
    assert stats == {
        "ptPercent": 30,
        "uniqueElements": 2,
        "elementsCreated": 3,
        "totalCollected": 3,
        "protonsGathered": 8,
    }


def test_non_ascii_digit_keys_are_skipped():
    assert weighted_sum({"²": 1, "3": 2}) == 6
    assert derive_stats({"²": 1}, 118)["protonsGathered"] == 0


def test_counts_beyond_float_range_count_as_zero():
    huge = 10**400
    assert unique_units_collected({"1": huge}) == 0
    assert total_units_collected({"1": huge, "2": 3}) == 3
    assert weighted_sum({"1": huge}) == 0


def test_derived_totals_stay_within_bigint():
    stats = derive_stats({"118": 1e300, "99999999999999999999": 10}, 118)
    assert stats["totalCollected"] == MAX_STAT
    assert stats["protonsGathered"] == MAX_STAT
