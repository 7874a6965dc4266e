import pytest

from epiboard.core.aggregator import (
    CATEGORIES, GroupBy, Indicator, NO_REGION, clamp_weeks, feb_value, pivot, summarize,
)
from epiboard.core.errors import InvalidQueryError, SummaryError


# =============================================================================
# PIVOT
# =============================================================================


def test_pivot_by_facility(snapshot) -> None:
    result = pivot(snapshot, year=2024, indicator=Indicator.IRA, week_start=10, week_end=11)

    assert result.weeks == (10, 11)
    assert [(r.label, r.code, r.values, r.total) for r in result.rows] == [
        ("CS Alfa", "150140D101", (5, 4), 9),
        ("PS Beta", "150140D102", (3, 0), 3),
        ("150140X999", "150140X999", (2, 0), 2),
    ]
    assert result.total_row.label == "TOTAL"
    assert result.total_row.values == (10, 4)
    assert result.total_row.total == 14


def test_pivot_by_region_groups_unknown_under_sentinel(snapshot) -> None:
    result = pivot(snapshot, 2024, Indicator.IRA, GroupBy.ris, 10, 11)

    assert [(r.label, r.values, r.code) for r in result.rows] == [
        ("RIS NORTE", (5, 4), None),
        ("RIS SUR", (3, 0), None),
        (NO_REGION, (2, 0), None),
    ]


def test_pivot_region_filter_excludes_unknown_facilities(snapshot) -> None:
    result = pivot(snapshot, 2024, Indicator.IRA, week_start=10, week_end=11, ris=" ris sur ")

    assert [r.label for r in result.rows] == ["PS Beta"]
    assert result.total_row.values == (3, 0)


def test_pivot_full_year_has_53_columns(snapshot) -> None:
    result = pivot(snapshot, 2024, Indicator.EDA)

    assert len(result.weeks) == 53
    alfa = result.rows[0]
    assert alfa.label == "CS Alfa"
    assert alfa.values[9] == 3
    assert alfa.total == 3
    # reported rows with zero cases still produce a series
    assert [r.label for r in result.rows] == ["CS Alfa", "CS Gamma"]


def test_pivot_febrile_prefers_feb_tot(snapshot) -> None:
    result = pivot(snapshot, 2024, Indicator.FEB, week_start=10, week_end=10)

    assert {r.label: r.total for r in result.rows} == {"PS Beta": 4, "CS Alfa": 2}
    assert feb_value({"feb_tot": "0", "feb_men1": "2", "feb_may1": "1"}) == 3
    assert feb_value({"feb_tot": "6", "feb_men1": "2"}) == 6


def test_pivot_other_years_are_ignored(snapshot) -> None:
    result = pivot(snapshot, 2023, Indicator.NEU, week_start=10, week_end=10)

    assert [(r.label, r.total) for r in result.rows] == [("CS Alfa", 9)]
    assert pivot(snapshot, 2022, Indicator.IRA).rows == ()


def test_pivot_is_deterministic(snapshot) -> None:
    first = pivot(snapshot, 2024, "sobasma", "estab", 1, 53)
    second = pivot(snapshot, 2024, "SOBASMA", "ESTAB", 1, 53)

    assert first == second
    assert repr(first) == repr(second)


def test_reversed_week_range_is_clamped(snapshot) -> None:
    assert clamp_weeks(40, 10) == (40, 40)
    assert clamp_weeks(0, 99) == (1, 53)
    assert clamp_weeks(60, 1) == (53, 53)

    result = pivot(snapshot, 2024, Indicator.IRA, week_start=40, week_end=10)
    assert result.weeks == (40,)
    assert result.rows == ()
    assert result.total_row.values == (0,)


def test_pivot_rejects_unknown_indicator(snapshot) -> None:
    with pytest.raises(InvalidQueryError):
        pivot(snapshot, 2024, "DENGUE")
    with pytest.raises(InvalidQueryError):
        pivot(snapshot, 2024, Indicator.IRA, group_by="distrito")


# =============================================================================
# SUMMARY
# =============================================================================


def _codes(result):
    return [f.renaes for f in result.rows]


def test_summary_includes_roster_and_unreconciled_facilities(snapshot) -> None:
    result = summarize(snapshot, year=2024, week=10)

    assert _codes(result) == [
        "150140X999", "150140D101", "150140D103", "150140D102", "150140D104",
    ]
    assert result.notified_count == 3
    assert result.non_notified_count == 2
    assert result.totals.as_dict() == {
        "ira": 10, "neumonias": 1, "sob_asma": 2, "eda_acuosa": 3, "disenterica": 0, "feb": 6,
    }

    alfa = result.rows[1]
    assert alfa.name == "CS Alfa"
    assert alfa.ris == "RIS NORTE"
    assert alfa.notified
    assert alfa.counts.as_dict() == {
        "ira": 5, "neumonias": 1, "sob_asma": 2, "eda_acuosa": 3, "disenterica": 0, "feb": 2,
    }

    unknown = result.rows[0]
    assert unknown.name == "150140X999"
    assert unknown.ris == ""
    assert unknown.ubigeo == "150140"


def test_summary_region_filter(snapshot) -> None:
    result = summarize(snapshot, 2024, 10, ris="RIS NORTE")

    assert _codes(result) == ["150140D101", "150140D103"]
    assert result.notified_count == 1
    assert result.non_notified_count == 1


def test_summary_only_reporting_facilities(snapshot) -> None:
    result = summarize(snapshot, 2024, 10, include_all=False)

    # D103 reported a row, even if every count is zero
    assert set(_codes(result)) == {"150140D101", "150140D102", "150140D103", "150140X999"}
    assert result.notified_count == 3
    assert result.non_notified_count == 1


def test_summary_area_prefix_filter(snapshot) -> None:
    result = summarize(snapshot, 2024, 10, ubigeo="150141")

    assert _codes(result) == ["150140D102", "150140D104"]
    assert result.notified_count == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(year=2024, week=10),
        dict(year=2024, week=10, include_all=False),
        dict(year=2024, week=11, ris="RIS SUR"),
        dict(year=2023, week=10),
        dict(year=2030, week=1),
    ],
)
def test_summary_totals_match_rows(snapshot, kwargs) -> None:
    result = summarize(snapshot, **kwargs)

    assert result.notified_count + result.non_notified_count == len(result.rows)
    for name in CATEGORIES:
        assert getattr(result.totals, name) == sum(getattr(f.counts, name) for f in result.rows)
    for f in result.rows:
        assert f.notified == (f.counts.total > 0)


def test_summary_rejects_impossible_week(snapshot) -> None:
    with pytest.raises(InvalidQueryError):
        summarize(snapshot, 2024, 0)
    with pytest.raises(InvalidQueryError):
        summarize(snapshot, 2024, 54)


def test_summary_wraps_unexpected_faults(snapshot) -> None:
    class Broken:
        roster = snapshot.roster
        iras = [None]
        edas = ()
        febs = ()

    with pytest.raises(SummaryError) as exc_info:
        summarize(Broken(), 2024, 10)

    assert exc_info.value.__cause__ is not None
