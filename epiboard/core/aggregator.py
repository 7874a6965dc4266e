"""
Weekly pivots and per-facility notification summaries over a snapshot.

Both operations read the three clinical tables (IRA, EDA, febriles) and
reconcile each row with the facility roster through its RENAES code. Rows
without a recognizable code, or without a matching year/week, are left out.
"""

import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .errors import InvalidQueryError, SummaryError
from .renaes import extract_code
from .roster import RosterEntry, RosterIndex
from .rows import sum_prefixes, week_of, year_of

logger = logging.getLogger(__name__)

MIN_WEEK = 1
MAX_WEEK = 53
NO_REGION = "SIN RED"
TOTAL_LABEL = "TOTAL"


class Indicator(str, Enum):
    EDA = "EDA"
    IRA = "IRA"
    NEU = "NEU"
    SOBASMA = "SOBASMA"
    FEB = "FEB"

    @classmethod
    def parse(cls, value: str) -> "Indicator":
        try:
            return cls((value or "").strip().upper())
        except ValueError:
            allowed = ", ".join(i.value for i in cls)
            raise InvalidQueryError(f"Unknown indicator '{value}' (expected one of: {allowed})")


class GroupBy(str, Enum):
    estab = "estab"
    ris = "ris"

    @classmethod
    def parse(cls, value: str) -> "GroupBy":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise InvalidQueryError(f"Unknown groupBy '{value}' (expected 'estab' or 'ris')")


# =============================================================================
# CATEGORY RULES
# =============================================================================

def ira_value(row: Mapping[str, str]) -> float:
    return sum_prefixes(row, ("ira_", "ira"))


def neu_value(row: Mapping[str, str]) -> float:
    return sum_prefixes(row, ("neu_", "neumonia", "neumonias"))


def sob_value(row: Mapping[str, str]) -> float:
    return sum_prefixes(row, ("sob_", "sob_asma", "asma"))


def daa_value(row: Mapping[str, str]) -> float:
    return sum_prefixes(row, ("daa_", "eda_acuosa", "eda"))


def dis_value(row: Mapping[str, str]) -> float:
    return sum_prefixes(row, ("dis_", "disenterica"))


def feb_value(row: Mapping[str, str]) -> float:
    # feb_tot manda si viene informado
    total = sum_prefixes(row, ("feb_tot",))
    return total if total > 0 else sum_prefixes(row, ("feb_", "feb"))


# indicator -> (snapshot table attribute, value rule)
INDICATOR_RULES: Dict[Indicator, Tuple[str, Callable[[Mapping[str, str]], float]]] = {
    Indicator.EDA: ("edas", lambda r: daa_value(r) + dis_value(r)),
    Indicator.IRA: ("iras", ira_value),
    Indicator.NEU: ("iras", neu_value),
    Indicator.SOBASMA: ("iras", sob_value),
    Indicator.FEB: ("febs", feb_value),
}


def clamp_weeks(start: int, end: int) -> Tuple[int, int]:
    """Clamp to 1..53 and never return a reversed range"""
    start = max(MIN_WEEK, min(MAX_WEEK, start))
    end = max(start, min(MAX_WEEK, end))
    return start, end


def same_region(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return a.strip().casefold() == b.strip().casefold()


def _active(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


# =============================================================================
# PIVOT
# =============================================================================

@dataclass(frozen=True)
class PivotSeries:
    label: str
    values: Tuple[int, ...]
    total: int
    code: Optional[str] = None


@dataclass(frozen=True)
class PivotResult:
    indicator: Indicator
    group_by: GroupBy
    weeks: Tuple[int, ...]
    rows: Tuple[PivotSeries, ...]
    total_row: PivotSeries


def pivot(
    snapshot,
    year: int,
    indicator: Indicator,
    group_by: GroupBy = GroupBy.estab,
    week_start: int = MIN_WEEK,
    week_end: int = MAX_WEEK,
    ris: Optional[str] = None,
) -> PivotResult:
    """Week-by-week counts of one indicator, one series per facility or RIS"""
    if not isinstance(indicator, Indicator):
        indicator = Indicator.parse(indicator)
    if not isinstance(group_by, GroupBy):
        group_by = GroupBy.parse(group_by)

    week_start, week_end = clamp_weeks(week_start, week_end)
    n_weeks = week_end - week_start + 1
    table_name, rule = INDICATOR_RULES[indicator]
    roster: RosterIndex = snapshot.roster
    region_filter = ris.strip() if _active(ris) else None

    # clave normalizada -> [label, code, acumulados]
    series: Dict[str, list] = {}

    for row in getattr(snapshot, table_name):
        if year_of(row) != year:
            continue
        week = week_of(row)
        if week is None or week < week_start or week > week_end:
            continue

        match = extract_code(row)
        if not match:
            continue

        entry = roster.get(match.code)
        entry_ris = entry.ris if entry else None
        if region_filter is not None and not same_region(entry_ris, region_filter):
            continue

        if group_by is GroupBy.ris:
            label = entry_ris or NO_REGION
        else:
            label = entry.name if entry else match.code

        slot = series.get(label.casefold())
        if slot is None:
            code = match.code if group_by is GroupBy.estab else None
            slot = [label, code, [0.0] * n_weeks]
            series[label.casefold()] = slot
        slot[2][week - week_start] += rule(row)

    rows = []
    for label, code, acc in series.values():
        values = tuple(round(v) for v in acc)
        rows.append(PivotSeries(label=label, code=code, values=values, total=round(sum(acc))))
    rows.sort(key=lambda s: -s.total)

    column_totals = [0] * n_weeks
    for s in rows:
        for i, v in enumerate(s.values):
            column_totals[i] += v

    return PivotResult(
        indicator=indicator,
        group_by=group_by,
        weeks=tuple(range(week_start, week_end + 1)),
        rows=tuple(rows),
        total_row=PivotSeries(
            label=TOTAL_LABEL, values=tuple(column_totals), total=sum(column_totals)
        ),
    )


# =============================================================================
# SUMMARY
# =============================================================================

@dataclass(frozen=True)
class CategoryCounts:
    ira: int = 0
    neumonias: int = 0
    sob_asma: int = 0
    eda_acuosa: int = 0
    disenterica: int = 0
    feb: int = 0

    @property
    def total(self) -> int:
        return sum(self.as_dict().values())

    def as_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __add__(self, other: "CategoryCounts") -> "CategoryCounts":
        return CategoryCounts(**{k: v + getattr(other, k) for k, v in self.as_dict().items()})


CATEGORIES = tuple(f.name for f in fields(CategoryCounts))


@dataclass(frozen=True)
class FacilitySummary:
    renaes: str
    name: str
    ris: str
    ubigeo: Optional[str]
    counts: CategoryCounts
    notified: bool


@dataclass(frozen=True)
class SummaryResult:
    year: int
    week: int
    ris: Optional[str]
    ubigeo: Optional[str]
    include_all: bool
    notified_count: int
    non_notified_count: int
    totals: CategoryCounts
    rows: Tuple[FacilitySummary, ...]


def _accumulate(
    rows: Iterable[Mapping[str, str]],
    year: int,
    week: int,
    rules: Iterable[Tuple[int, Callable[[Mapping[str, str]], float]]],
    acc: Dict[str, List[float]],
) -> None:
    rules = tuple(rules)
    for row in rows:
        if year_of(row) != year or week_of(row) != week:
            continue
        match = extract_code(row)
        if not match:
            continue
        sums = acc.setdefault(match.code, [0.0] * len(CATEGORIES))
        for idx, rule in rules:
            sums[idx] += rule(row)


def summarize(
    snapshot,
    year: int,
    week: int,
    ris: Optional[str] = None,
    include_all: bool = True,
    ubigeo: Optional[str] = None,
) -> SummaryResult:
    """Per-facility category counts for one epidemiological week.

    Raises ``InvalidQueryError`` for an impossible week and wraps anything
    unexpected in ``SummaryError`` so callers never get a partial result.
    """
    if week < MIN_WEEK or week > MAX_WEEK:
        raise InvalidQueryError(f"semana must be between {MIN_WEEK} and {MAX_WEEK}, got {week}")

    try:
        return _summarize(snapshot, year, week, ris, include_all, ubigeo)
    except InvalidQueryError:
        raise
    except Exception as e:
        logger.error(f"Summary error for {year}-SE{week}: {e}")
        raise SummaryError(f"Summary failed for year={year} week={week}: {e}") from e


def _summarize(snapshot, year, week, ris, include_all, ubigeo) -> SummaryResult:
    roster: RosterIndex = snapshot.roster
    region_filter = ris.strip() if _active(ris) else None
    area_filter = ubigeo.strip() if _active(ubigeo) else None

    def passes(entry: RosterEntry) -> bool:
        if region_filter is not None and not same_region(entry.ris, region_filter):
            return False
        if area_filter is not None and not (entry.ubigeo or "").startswith(area_filter):
            return False
        return True

    idx = {name: i for i, name in enumerate(CATEGORIES)}
    acc: Dict[str, List[float]] = {}
    _accumulate(snapshot.iras, year, week, [
        (idx["ira"], ira_value), (idx["neumonias"], neu_value), (idx["sob_asma"], sob_value),
    ], acc)
    _accumulate(snapshot.edas, year, week, [
        (idx["eda_acuosa"], daa_value), (idx["disenterica"], dis_value),
    ], acc)
    _accumulate(snapshot.febs, year, week, [(idx["feb"], feb_value)], acc)

    universe: Set[str] = set()
    if include_all:
        universe.update(entry.code for entry in roster if passes(entry))

    for code in acc:
        entry = roster.get(code)
        if entry is not None:
            if passes(entry):
                universe.add(code)
        elif region_filter is None and area_filter is None:
            # no reconciliado con el maestro: se reporta igual
            universe.add(code)

    def sort_key(code: str) -> Tuple[str, str]:
        entry = roster.get(code)
        if entry is None:
            return "", code
        return entry.ris or "", entry.name

    facilities = []
    totals = CategoryCounts()
    notified_count = 0
    for code in sorted(universe, key=sort_key):
        sums = acc.get(code, [0.0] * len(CATEGORIES))
        counts = CategoryCounts(**{name: int(sums[i]) for name, i in idx.items()})
        notified = sum(sums) > 0

        entry = roster.get(code)
        facilities.append(FacilitySummary(
            renaes=code,
            name=entry.name if entry else code,
            ris=(entry.ris or "") if entry else "",
            ubigeo=entry.ubigeo if entry else (code[:6] if code[:6].isdecimal() else None),
            counts=counts,
            notified=notified,
        ))
        totals = totals + counts
        if notified:
            notified_count += 1

    return SummaryResult(
        year=year,
        week=week,
        ris=ris,
        ubigeo=ubigeo,
        include_all=include_all,
        notified_count=notified_count,
        non_notified_count=len(facilities) - notified_count,
        totals=totals,
        rows=tuple(facilities),
    )
