"""Filter / Search / Aggregation Engine

Pure functions from (cases, criteria) to a filtered view and from cases to
summary statistics, plus ``CaseView``, which re-runs them whenever the
projection or the criteria change.

Filtering is a conjunction of four predicates:
- search: case-insensitive substring over the kind's search fields
- status: exact match, or "all"
- type: exact match on service requests, or "all"
- date range: submitted on/after the window's cutoff, or "all"
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from uc_core_lib.core.projection import ProjectionStore
from uc_core_lib.models.case import (
    OTHER_REQUEST_TYPE,
    REQUEST_TYPES,
    CaseBase,
    CaseKind,
    LeakReport,
    ServiceRequest,
    status_values,
)
from uc_core_lib.models.filters import (
    MATCH_ALL,
    CaseStats,
    DailyCount,
    DateRange,
    FilterCriteria,
    FilteredView,
)

logger = logging.getLogger(__name__)

SERIES_DAYS = 30

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current local wall-clock time (naive, system zone)."""
    return datetime.now()


def reference_time(now: Optional[datetime] = None) -> datetime:
    """``now`` as an aware datetime; naive values are taken as local time."""
    if now is None:
        now = local_now()
    if now.tzinfo is None:
        return now.astimezone()
    return now


def date_cutoff(date_range: DateRange, now: Optional[datetime] = None) -> Optional[datetime]:
    """Earliest submission time included by ``date_range``; None for ALL."""
    date_range = DateRange(date_range)
    if date_range == DateRange.ALL:
        return None
    now = reference_time(now)
    if date_range == DateRange.TODAY:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    return now - date_range.window


def matches_search(case: CaseBase, term: str) -> bool:
    if not term:
        return True
    term = term.lower()
    return any(term in value.lower() for value in case.search_fields())


def matches_status(case: CaseBase, status_filter: str) -> bool:
    return status_filter == MATCH_ALL or case.status.value == status_filter


def matches_type(case: CaseBase, type_filter: str) -> bool:
    if type_filter == MATCH_ALL or not isinstance(case, ServiceRequest):
        return True
    return case.type == type_filter


def apply_filters(
    cases: Sequence[CaseBase], criteria: FilterCriteria, now: Optional[datetime] = None
) -> FilteredView:
    """Filter ``cases`` by ``criteria``, preserving input order.

    Args:
        cases: Projection snapshot
        criteria: Current filter criteria
        now: Reference time for date windows (defaults to local now)

    Returns:
        FilteredView over the matching cases
    """
    cases = tuple(cases)
    if criteria.is_identity:
        return FilteredView(cases=cases, criteria=criteria, total=len(cases))

    cutoff = date_cutoff(criteria.date_range, now)
    matched = tuple(
        case
        for case in cases
        if matches_search(case, criteria.search_term)
        and matches_status(case, criteria.status_filter)
        and matches_type(case, criteria.type_filter)
        and (cutoff is None or case.submitted_at >= cutoff)
    )
    return FilteredView(cases=matched, criteria=criteria, total=len(cases))


def _percentages(counts: Dict[str, int], total: int) -> Dict[str, float]:
    return {key: (count / total * 100.0 if total else 0.0) for key, count in counts.items()}


def day_label(day: date) -> str:
    """Short day label, e.g. "Oct 9"."""
    return f"{day:%b} {day.day}"


def daily_series(
    cases: Iterable[CaseBase], now: Optional[datetime] = None, days: int = SERIES_DAYS
) -> List[DailyCount]:
    """Per-day submission counts for the last ``days`` calendar days.

    Oldest first, ending today, every day present even with zero count. With
    an aware ``now`` days are calendar days in its timezone; otherwise each
    case is placed on its own local date in the system zone, DST included.
    """
    zone = now.tzinfo if now is not None else None
    now = reference_time(now)
    today = now.date()
    first = today - timedelta(days=days - 1)
    counts = {first + timedelta(days=offset): 0 for offset in range(days)}

    for case in cases:
        day = case.submitted_at.astimezone(zone).date()
        if day in counts:
            counts[day] += 1

    return [DailyCount(day=day, label=day_label(day), count=count) for day, count in counts.items()]


def summarize(
    cases: Sequence[CaseBase],
    kind: Optional[CaseKind] = None,
    now: Optional[datetime] = None,
    days: int = SERIES_DAYS,
) -> CaseStats:
    """Aggregate statistics over a full case set.

    Status buckets are seeded with every status of ``kind`` (or of each kind
    present when ``kind`` is None), so zero-count buckets are reported.
    Type buckets apply to service requests only.
    """
    series_now = now
    now = reference_time(now)
    cases = tuple(cases)
    total = len(cases)

    kinds = [CaseKind(kind)] if kind is not None else []
    for case in cases:
        if case.kind not in kinds:
            kinds.append(case.kind)

    by_status: Dict[str, int] = {}
    for case_kind in kinds:
        for status in status_values(case_kind):
            by_status.setdefault(status, 0)

    by_type: Dict[str, int] = {}
    if CaseKind.SERVICE_REQUEST in kinds:
        by_type = {name: 0 for name in REQUEST_TYPES + (OTHER_REQUEST_TYPE,)}

    week_cutoff = date_cutoff(DateRange.WEEK, now)
    month_cutoff = date_cutoff(DateRange.MONTH, now)
    with_images = address_missing = last_week = last_month = 0

    for case in cases:
        by_status[case.status.value] = by_status.get(case.status.value, 0) + 1
        if isinstance(case, ServiceRequest):
            by_type[case.type_bucket] += 1
        elif isinstance(case, LeakReport):
            with_images += case.has_image
            address_missing += case.address_missing
        last_week += case.submitted_at >= week_cutoff
        last_month += case.submitted_at >= month_cutoff

    return CaseStats(
        total=total,
        by_status=by_status,
        by_type=by_type,
        status_percentages=_percentages(by_status, total),
        type_percentages=_percentages(by_type, total),
        daily=daily_series(cases, now=series_now, days=days),
        with_images=with_images,
        address_missing=address_missing,
        last_week=last_week,
        last_month=last_month,
    )


class CaseView:
    """Live filtered view and statistics for one projection collection.

    Recomputed from scratch whenever the projection changes for this
    collection or the criteria are replaced; nothing else is cached.

    Usage:
        view = CaseView(store, "requests", CaseKind.SERVICE_REQUEST)
        view.set_criteria(view.criteria.replace(status_filter="pending"))
        rows = view.view.cases
        chart = view.stats.daily
    """

    def __init__(
        self,
        store: ProjectionStore,
        collection: str,
        kind: CaseKind,
        criteria: Optional[FilterCriteria] = None,
        clock: Clock = local_now,
    ):
        self.store = store
        self.collection = collection
        self.kind = CaseKind(kind)
        self.clock = clock
        self._criteria = criteria or FilterCriteria()
        self.view: FilteredView
        self.stats: CaseStats
        self.recomputations = 0

        self.store.add_listener(self._on_store_change)
        self.refresh()

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria

    def set_criteria(self, criteria: FilterCriteria) -> FilteredView:
        """Replace the criteria and recompute."""
        self._criteria = criteria
        self.refresh()
        return self.view

    def reset_criteria(self) -> FilteredView:
        return self.set_criteria(FilterCriteria.reset())

    def refresh(self) -> None:
        now = self.clock()
        snapshot = self.store.get(self.collection)
        self.view = apply_filters(snapshot, self._criteria, now=now)
        self.stats = summarize(snapshot, kind=self.kind, now=now)
        self.recomputations += 1

    def close(self) -> None:
        self.store.remove_listener(self._on_store_change)

    def _on_store_change(self, collection: str) -> None:
        if collection == self.collection:
            self.refresh()
