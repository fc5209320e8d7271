"""Filter criteria and derived view models.

FilterCriteria is a value object: each user input event produces a new one,
nothing mutates an existing one. FilteredView and CaseStats are the outputs
of the filter/aggregation functions in ``uc_core_lib.core.filtering``.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from uc_core_lib.models.case import Case

MATCH_ALL = "all"


class DateRange(str, Enum):
    """Named submission-date windows"""

    ALL = "all"
    TODAY = "today"        # since local midnight
    WEEK = "week"          # last 7 days
    MONTH = "month"        # last 30 days
    QUARTER = "quarter"    # last 90 days

    @property
    def window(self) -> Optional[timedelta]:
        """Rolling window length; None for ALL and TODAY"""
        return _WINDOWS.get(self)


_WINDOWS = {
    DateRange.WEEK: timedelta(days=7),
    DateRange.MONTH: timedelta(days=30),
    DateRange.QUARTER: timedelta(days=90),
}


class FilterCriteria(BaseModel):
    """User-selected filters for one case table"""

    model_config = ConfigDict(frozen=True)

    search_term: str = ""
    status_filter: str = MATCH_ALL
    type_filter: str = MATCH_ALL
    date_range: DateRange = DateRange.ALL

    @property
    def is_identity(self) -> bool:
        """True when no predicate can exclude a case"""
        return (
            not self.search_term
            and self.status_filter == MATCH_ALL
            and self.type_filter == MATCH_ALL
            and self.date_range == DateRange.ALL
        )

    def replace(self, **changes) -> "FilterCriteria":
        """Return new criteria with the given fields changed (validated)."""
        return FilterCriteria(**{**self.model_dump(), **changes})

    @classmethod
    def reset(cls) -> "FilterCriteria":
        return cls()


class FilteredView(BaseModel):
    """Cases passing the criteria, in projection order"""

    model_config = ConfigDict(frozen=True)

    cases: Tuple[Case, ...] = ()
    criteria: FilterCriteria = Field(default_factory=FilterCriteria)
    total: int = Field(default=0, description="Size of the unfiltered input")

    @property
    def count(self) -> int:
        return len(self.cases)

    @property
    def is_empty(self) -> bool:
        return not self.cases


class DailyCount(BaseModel):
    """One point of the daily submission series"""

    model_config = ConfigDict(frozen=True)

    day: date
    label: str = Field(description='Short label, e.g. "Oct 9"')
    count: int = 0


class CaseStats(BaseModel):
    """Aggregate statistics over a full case set"""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    status_percentages: Dict[str, float] = Field(default_factory=dict)
    type_percentages: Dict[str, float] = Field(default_factory=dict)
    daily: List[DailyCount] = Field(default_factory=list)

    # Leak report extras
    with_images: int = 0
    address_missing: int = 0
    last_week: int = 0
    last_month: int = 0
