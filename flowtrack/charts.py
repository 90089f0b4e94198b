"""Daily completion charts and their integrity checks.

The service only exposes the current period: it picks the month and year,
so there is no way to ask for a historical month through this API.
"""

from __future__ import annotations

import calendar
import logging
from collections import Counter
from datetime import date
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic import ValidationError as PydanticValidationError

from .constants import TREND_WINDOW_DAYS
from .errors import DecodeError, IntegrityWarning

logger = logging.getLogger(__name__)

_MONTHS = {
    name.lower(): index
    for names in (calendar.month_name, calendar.month_abbr)
    for index, name in enumerate(names)
    if name
}


class DailyCount(BaseModel):
    """Completions recorded on a single calendar day."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    day: date = Field(alias="date")
    count: StrictInt = Field(ge=0)


class ChartSeries(BaseModel):
    """Per-day completion counts for one month of one family."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    month: str
    year: StrictInt
    daily_counts: List[DailyCount] = Field(default_factory=list)
    total_count: StrictInt = Field(default=0, ge=0)

    @field_validator("daily_counts", mode="before")
    @classmethod
    def _absent_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def computed_total(self) -> int:
        """Sum of the daily counts, independent of ``total_count``."""
        return sum(d.count for d in self.daily_counts)

    @property
    def is_empty(self) -> bool:
        return not self.daily_counts and self.total_count == 0

    @property
    def month_number(self) -> Optional[int]:
        label = self.month.strip().lower()
        if label.isdigit():
            number = int(label)
            return number if 1 <= number <= 12 else None
        return _MONTHS.get(label)

    def calendar_days(self) -> List[date]:
        """Every date of the labelled month, or ``[]`` if the label is unknown."""
        number = self.month_number
        if number is None:
            return []
        _, days = calendar.monthrange(self.year, number)
        return [date(self.year, number, day) for day in range(1, days + 1)]

    def trend_percentage(self, window: int = TREND_WINDOW_DAYS) -> float:
        """Percent change of the last ``window`` days' mean against the month mean."""
        if not self.daily_counts or window < 1:
            return 0.0
        average = self.computed_total / len(self.daily_counts)
        if average <= 0:
            return 0.0
        recent = self.daily_counts[-window:]
        recent_average = sum(d.count for d in recent) / len(recent)
        return (recent_average - average) / average * 100


class ChartResult(BaseModel):
    """A chart series together with any integrity warnings found on receipt."""

    series: ChartSeries
    family: str
    warnings: List[IntegrityWarning] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.warnings


def parse_chart_series(raw: Any) -> ChartSeries:
    """Decode a chart payload, raising :class:`DecodeError` on a bad shape."""
    if not isinstance(raw, dict):
        raise DecodeError("chart data must be an object")
    try:
        return ChartSeries.model_validate(raw)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(p) for p in error.get("loc", ())) or "data"
        raise DecodeError(f"chart {field}: {error.get('msg')}") from exc


def check_chart(series: ChartSeries) -> List[IntegrityWarning]:
    """Cross-check a series against its own total and calendar month."""
    warnings: List[IntegrityWarning] = []

    computed = series.computed_total
    if computed != series.total_count:
        warnings.append(
            IntegrityWarning(
                code="chart_total_mismatch",
                message=(
                    f"daily counts sum to {computed} but total_count is "
                    f"{series.total_count}"
                ),
                details={"computed": computed, "reported": series.total_count},
            )
        )

    if series.daily_counts:
        expected = series.calendar_days()
        if not expected:
            warnings.append(
                IntegrityWarning(
                    code="chart_unknown_month",
                    message=f"cannot resolve month label '{series.month}'",
                    details={"month": series.month, "year": series.year},
                )
            )
        received = Counter(d.day for d in series.daily_counts)
        duplicates = sorted(day for day, n in received.items() if n > 1)
        if duplicates:
            warnings.append(
                IntegrityWarning(
                    code="chart_duplicate_day",
                    message=f"{len(duplicates)} day(s) reported more than once",
                    details={"days": [d.isoformat() for d in duplicates]},
                )
            )
        if expected:
            expected_set = set(expected)
            missing = [d for d in expected if d not in received]
            unexpected = sorted(d for d in received if d not in expected_set)
            if missing:
                warnings.append(
                    IntegrityWarning(
                        code="chart_missing_days",
                        message=f"{len(missing)} day(s) of {series.month} {series.year} missing",
                        details={"days": [d.isoformat() for d in missing]},
                    )
                )
            if unexpected:
                warnings.append(
                    IntegrityWarning(
                        code="chart_unexpected_day",
                        message=f"{len(unexpected)} day(s) outside {series.month} {series.year}",
                        details={"days": [d.isoformat() for d in unexpected]},
                    )
                )

    for warning in warnings:
        logger.warning(f"Chart integrity warning ({warning.code}): {warning.message}")
    return warnings
