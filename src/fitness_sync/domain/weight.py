"""Domain models for body weight tracking."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from fitness_sync.domain.common import SortOrder

LBS_TO_KG = 0.453592
KG_TO_LBS = 2.20462


class WeightUnit(StrEnum):
    """Unit a weight is recorded in."""

    KG = "kg"
    LBS = "lbs"


@dataclass(frozen=True)
class WeightValue:
    """A weight measurement with its unit."""

    value: float
    unit: WeightUnit = WeightUnit.KG

    def in_kg(self) -> float:
        """Return the value converted to kilograms."""
        if self.unit is WeightUnit.LBS:
            return self.value * LBS_TO_KG
        return self.value

    def to(self, unit: WeightUnit) -> "WeightValue":
        """Return the value converted to another unit."""
        if unit is self.unit:
            return self
        if unit is WeightUnit.LBS:
            return WeightValue(value=self.value * KG_TO_LBS, unit=unit)
        return WeightValue(value=self.value * LBS_TO_KG, unit=unit)


@dataclass(frozen=True)
class WeightEntry:
    """A single weigh-in."""

    id: str
    weight: WeightValue
    measured_at: datetime
    created_at: datetime
    updated_at: datetime
    body_fat_percentage: float | None = None
    muscle_mass: WeightValue | None = None
    water_percentage: float | None = None
    time_of_day: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class WeightFilters:
    """Filters applied to the next weight entry fetch."""

    start_date: str | None = None
    end_date: str | None = None
    search: str | None = None
    sort_by: str = "measuredAt"
    sort_order: SortOrder = SortOrder.DESC


@dataclass(frozen=True)
class WeightTrendPoint:
    """Aggregated weight for one day."""

    day: datetime
    avg_weight: float
    min_weight: float
    max_weight: float
    count: int


@dataclass(frozen=True)
class TrendStatistics:
    """Change between the first and last trend points."""

    total_change: float
    avg_change_per_week: float
    time_span_days: float
    starting_weight: float
    current_weight: float


@dataclass(frozen=True)
class WeightTrends:
    """Daily trend points with optional change statistics."""

    points: list[WeightTrendPoint]
    statistics: TrendStatistics | None


@dataclass(frozen=True)
class WeightStatistics:
    """Aggregate statistics over a range of entries."""

    total_entries: int
    avg_weight: float
    min_weight: float
    max_weight: float
    avg_body_fat: float | None = None


@dataclass(frozen=True)
class WeightSummary:
    """Dashboard summary for weight tracking."""

    latest: WeightEntry | None
    total_entries: int
    change_since_first: float | None


@dataclass(frozen=True)
class WeightComparison:
    """Two entries compared against each other."""

    first: WeightEntry
    second: WeightEntry

    @property
    def weight_change(self) -> float:
        """Weight difference from first to second, in the second's unit."""
        return self.second.weight.value - self.first.weight.to(
            self.second.weight.unit
        ).value

    @property
    def days_between(self) -> int:
        """Whole days between the two measurements."""
        return round(
            abs((self.second.measured_at - self.first.measured_at).total_seconds())
            / 86400
        )


@dataclass(frozen=True)
class LatestWeight:
    """Most recent entry and its comparison to the one before."""

    entry: WeightEntry | None
    comparison: WeightComparison | None


@dataclass(frozen=True)
class BulkImportResult:
    """Entries created by a bulk import."""

    entries: list[WeightEntry]
    imported: int


@dataclass(frozen=True)
class WeightProgress:
    """Change between the two most recent entries."""

    current: float
    previous: float
    change: float
    change_percent: float


def bmi(weight: WeightValue, height_cm: float) -> float | None:
    """Return body mass index rounded to one decimal."""
    height_m = height_cm / 100
    if height_m <= 0 or weight.value <= 0:
        return None
    return round(weight.in_kg() / (height_m * height_m), 1)


def bmi_category(value: float) -> str:
    """Classify a BMI value."""
    if value < 18.5:  # noqa: PLR2004
        return "underweight"
    if value < 25:  # noqa: PLR2004
        return "normal"
    if value < 30:  # noqa: PLR2004
        return "overweight"
    return "obese"
