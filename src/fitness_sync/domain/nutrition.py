"""Domain models for meals and daily nutrition."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum

from fitness_sync.domain.common import SortOrder


class MealType(StrEnum):
    """Kind of meal."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"
    PRE_WORKOUT = "pre-workout"
    POST_WORKOUT = "post-workout"
    OTHER = "other"


@dataclass(frozen=True)
class Quantity:
    """Amount of a food with its unit."""

    value: float
    unit: str


@dataclass(frozen=True)
class FoodItem:
    """A food eaten as part of a meal, with macros for the eaten quantity."""

    name: str
    quantity: Quantity
    calories: float
    protein: float = 0.0
    carbohydrates: float = 0.0
    fat: float = 0.0
    fiber: float = 0.0
    sugar: float = 0.0
    sodium: float = 0.0
    brand: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class WaterIntake:
    """Water consumed, with an optional daily goal."""

    total: float
    unit: str = "ml"
    goal: float | None = None


@dataclass(frozen=True)
class Meal:
    """A logged meal."""

    id: str
    type: MealType
    meal_time: datetime
    created_at: datetime
    updated_at: datetime
    name: str | None = None
    foods: list[FoodItem] = field(default_factory=list)
    water_intake: WaterIntake | None = None
    tags: list[str] = field(default_factory=list)
    notes: str | None = None

    @property
    def day(self) -> date:
        """Calendar day the meal was eaten."""
        return self.meal_time.date()

    @property
    def total_calories(self) -> float:
        return sum(food.calories for food in self.foods)

    @property
    def total_protein(self) -> float:
        return sum(food.protein for food in self.foods)

    @property
    def total_carbohydrates(self) -> float:
        return sum(food.carbohydrates for food in self.foods)

    @property
    def total_fat(self) -> float:
        return sum(food.fat for food in self.foods)

    @property
    def total_fiber(self) -> float:
        return sum(food.fiber for food in self.foods)


@dataclass(frozen=True)
class NutritionGoals:
    """Daily macro targets."""

    calories: float | None = None
    protein: float | None = None
    carbohydrates: float | None = None
    fat: float | None = None
    fiber: float | None = None


@dataclass(frozen=True)
class DailyNutrition:
    """Meals, water and targets for a single day."""

    day: date
    meals: list[Meal] = field(default_factory=list)
    water_intake: WaterIntake = field(default_factory=lambda: WaterIntake(total=0))
    goals: NutritionGoals = field(default_factory=NutritionGoals)
    id: str | None = None
    notes: str | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class MealFilters:
    """Filters applied to the next meal fetch."""

    type: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    search: str | None = None
    sort_by: str = "mealTime"
    sort_order: SortOrder = SortOrder.DESC


@dataclass(frozen=True)
class NutritionStats:
    """Averages over a range of meals."""

    total_meals: int
    average_calories: float
    average_protein: float
    average_carbs: float
    average_fat: float
    meal_types: list[str]
    recent_meals: list[Meal]


@dataclass(frozen=True)
class NutritionRecommendations:
    """Recommended daily intake."""

    calories: float
    protein: float
    carbohydrates: float
    fat: float
    fiber: float
    water: float
    bmr: float | None = None
    tdee: float | None = None


@dataclass(frozen=True)
class MacroTotals:
    """Summed macros for a set of meals."""

    calories: float
    protein: float
    carbohydrates: float
    fat: float
    fiber: float
