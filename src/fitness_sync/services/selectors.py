"""Pure derived views over slice state.

Every time-dependent selector takes an explicit ``now`` that defaults to the
wall clock.
"""

from collections import defaultdict
from datetime import UTC, date, datetime, timedelta

from fitness_sync.domain.goals import (
    Goal,
    GoalPriority,
    GoalProgress,
    GoalStatus,
    display_percent,
    progress_ratio,
)
from fitness_sync.domain.nutrition import MacroTotals, Meal, MealType
from fitness_sync.domain.weight import WeightEntry, WeightProgress, WeightValue
from fitness_sync.domain.weight import bmi as compute_bmi
from fitness_sync.domain.weight import bmi_category as classify_bmi
from fitness_sync.domain.workouts import CompletionStatus, Workout
from fitness_sync.services.goals import GoalsState
from fitness_sync.services.nutrition import NutritionState
from fitness_sync.services.slice import CollectionState
from fitness_sync.services.weight import WeightState
from fitness_sync.services.workouts import WorkoutsState

STALE_PROGRESS_AFTER = timedelta(days=7)
DEADLINE_HORIZON = timedelta(days=30)


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(tz=UTC)


# Shared


def is_loading(state: CollectionState) -> bool:
    """Whether any operation of the slice is in flight."""
    return any(status.loading for status in state.status.values())


def has_errors(state: CollectionState) -> bool:
    """Whether any operation of the slice holds an error."""
    return any(status.error is not None for status in state.status.values())


# Goals


def active_goals(state: GoalsState) -> list[Goal]:
    return [goal for goal in state.goals if goal.status is GoalStatus.ACTIVE]


def completed_goals(state: GoalsState) -> list[Goal]:
    return [goal for goal in state.goals if goal.status is GoalStatus.COMPLETED]


def overdue_goals(state: GoalsState, now: datetime | None = None) -> list[Goal]:
    """Active goals whose target date has passed."""
    moment = _now(now)
    return [
        goal
        for goal in active_goals(state)
        if goal.target_date is not None and goal.target_date < moment
    ]


def high_priority_goals(state: GoalsState) -> list[Goal]:
    return [goal for goal in active_goals(state) if goal.priority is GoalPriority.HIGH]


def goals_by_type(state: GoalsState, goal_type: str) -> list[Goal]:
    return [goal for goal in state.goals if goal.type == goal_type]


def goals_by_priority(state: GoalsState, priority: GoalPriority) -> list[Goal]:
    return [goal for goal in state.goals if goal.priority is priority]


def goals_by_status(state: GoalsState) -> dict[GoalStatus, list[Goal]]:
    """Group cached goals under every status, including empty ones."""
    grouped: dict[GoalStatus, list[Goal]] = {status: [] for status in GoalStatus}
    for goal in state.goals:
        grouped[goal.status].append(goal)
    return grouped


def goals_needing_update(state: GoalsState, now: datetime | None = None) -> list[Goal]:
    """Active goals with no progress logged in the last week."""
    cutoff = _now(now) - STALE_PROGRESS_AFTER
    return [
        goal
        for goal in active_goals(state)
        if goal.last_progress_update is None or goal.last_progress_update < cutoff
    ]


def upcoming_deadlines(state: GoalsState, now: datetime | None = None) -> list[Goal]:
    """Active goals due within the next 30 days, soonest first."""
    moment = _now(now)
    horizon = moment + DEADLINE_HORIZON
    due = [
        goal
        for goal in active_goals(state)
        if goal.target_date is not None and moment <= goal.target_date <= horizon
    ]
    return sorted(due, key=lambda goal: goal.target_date)


def completion_rate(state: GoalsState) -> float:
    """Percentage of cached goals that are completed."""
    if not state.goals:
        return 0.0
    return len(completed_goals(state)) / len(state.goals) * 100


def goal_progress(state: GoalsState, goal_id: str) -> GoalProgress | None:
    """Display progress for a cached goal with a target value."""
    goal = next((goal for goal in state.goals if goal.id == goal_id), None)
    if goal is None and state.current is not None and state.current.id == goal_id:
        goal = state.current
    if goal is None:
        return None
    ratio = progress_ratio(goal)
    if ratio is None:
        return None
    return GoalProgress(
        current=goal.current_value,
        target=goal.target_value,
        percent=display_percent(ratio),
        is_complete=ratio >= 100,
    )


# Weight


def latest_entry(state: WeightState) -> WeightEntry | None:
    return state.entries[0] if state.entries else None


def weight_progress(state: WeightState) -> WeightProgress | None:
    """Change between the two most recent cached entries."""
    if len(state.entries) < 2:
        return None
    latest, previous = state.entries[0], state.entries[1]
    current = latest.weight.value
    earlier = previous.weight.to(latest.weight.unit).value
    change = current - earlier
    return WeightProgress(
        current=current,
        previous=earlier,
        change=change,
        change_percent=change / earlier * 100 if earlier else 0.0,
    )


def bmi(state: WeightState, height_cm: float) -> float | None:
    """BMI of the latest entry for a given height."""
    entry = latest_entry(state)
    if entry is None:
        return None
    return compute_bmi(entry.weight, height_cm)


def bmi_category(state: WeightState, height_cm: float) -> str | None:
    value = bmi(state, height_cm)
    if value is None:
        return None
    return classify_bmi(value)


def lean_body_mass(state: WeightState) -> WeightValue | None:
    """Lean mass of the latest entry that records body fat."""
    entry = latest_entry(state)
    if entry is None or entry.body_fat_percentage is None:
        return None
    lean = entry.weight.value * (1 - entry.body_fat_percentage / 100)
    return WeightValue(value=round(lean, 1), unit=entry.weight.unit)


# Nutrition


def _meals_on(state: NutritionState, day: date) -> list[Meal]:
    daily = state.daily.get(day)
    if daily is not None:
        return daily.meals
    return [meal for meal in state.meals if meal.day == day]


def daily_totals(state: NutritionState, day: date | None = None) -> MacroTotals:
    """Summed macros for a day, defaulting to the current date."""
    meals = _meals_on(state, day or state.current_date)
    return MacroTotals(
        calories=sum(meal.total_calories for meal in meals),
        protein=sum(meal.total_protein for meal in meals),
        carbohydrates=sum(meal.total_carbohydrates for meal in meals),
        fat=sum(meal.total_fat for meal in meals),
        fiber=sum(meal.total_fiber for meal in meals),
    )


def meals_by_type(state: NutritionState) -> dict[MealType, list[Meal]]:
    grouped: dict[MealType, list[Meal]] = defaultdict(list)
    for meal in state.meals:
        grouped[meal.type].append(meal)
    return dict(grouped)


def water_progress(state: NutritionState, day: date | None = None) -> int:
    """Water intake as a rounded percentage of the day's goal."""
    daily = state.daily.get(day or state.current_date)
    if daily is None or not daily.water_intake.goal:
        return 0
    return round(daily.water_intake.total / daily.water_intake.goal * 100)


# Workouts


def workouts_by_status(state: WorkoutsState) -> dict[CompletionStatus, list[Workout]]:
    grouped: dict[CompletionStatus, list[Workout]] = {
        status: [] for status in CompletionStatus
    }
    for workout in state.workouts:
        grouped[workout.completion_status].append(workout)
    return grouped


def workout_volume(state: WorkoutsState, workout_id: str) -> float | None:
    """Reps times weight across every set of a cached workout."""
    for workout in state.workouts:
        if workout.id == workout_id:
            return workout.total_volume
    return None


def total_duration(state: WorkoutsState) -> float:
    """Minutes across cached completed workouts, preferring actual over planned."""
    return sum(
        workout.duration.actual or workout.duration.planned or 0
        for workout in state.workouts
        if workout.completion_status is CompletionStatus.COMPLETED
    )

