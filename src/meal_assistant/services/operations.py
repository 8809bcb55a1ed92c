"""Operations the language model can call, with typed inputs."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

from meal_assistant.domain.chat import ToolCall, ToolSpec
from meal_assistant.domain.activities import (
    ActivityDraft,
    ActivityEntry,
    ExerciseSet,
    personal_records_payload,
)
from meal_assistant.domain.meals import MealEntry
from meal_assistant.domain.oracle import FoodItem
from meal_assistant.errors import OracleUnavailableError, StoreUnavailableError
from meal_assistant.services.activities import ActivityLogService
from meal_assistant.services.meals import (
    MealLogService,
    build_components,
    parse_timestamp,
)
from meal_assistant.services.mutations import MealMutationService
from meal_assistant.services.provenance import LookupIdRegistry
from meal_assistant.services.stats import StatsService

_logger = logging.getLogger(__name__)

LOG_MEAL = "log_meal"
FIND_RECENT_MEALS = "find_recent_meals"
UPDATE_MEAL = "update_meal"
GET_DAILY_SUMMARY = "get_daily_summary"
LOG_ACTIVITY = "log_activity"
FIND_RECENT_ACTIVITIES = "find_recent_activities"
UPDATE_ACTIVITY = "update_activity"


class LogMealArgs(BaseModel):
    """Arguments for logging a new meal."""

    meal_type: Literal["breakfast", "lunch", "dinner", "snack"] = Field(
        description="Type of meal"
    )
    foods: list[FoodItem] = Field(
        min_length=1,
        description=(
            "Foods in the meal; quantity includes a unit, e.g. '2 eggs' or '1 cup'"
        ),
    )
    logged_at: str | None = Field(
        default=None, description="ISO 8601 timestamp of when the meal was eaten"
    )
    notes: str | None = Field(default=None, description="Optional notes")


class FindRecentMealsArgs(BaseModel):
    """Arguments for looking up recent meals."""

    limit: int | None = Field(
        default=None, ge=1, le=50, description="Maximum number of meals (default 10)"
    )
    contains_food: str | None = Field(
        default=None, description="Only return meals containing this food"
    )


class UpdateMealArgs(BaseModel):
    """Arguments for changing an existing meal."""

    meal_id: str = Field(
        min_length=1,
        description=(
            "The meal ID returned by find_recent_meals. Never use placeholders "
            "like 'xyz789' or 'abc123'."
        ),
    )
    update_request: str = Field(
        min_length=1,
        description=(
            "What the user wants to change, in natural language, e.g. "
            "'change to lunch', 'add a Coke', 'only half', 'no cheese'"
        ),
    )


class DailySummaryArgs(BaseModel):
    """Arguments for the daily totals lookup."""

    date: str | None = Field(
        default=None, description="Day as YYYY-MM-DD; today when omitted"
    )


class ExerciseArgs(BaseModel):
    """One strength exercise."""

    name: str = Field(min_length=1, description="Exercise name, e.g. 'Bench Press'")
    sets: int = Field(ge=1, description="Number of sets")
    reps: int = Field(ge=1, description="Number of reps per set")
    weight: float = Field(ge=0, description="Weight lifted")
    unit: Literal["lbs", "kg"] = Field(description="Weight unit")


class LogActivityArgs(BaseModel):
    """Arguments for logging a physical activity."""

    activity_type: Literal[
        "strength_training", "cardio", "sport", "class", "flexibility", "other"
    ] = Field(
        description=(
            "Activity category: 'sport' for basketball or tennis, 'flexibility' "
            "for yoga or stretching, 'other' for anything else"
        )
    )
    name: str = Field(
        min_length=1,
        description=(
            "Activity name, e.g. 'Running' or 'Yoga'. For strength training use "
            "a session name like 'Chest Workout'."
        ),
    )
    duration_minutes: float | None = Field(
        default=None, gt=0, description="Duration in minutes"
    )
    exercises: list[ExerciseArgs] | None = Field(
        default=None,
        description="Exercises with sets, reps and weight; strength training only",
    )
    distance: float | None = Field(
        default=None, gt=0, description="Distance covered, numeric value only"
    )
    distance_unit: Literal["miles", "km"] | None = Field(
        default=None, description="Distance unit; miles when omitted"
    )
    intensity: Literal["low", "moderate", "high"] | None = Field(
        default=None, description="Activity intensity"
    )
    calories_burned: float | None = Field(
        default=None, ge=0, description="Estimated calories burned"
    )
    performed_at: str | None = Field(
        default=None, description="ISO 8601 timestamp of the activity"
    )
    notes: str | None = Field(default=None, description="Optional notes")


class FindRecentActivitiesArgs(BaseModel):
    """Arguments for looking up recent activities."""

    limit: int | None = Field(
        default=None,
        ge=1,
        le=50,
        description="Maximum number of activities (default 5)",
    )
    within_minutes: int | None = Field(
        default=None,
        ge=1,
        description="Only activities from the last N minutes (default 60)",
    )
    activity_type: (
        Literal["strength_training", "cardio", "sport", "class", "flexibility", "other"]
        | None
    ) = Field(default=None, description="Only activities of this type")


class UpdateActivityArgs(BaseModel):
    """Arguments for adding exercises to a strength session."""

    session_id: str = Field(
        min_length=1,
        description=(
            "The session ID returned by find_recent_activities. Never use "
            "placeholders like 'xyz789' or 'abc123'."
        ),
    )
    exercises: list[ExerciseArgs] = Field(
        min_length=1, description="New exercises to add to the session"
    )
    name: str | None = Field(
        default=None, description="New session name, e.g. 'Chest & Biceps Workout'"
    )
    notes: str | None = Field(default=None, description="Notes to add to the session")


_DESCRIPTIONS = {
    LOG_MEAL: (
        "Log a new meal to the user's food diary. Only call after the user "
        "confirmed the breakdown."
    ),
    FIND_RECENT_MEALS: (
        "Find the user's recent meals, newest first. REQUIRED before "
        "update_meal. Returns the real meal IDs needed for updates."
    ),
    UPDATE_MEAL: (
        "Update an existing meal from a natural-language change request. "
        "CRITICAL: call find_recent_meals first to get the meal ID. NEVER use "
        "placeholder IDs."
    ),
    GET_DAILY_SUMMARY: "Get calorie and macro totals for a day.",
    LOG_ACTIVITY: (
        "Log a physical activity: exercise, sports, classes, walks. Only call "
        "after the user confirmed the breakdown. Strength exercises are checked "
        "for personal records automatically."
    ),
    FIND_RECENT_ACTIVITIES: (
        "Find recent activities, newest first. Use before logging a strength "
        "exercise to see whether the user is continuing a session. Returns the "
        "real session IDs needed by update_activity."
    ),
    UPDATE_ACTIVITY: (
        "Add exercises to an existing strength training session. CRITICAL: call "
        "find_recent_activities first to get the session ID. NEVER use "
        "placeholder IDs."
    ),
}

_ARGUMENT_MODELS: dict[str, type[BaseModel]] = {
    LOG_MEAL: LogMealArgs,
    FIND_RECENT_MEALS: FindRecentMealsArgs,
    UPDATE_MEAL: UpdateMealArgs,
    GET_DAILY_SUMMARY: DailySummaryArgs,
    LOG_ACTIVITY: LogActivityArgs,
    FIND_RECENT_ACTIVITIES: FindRecentActivitiesArgs,
    UPDATE_ACTIVITY: UpdateActivityArgs,
}


@dataclass(frozen=True)
class OperationResult:
    """Executed operation with its payload and any records it returned."""

    call_id: str
    name: str
    payload: dict[str, object]
    meals: list[MealEntry] = field(default_factory=list)
    activities: list[ActivityEntry] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Return true when the payload reports success."""
        return self.payload.get("success") is True


@dataclass
class OperationSet:
    """Catalog and executors for model-callable operations."""

    meal_service: MealLogService
    stats_service: StatsService
    mutation_service: MealMutationService
    registry: LookupIdRegistry
    activity_service: ActivityLogService
    recent_limit: int = 10
    recent_activity_limit: int = 5
    activity_window_minutes: int = 60
    timezone: str = "UTC"

    def catalog(self) -> list[ToolSpec]:
        """Return the operation specs exposed to the model."""
        return [
            ToolSpec(
                name=name,
                description=_DESCRIPTIONS[name],
                parameters=model.model_json_schema(),
            )
            for name, model in _ARGUMENT_MODELS.items()
        ]

    async def execute(self, user_id: UUID, call: ToolCall) -> OperationResult:
        """Run one requested operation for the owner.

        Bad arguments and executor failures become failure payloads the model
        can explain; store and model outages propagate.
        """
        model = _ARGUMENT_MODELS.get(call.name)
        if model is None:
            return _failure(
                call,
                f"Unknown operation '{call.name}'. "
                f"Available: {', '.join(_ARGUMENT_MODELS)}.",
            )
        try:
            args = model.model_validate(call.arguments)
        except ValidationError as exc:
            _logger.warning("Invalid %s arguments: %s", call.name, exc)
            return _failure(call, f"Invalid arguments for {call.name}: {exc}")

        _logger.info("Executing %s for user_id=%s", call.name, user_id)
        try:
            if isinstance(args, LogMealArgs):
                return self._log_meal(user_id, call, args)
            if isinstance(args, FindRecentMealsArgs):
                return self._find_recent_meals(user_id, call, args)
            if isinstance(args, UpdateMealArgs):
                outcome = await self.mutation_service.apply_mutation(
                    user_id, args.meal_id, args.update_request
                )
                return OperationResult(
                    call_id=call.call_id,
                    name=call.name,
                    payload=outcome.as_payload(),
                    meals=[outcome.meal] if outcome.meal else [],
                )
            if isinstance(args, DailySummaryArgs):
                return self._daily_summary(user_id, call, args)
            if isinstance(args, LogActivityArgs):
                return self._log_activity(user_id, call, args)
            if isinstance(args, FindRecentActivitiesArgs):
                return self._find_recent_activities(user_id, call, args)
            if isinstance(args, UpdateActivityArgs):
                return self._update_activity(user_id, call, args)
            return _failure(call, f"Unsupported operation {call.name}")
        except (StoreUnavailableError, OracleUnavailableError):
            raise
        except Exception as exc:
            _logger.exception("Operation %s failed", call.name)
            return _failure(call, f"Error: {exc}")

    def _log_meal(
        self, user_id: UUID, call: ToolCall, args: LogMealArgs
    ) -> OperationResult:
        logged_at = parse_timestamp(args.logged_at)
        if args.logged_at and logged_at is None:
            _logger.warning("Invalid logged_at %r, using current time", args.logged_at)
        meal = self.meal_service.log_meal(
            user_id,
            meal_type=args.meal_type,
            foods=build_components(args.foods),
            logged_at=logged_at or datetime.now(tz=UTC),
            notes=(args.notes or "").strip(),
        )
        return OperationResult(
            call_id=call.call_id,
            name=call.name,
            payload={
                "success": True,
                "meal_id": meal.id,
                "meal_type": meal.meal_type,
                "totals": meal.totals.as_dict(),
                "message": "Meal logged successfully",
            },
            meals=[meal],
        )

    def lookup_recent_meals(
        self,
        user_id: UUID,
        limit: int | None = None,
        contains_food: str | None = None,
    ) -> list[MealEntry]:
        """Return recent meals and register their ids as looked up."""
        meals = self.meal_service.recent_meals(
            user_id, limit or self.recent_limit, contains_food
        )
        self.registry.remember(user_id, (meal.id for meal in meals))
        return meals

    def _find_recent_meals(
        self, user_id: UUID, call: ToolCall, args: FindRecentMealsArgs
    ) -> OperationResult:
        meals = self.lookup_recent_meals(user_id, args.limit, args.contains_food)
        return OperationResult(
            call_id=call.call_id,
            name=call.name,
            payload={"success": True, "meals": [meal.as_dict() for meal in meals]},
            meals=meals,
        )

    def _daily_summary(
        self, user_id: UUID, call: ToolCall, args: DailySummaryArgs
    ) -> OperationResult:
        day = date.fromisoformat(args.date) if args.date else None
        summary = self.stats_service.get_day(user_id, self.timezone, day)
        return OperationResult(
            call_id=call.call_id,
            name=call.name,
            payload={
                "success": True,
                "date": summary.day.isoformat(),
                "totals": summary.totals.as_dict(),
                "calorie_target": summary.calorie_target,
                "progress": summary.progress,
                "meal_count": len(summary.meals),
                "meals": [meal.as_dict() for meal in summary.meals],
            },
            meals=summary.meals,
        )

    def _log_activity(
        self, user_id: UUID, call: ToolCall, args: LogActivityArgs
    ) -> OperationResult:
        performed_at = parse_timestamp(args.performed_at)
        if args.performed_at and performed_at is None:
            _logger.warning(
                "Invalid performed_at %r, using current time", args.performed_at
            )
        draft = ActivityDraft(
            activity_type=args.activity_type,
            name=args.name.strip(),
            performed_at=performed_at or datetime.now(tz=UTC),
            notes=(args.notes or "").strip(),
            duration_minutes=args.duration_minutes,
            exercises=_exercises(args.exercises or []),
            distance=args.distance,
            distance_unit=(args.distance_unit or "miles") if args.distance else None,
            intensity=args.intensity,
            calories_burned=args.calories_burned,
        )
        activity = self.activity_service.log_activity(user_id, draft)
        payload: dict[str, object] = {
            "success": True,
            "activity_id": activity.id,
            "message": "Activity logged successfully",
        }
        records = personal_records_payload(activity.exercises)
        if records:
            payload["prs_achieved"] = records
        return OperationResult(
            call_id=call.call_id,
            name=call.name,
            payload=payload,
            activities=[activity],
        )

    def _find_recent_activities(
        self, user_id: UUID, call: ToolCall, args: FindRecentActivitiesArgs
    ) -> OperationResult:
        activities = self.activity_service.recent_activities(
            user_id,
            args.limit or self.recent_activity_limit,
            within_minutes=args.within_minutes or self.activity_window_minutes,
            activity_type=args.activity_type,
        )
        return OperationResult(
            call_id=call.call_id,
            name=call.name,
            payload={
                "success": True,
                "activities": [activity.as_dict() for activity in activities],
            },
            activities=activities,
        )

    def _update_activity(
        self, user_id: UUID, call: ToolCall, args: UpdateActivityArgs
    ) -> OperationResult:
        outcome = self.activity_service.add_exercises(
            user_id,
            args.session_id,
            _exercises(args.exercises),
            name=args.name,
            notes=args.notes,
        )
        return OperationResult(
            call_id=call.call_id,
            name=call.name,
            payload=outcome.as_payload(),
            activities=[outcome.activity] if outcome.activity else [],
        )


def _exercises(items: list[ExerciseArgs]) -> list[ExerciseSet]:
    return [
        ExerciseSet(
            name=item.name.strip(),
            sets=item.sets,
            reps=item.reps,
            weight=item.weight,
            unit=item.unit,
        )
        for item in items
    ]


def _failure(call: ToolCall, message: str) -> OperationResult:
    return OperationResult(
        call_id=call.call_id,
        name=call.name,
        payload={"success": False, "message": message},
    )
