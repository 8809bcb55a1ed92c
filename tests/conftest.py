"""Shared test fixtures."""

import json
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from meal_assistant.config import Settings
from meal_assistant.containers import AppContainer
from meal_assistant.domain.activities import (
    STRENGTH_TRAINING,
    ActivityDraft,
    ActivityEntry,
    ExerciseSet,
)
from meal_assistant.domain.audit import AuditEvent
from meal_assistant.domain.chat import OracleReply, ToolCall, ToolSpec, TranscriptItem
from meal_assistant.domain.meals import MealComponent, MealDraft, MealEntry
from meal_assistant.domain.nutrition import MacroProfile
from meal_assistant.errors import StoreQueryError, StoreUnavailableError
from meal_assistant.services.activities import ActivityLogService, ActivityRepository
from meal_assistant.services.audit import AuditRepository, AuditService
from meal_assistant.services.cache import InMemoryCache
from meal_assistant.services.chat import ChatService
from meal_assistant.services.disambiguation import MealIdentifier
from meal_assistant.services.meals import MealLogService, MealRepository
from meal_assistant.services.mutations import MealMutationService
from meal_assistant.services.operations import OperationSet
from meal_assistant.services.oracle import OracleClient
from meal_assistant.services.orchestrator import ChatOrchestrator
from meal_assistant.services.pending import InMemoryPendingMutationStore
from meal_assistant.services.provenance import LookupIdRegistry
from meal_assistant.services.stats import StatsService

BASE_TIME = datetime(2025, 11, 3, 12, 0, tzinfo=UTC)


@dataclass
class InMemoryMealRepository(MealRepository):
    """In-memory meal repository for tests."""

    meals: dict[str, MealEntry] = field(default_factory=dict)
    unavailable: bool = False
    reject_writes: bool = False
    updates: list[str] = field(default_factory=list)

    def create_meal(self, user_id: UUID, draft: MealDraft) -> MealEntry:
        self._check()
        if self.reject_writes:
            raise StoreQueryError("Store rejected create meal: check constraint")
        meal = MealEntry(
            id=str(uuid4()),
            user_id=user_id,
            meal_type=draft.meal_type,
            foods=list(draft.foods),
            totals=draft.totals,
            logged_at=draft.logged_at,
            created_at=BASE_TIME + timedelta(seconds=len(self.meals)),
            notes=draft.notes,
        )
        self.meals[meal.id] = meal
        return meal

    def get_meal(self, user_id: UUID, meal_id: str) -> MealEntry | None:
        self._check()
        meal = self.meals.get(meal_id)
        if meal is None or meal.user_id != user_id:
            return None
        return meal

    def update_meal(
        self, user_id: UUID, meal_id: str, draft: MealDraft
    ) -> MealEntry | None:
        self._check()
        if self.reject_writes:
            raise StoreQueryError("Store rejected update meal: check constraint")
        existing = self.get_meal(user_id, meal_id)
        if existing is None:
            return None
        updated = replace(
            existing,
            meal_type=draft.meal_type,
            foods=list(draft.foods),
            totals=draft.totals,
            logged_at=draft.logged_at,
            notes=draft.notes,
            updated_at=datetime.now(tz=UTC),
        )
        self.meals[meal_id] = updated
        self.updates.append(meal_id)
        return updated

    def list_recent_meals(self, user_id: UUID, limit: int) -> list[MealEntry]:
        self._check()
        owned = [meal for meal in self.meals.values() if meal.user_id == user_id]
        owned.sort(key=lambda meal: meal.created_at, reverse=True)
        return owned[:limit]

    def list_meals_between(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> list[MealEntry]:
        self._check()
        return [
            meal
            for meal in self.meals.values()
            if meal.user_id == user_id and start <= meal.logged_at < end
        ]

    def _check(self) -> None:
        if self.unavailable:
            raise StoreUnavailableError("store offline")


@dataclass
class InMemoryActivityRepository(ActivityRepository):
    """In-memory activity repository for tests."""

    activities: dict[str, ActivityEntry] = field(default_factory=dict)
    unavailable: bool = False
    updates: list[str] = field(default_factory=list)

    def create_activity(self, user_id: UUID, draft: ActivityDraft) -> ActivityEntry:
        self._check()
        activity = ActivityEntry(
            id=str(uuid4()),
            user_id=user_id,
            activity_type=draft.activity_type,
            name=draft.name,
            performed_at=draft.performed_at,
            created_at=BASE_TIME + timedelta(seconds=len(self.activities)),
            notes=draft.notes,
            duration_minutes=draft.duration_minutes,
            exercises=list(draft.exercises),
            distance=draft.distance,
            distance_unit=draft.distance_unit,
            intensity=draft.intensity,
            calories_burned=draft.calories_burned,
        )
        self.activities[activity.id] = activity
        return activity

    def get_activity(self, user_id: UUID, activity_id: str) -> ActivityEntry | None:
        self._check()
        activity = self.activities.get(activity_id)
        if activity is None or activity.user_id != user_id:
            return None
        return activity

    def update_activity(
        self, user_id: UUID, activity_id: str, draft: ActivityDraft
    ) -> ActivityEntry | None:
        self._check()
        existing = self.get_activity(user_id, activity_id)
        if existing is None:
            return None
        updated = replace(
            existing,
            name=draft.name,
            notes=draft.notes,
            exercises=list(draft.exercises),
            updated_at=datetime.now(tz=UTC),
        )
        self.activities[activity_id] = updated
        self.updates.append(activity_id)
        return updated

    def list_recent_activities(
        self, user_id: UUID, limit: int, activity_type: str | None = None
    ) -> list[ActivityEntry]:
        self._check()
        owned = [
            activity
            for activity in self.activities.values()
            if activity.user_id == user_id
            and (activity_type is None or activity.activity_type == activity_type)
        ]
        owned.sort(key=lambda activity: activity.performed_at, reverse=True)
        return owned[:limit]

    def _check(self) -> None:
        if self.unavailable:
            raise StoreUnavailableError("store offline")


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit repository for tests."""

    events: list[AuditEvent] = field(default_factory=list)
    fail: bool = False

    def create_event(self, event: AuditEvent) -> None:
        if self.fail:
            raise RuntimeError("audit table missing")
        self.events.append(event)


@dataclass
class FakeOracleClient(OracleClient):
    """Scripted oracle that replays queued replies and records calls."""

    replies: list[OracleReply] = field(default_factory=list)
    structured: list[str] = field(default_factory=list)
    respond_calls: list[list[TranscriptItem]] = field(default_factory=list)
    structured_calls: list[dict[str, object]] = field(default_factory=list)
    tools_seen: list[list[ToolSpec]] = field(default_factory=list)
    error: Exception | None = None

    async def respond(
        self,
        *,
        instructions: str,
        transcript: list[TranscriptItem],
        tools: list[ToolSpec],
    ) -> OracleReply:
        if self.error is not None:
            raise self.error
        self.respond_calls.append(list(transcript))
        self.tools_seen.append(tools)
        if not self.replies:
            return OracleReply(text="(no scripted reply)")
        return self.replies.pop(0)

    async def generate_structured(
        self,
        *,
        instructions: str,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
    ) -> str:
        if self.error is not None:
            raise self.error
        self.structured_calls.append(
            {"instructions": instructions, "prompt": prompt, "schema_name": schema_name}
        )
        if not self.structured:
            return ""
        return self.structured.pop(0)


def food(  # noqa: PLR0913
    name: str,
    quantity: str,
    calories: float,
    protein_g: float,
    carbs_g: float,
    fat_g: float,
    fiber_g: float = 0.0,
) -> MealComponent:
    return MealComponent(
        name=name,
        quantity=quantity,
        macros=MacroProfile(calories, protein_g, carbs_g, fat_g, fiber_g),
    )


def food_json(  # noqa: PLR0913
    name: str,
    quantity: str,
    calories: float,
    protein_g: float,
    carbs_g: float,
    fat_g: float,
    fiber_g: float = 0.0,
) -> dict[str, object]:
    return {
        "name": name,
        "quantity": quantity,
        "calories": calories,
        "protein_g": protein_g,
        "carbs_g": carbs_g,
        "fat_g": fat_g,
        "fiber_g": fiber_g,
    }


def replacement_json(
    meal_type: str,
    foods: list[dict[str, object]],
    changes_summary: str,
    logged_at: str | None = None,
    notes: str | None = None,
) -> str:
    totals = {
        name: sum(float(item[name]) for item in foods)
        for name in ("calories", "protein_g", "carbs_g", "fat_g", "fiber_g")
    }
    return json.dumps(
        {
            "meal_type": meal_type,
            "foods": foods,
            "totals": totals,
            "notes": notes,
            "logged_at": logged_at,
            "changes_summary": changes_summary,
        }
    )


def tool_call(name: str, /, call_id: str = "call-1", **arguments: object) -> ToolCall:
    return ToolCall(call_id=call_id, name=name, arguments=dict(arguments))


def eggs_breakfast(
    repository: InMemoryMealRepository,
    user_id: UUID,
    logged_at: datetime = BASE_TIME,
) -> MealEntry:
    return repository.create_meal(
        user_id,
        MealDraft(
            meal_type="breakfast",
            foods=[food("eggs", "2 eggs", 180, 12, 1, 14)],
            logged_at=logged_at,
        ),
    )


def exercise(
    name: str, sets: int, reps: int, weight: float, unit: str = "lbs"
) -> ExerciseSet:
    return ExerciseSet(name=name, sets=sets, reps=reps, weight=weight, unit=unit)


def strength_session(
    repository: InMemoryActivityRepository,
    user_id: UUID,
    exercises: list[ExerciseSet],
    performed_at: datetime,
    name: str = "Chest Workout",
) -> ActivityEntry:
    return repository.create_activity(
        user_id,
        ActivityDraft(
            activity_type=STRENGTH_TRAINING,
            name=name,
            performed_at=performed_at,
            exercises=exercises,
        ),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def meal_repository() -> InMemoryMealRepository:
    return InMemoryMealRepository()


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def oracle() -> FakeOracleClient:
    return FakeOracleClient()


@pytest.fixture
def registry() -> LookupIdRegistry:
    return LookupIdRegistry(cache=InMemoryCache())


@pytest.fixture
def activity_repository() -> InMemoryActivityRepository:
    return InMemoryActivityRepository()


@pytest.fixture
def activity_registry() -> LookupIdRegistry:
    return LookupIdRegistry(cache=InMemoryCache(), namespace="activity")


@pytest.fixture
def activity_service(
    activity_repository: InMemoryActivityRepository,
    activity_registry: LookupIdRegistry,
) -> ActivityLogService:
    return ActivityLogService(activity_repository, registry=activity_registry)


@pytest.fixture
def meal_log_service(meal_repository: InMemoryMealRepository) -> MealLogService:
    return MealLogService(meal_repository)


@pytest.fixture
def stats_service(meal_repository: InMemoryMealRepository) -> StatsService:
    return StatsService(meal_repository)


@pytest.fixture
def mutation_service(
    oracle: FakeOracleClient,
    meal_log_service: MealLogService,
    registry: LookupIdRegistry,
    audit_repository: InMemoryAuditRepository,
) -> MealMutationService:
    return MealMutationService(
        oracle=oracle,
        meal_service=meal_log_service,
        registry=registry,
        audit_service=AuditService(audit_repository),
    )


@pytest.fixture
def operations(
    meal_log_service: MealLogService,
    stats_service: StatsService,
    mutation_service: MealMutationService,
    registry: LookupIdRegistry,
    activity_service: ActivityLogService,
) -> OperationSet:
    return OperationSet(
        meal_service=meal_log_service,
        stats_service=stats_service,
        mutation_service=mutation_service,
        registry=registry,
        activity_service=activity_service,
    )


@pytest.fixture
def orchestrator(
    oracle: FakeOracleClient,
    operations: OperationSet,
    mutation_service: MealMutationService,
) -> ChatOrchestrator:
    return ChatOrchestrator(
        oracle=oracle,
        operations=operations,
        identifier=MealIdentifier(oracle),
        mutation_service=mutation_service,
    )


@pytest.fixture
def pending_store() -> InMemoryPendingMutationStore:
    return InMemoryPendingMutationStore()


@pytest.fixture
def chat_service(
    orchestrator: ChatOrchestrator, pending_store: InMemoryPendingMutationStore
) -> ChatService:
    return ChatService(orchestrator=orchestrator, pending_store=pending_store)


@pytest.fixture
def container(
    settings: Settings,
    chat_service: ChatService,
    meal_log_service: MealLogService,
    activity_service: ActivityLogService,
    stats_service: StatsService,
    pending_store: InMemoryPendingMutationStore,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        chat_service=chat_service,
        meal_log_service=meal_log_service,
        activity_service=activity_service,
        stats_service=stats_service,
        pending_store=pending_store,
        close_resources=close_resources,
    )
