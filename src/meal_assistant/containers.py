"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_assistant.adapters.openai_oracle_client import OpenAIOracleClient
from meal_assistant.adapters.supabase_activity_repository import (
    SupabaseActivityRepository,
)
from meal_assistant.adapters.supabase_audit_repository import SupabaseAuditRepository
from meal_assistant.adapters.supabase_meal_repository import SupabaseMealRepository
from meal_assistant.config import Settings
from meal_assistant.services.activities import ActivityLogService
from meal_assistant.services.audit import AuditService
from meal_assistant.services.cache import InMemoryCache
from meal_assistant.services.chat import ChatService
from meal_assistant.services.disambiguation import MealIdentifier
from meal_assistant.services.meals import MealLogService
from meal_assistant.services.mutations import MealMutationService
from meal_assistant.services.operations import OperationSet
from meal_assistant.services.orchestrator import ChatOrchestrator
from meal_assistant.services.pending import (
    InMemoryPendingMutationStore,
    PendingMutationStore,
)
from meal_assistant.services.provenance import LookupIdRegistry
from meal_assistant.services.stats import StatsService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    chat_service: ChatService
    meal_log_service: MealLogService
    activity_service: ActivityLogService
    stats_service: StatsService
    pending_store: PendingMutationStore
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    meal_repository = SupabaseMealRepository(supabase_client)
    audit_repository = SupabaseAuditRepository(supabase_client)
    oracle = OpenAIOracleClient.create(
        api_key=resolved_settings.openai_api_key,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    lookup_cache = InMemoryCache()
    registry = LookupIdRegistry(
        cache=lookup_cache, ttl_seconds=resolved_settings.lookup_id_ttl_seconds
    )
    activity_service = ActivityLogService(
        SupabaseActivityRepository(supabase_client),
        registry=LookupIdRegistry(
            cache=lookup_cache,
            ttl_seconds=resolved_settings.lookup_id_ttl_seconds,
            namespace="activity",
        ),
        pr_history_limit=resolved_settings.pr_history_limit,
    )
    meal_log_service = MealLogService(meal_repository)
    stats_service = StatsService(
        meal_repository, calorie_target=resolved_settings.calorie_target
    )
    mutation_service = MealMutationService(
        oracle=oracle,
        meal_service=meal_log_service,
        registry=registry,
        audit_service=AuditService(audit_repository),
    )
    operations = OperationSet(
        meal_service=meal_log_service,
        stats_service=stats_service,
        mutation_service=mutation_service,
        registry=registry,
        activity_service=activity_service,
        recent_limit=resolved_settings.recent_meals_limit,
        recent_activity_limit=resolved_settings.recent_activities_limit,
        activity_window_minutes=resolved_settings.activity_window_minutes,
        timezone=resolved_settings.timezone,
    )
    orchestrator = ChatOrchestrator(
        oracle=oracle,
        operations=operations,
        identifier=MealIdentifier(oracle, timezone=resolved_settings.timezone),
        mutation_service=mutation_service,
        max_steps=resolved_settings.chat_max_steps,
        context_turns=resolved_settings.context_turns,
        pending_ttl_seconds=resolved_settings.pending_ttl_seconds,
        timezone=resolved_settings.timezone,
    )
    pending_store = InMemoryPendingMutationStore()
    chat_service = ChatService(orchestrator=orchestrator, pending_store=pending_store)

    async def close_resources() -> None:
        await oracle.close()

    return AppContainer(
        settings=resolved_settings,
        chat_service=chat_service,
        meal_log_service=meal_log_service,
        activity_service=activity_service,
        stats_service=stats_service,
        pending_store=pending_store,
        close_resources=close_resources,
    )
