"""Tests for applying natural-language meal changes."""

import asyncio
from datetime import UTC, datetime

import pytest

from meal_assistant.errors import OracleUnavailableError
from meal_assistant.services.mutations import (
    FABRICATED_ID_MESSAGE,
    NOT_FOUND_MESSAGE,
    MealMutationService,
)
from meal_assistant.services.provenance import LookupIdRegistry
from tests.conftest import (
    FakeOracleClient,
    InMemoryAuditRepository,
    InMemoryMealRepository,
    eggs_breakfast,
    food_json,
    replacement_json,
)


def test_half_portion_scales_totals(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [meal.id])
    oracle.structured.append(
        replacement_json(
            "breakfast",
            [food_json("eggs", "1 egg", 90, 6, 0.5, 7)],
            "Halved the eggs.",
        )
    )

    outcome = asyncio.run(
        mutation_service.apply_mutation(user_id, meal.id, "I only had half")
    )

    assert outcome.success
    assert outcome.meal is not None
    assert outcome.meal.totals.calories == 90
    assert outcome.meal.totals.protein_g == 6
    assert meal_repository.meals[meal.id].totals.calories == 90
    assert outcome.summary.startswith("Updated! Halved the eggs.")
    assert "I only had half" in str(oracle.structured_calls[0]["prompt"])


def test_meal_type_change_keeps_totals(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    user_id,
) -> None:
    breakfast = eggs_breakfast(meal_repository, user_id)
    eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [breakfast.id])
    oracle.structured.append(
        replacement_json(
            "lunch",
            [food_json("eggs", "2 eggs", 180, 12, 1, 14)],
            "Changed the meal to lunch.",
        )
    )

    outcome = asyncio.run(
        mutation_service.apply_mutation(
            user_id, breakfast.id, "change the breakfast one to lunch"
        )
    )

    assert outcome.success
    assert outcome.meal is not None
    assert outcome.meal.meal_type == "lunch"
    assert outcome.meal.totals == breakfast.totals
    assert outcome.meal.logged_at == breakfast.logged_at


def test_adding_food_appends_component(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    audit_repository: InMemoryAuditRepository,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [meal.id])
    oracle.structured.append(
        replacement_json(
            "breakfast",
            [
                food_json("eggs", "2 eggs", 180, 12, 1, 14),
                food_json("granola bar", "1 bar", 150, 3, 22, 6, 2),
            ],
            "Added a granola bar.",
        )
    )

    outcome = asyncio.run(
        mutation_service.apply_mutation(
            user_id, meal.id, "add a 150-calorie snack item"
        )
    )

    assert outcome.meal is not None
    assert len(outcome.meal.foods) == len(meal.foods) + 1
    assert outcome.meal.totals.calories == pytest.approx(330)
    event = audit_repository.events[0]
    assert event.event_type == "meal.updated"
    assert event.entity_id == meal.id
    assert event.before is not None
    assert event.before["totals"]["calories"] == 180
    assert event.metadata == {"changes_summary": "Added a granola bar."}


def test_totals_are_recomputed_from_foods(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [meal.id])
    raw = replacement_json(
        "breakfast", [food_json("eggs", "3 eggs", 270, 18, 1.5, 21)], "Three eggs."
    ).replace('"calories": 270.0', '"calories": 999.0')
    oracle.structured.append(raw)

    outcome = asyncio.run(
        mutation_service.apply_mutation(user_id, meal.id, "it was three eggs")
    )

    assert outcome.meal is not None
    assert outcome.meal.totals.calories == 270


def test_logged_at_correction(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [meal.id])
    oracle.structured.append(
        replacement_json(
            "breakfast",
            [food_json("eggs", "2 eggs", 180, 12, 1, 14)],
            "Moved to 7am.",
            logged_at="2025-11-03T07:00:00Z",
        )
    )

    outcome = asyncio.run(
        mutation_service.apply_mutation(user_id, meal.id, "I ate it at 7am")
    )

    assert outcome.meal is not None
    assert outcome.meal.logged_at == datetime(2025, 11, 3, 7, 0, tzinfo=UTC)


@pytest.mark.parametrize("meal_id", ["xyz789", "abc123", "meal_placeholder"])
def test_placeholder_ids_never_reach_store(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    user_id,
    meal_id: str,
) -> None:
    registry.remember(user_id, [meal_id])
    meal_repository.unavailable = True

    outcome = asyncio.run(mutation_service.apply_mutation(user_id, meal_id, "half"))

    assert not outcome.success
    assert outcome.summary == FABRICATED_ID_MESSAGE
    assert oracle.structured_calls == []


def test_unlisted_id_is_rejected(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    oracle: FakeOracleClient,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)

    outcome = asyncio.run(mutation_service.apply_mutation(user_id, meal.id, "half"))

    assert not outcome.success
    assert outcome.summary == FABRICATED_ID_MESSAGE
    assert meal_repository.updates == []


def test_missing_meal_reports_not_found(
    mutation_service: MealMutationService,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    user_id,
) -> None:
    meal_id = "00000000-0000-0000-0000-000000000001"
    registry.remember(user_id, [meal_id])

    outcome = asyncio.run(mutation_service.apply_mutation(user_id, meal_id, "half"))

    assert not outcome.success
    assert outcome.summary == NOT_FOUND_MESSAGE
    assert oracle.structured_calls == []


def test_malformed_replacement_leaves_meal_untouched(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    audit_repository: InMemoryAuditRepository,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [meal.id])
    oracle.structured.append('{"meal_type": "brunch", "foods": []}')

    outcome = asyncio.run(mutation_service.apply_mutation(user_id, meal.id, "half"))

    assert not outcome.success
    assert "rephrase" in outcome.summary
    assert meal_repository.meals[meal.id] == meal
    assert audit_repository.events == []


def test_audit_failure_does_not_fail_update(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    audit_repository: InMemoryAuditRepository,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [meal.id])
    audit_repository.fail = True
    oracle.structured.append(
        replacement_json(
            "dinner", [food_json("eggs", "2 eggs", 180, 12, 1, 14)], "Now dinner."
        )
    )

    outcome = asyncio.run(mutation_service.apply_mutation(user_id, meal.id, "dinner"))

    assert outcome.success


def test_oracle_outage_propagates(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    oracle: FakeOracleClient,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [meal.id])
    oracle.error = OracleUnavailableError("timeout")

    with pytest.raises(OracleUnavailableError):
        asyncio.run(mutation_service.apply_mutation(user_id, meal.id, "half"))


def test_not_found_forgets_stale_id(
    mutation_service: MealMutationService,
    meal_repository: InMemoryMealRepository,
    registry: LookupIdRegistry,
    user_id,
) -> None:
    meal = eggs_breakfast(meal_repository, user_id)
    registry.remember(user_id, [meal.id])
    del meal_repository.meals[meal.id]

    asyncio.run(mutation_service.apply_mutation(user_id, meal.id, "half"))

    assert not registry.is_known(user_id, meal.id)
