"""Apply natural-language changes to a logged meal."""

import json
import logging
from dataclasses import dataclass
from uuid import UUID

from meal_assistant.domain.meals import (
    MEAL_TYPES,
    NOT_FOUND,
    UNPARSEABLE_CHANGE,
    UNVERIFIED_ID,
    MealDraft,
    MealEntry,
    MutationOutcome,
)
from meal_assistant.domain.oracle import MealReplacement
from meal_assistant.errors import MalformedOracleOutputError
from meal_assistant.services.audit import AuditService
from meal_assistant.services.formatting import format_macros
from meal_assistant.services.meals import (
    MealLogService,
    build_components,
    parse_timestamp,
)
from meal_assistant.services.oracle import OracleClient, parse_structured
from meal_assistant.services.provenance import LookupIdRegistry, looks_fabricated

_logger = logging.getLogger(__name__)

TOTALS_TOLERANCE = 0.5

_FOOD_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "quantity": {"type": "string"},
        "calories": {"type": "number"},
        "protein_g": {"type": "number"},
        "carbs_g": {"type": "number"},
        "fat_g": {"type": "number"},
        "fiber_g": {"type": "number"},
    },
    "required": [
        "name",
        "quantity",
        "calories",
        "protein_g",
        "carbs_g",
        "fat_g",
        "fiber_g",
    ],
    "additionalProperties": False,
}

MEAL_REPLACEMENT_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "meal_type": {"type": "string", "enum": list(MEAL_TYPES)},
        "foods": {"type": "array", "items": _FOOD_SCHEMA},
        "totals": {
            "type": "object",
            "properties": {
                "calories": {"type": "number"},
                "protein_g": {"type": "number"},
                "carbs_g": {"type": "number"},
                "fat_g": {"type": "number"},
                "fiber_g": {"type": "number"},
            },
            "required": ["calories", "protein_g", "carbs_g", "fat_g", "fiber_g"],
            "additionalProperties": False,
        },
        "notes": {"anyOf": [{"type": "string"}, {"type": "null"}]},
        "logged_at": {"anyOf": [{"type": "string"}, {"type": "null"}]},
        "changes_summary": {"type": "string"},
    },
    "required": [
        "meal_type",
        "foods",
        "totals",
        "notes",
        "logged_at",
        "changes_summary",
    ],
    "additionalProperties": False,
}

MUTATION_INSTRUCTIONS = """You update a meal the user already logged.

Read the existing meal exactly as given, work out what the user wants to change,
and return the COMPLETE updated meal: every food that should remain, not only the
changed ones.

Rules:
- Changing only the meal type keeps every food and macro identical.
- "half" or "only half": halve every quantity and every macro value.
- "add <food>": append that food with your best macro estimate.
- "no <food>" or removing a food: drop it from the list.
- Note changes only touch the notes field; keep existing notes otherwise.
- If the user corrects when they ate, set logged_at to an ISO 8601 timestamp;
  otherwise return null for logged_at.
- Totals must be the sum of the foods.
- changes_summary is one short sentence describing what changed.
Return JSON only."""

NOT_FOUND_MESSAGE = (
    "Meal not found. It may have been deleted or the ID is incorrect. "
    "Call find_recent_meals to look it up again."
)
FABRICATED_ID_MESSAGE = (
    "ERROR: That meal ID was not returned by a meal lookup. "
    "Call find_recent_meals first and use an ID from its results."
)


@dataclass
class MealMutationService:
    """Produces a full replacement meal from a change request and persists it."""

    oracle: OracleClient
    meal_service: MealLogService
    registry: LookupIdRegistry
    audit_service: AuditService

    def is_verified(self, user_id: UUID, meal_id: str) -> bool:
        """Return true when the id came from a meal lookup for this owner."""
        if looks_fabricated(meal_id):
            return False
        return self.registry.is_known(user_id, meal_id)

    async def apply_mutation(
        self, user_id: UUID, meal_id: str, mutation_description: str
    ) -> MutationOutcome:
        """Apply a natural-language change to a meal the user looked up."""
        if not self.is_verified(user_id, meal_id):
            _logger.warning(
                "Rejected unverified meal id: user_id=%s meal_id=%s", user_id, meal_id
            )
            return MutationOutcome(
                success=False, summary=FABRICATED_ID_MESSAGE, error=UNVERIFIED_ID
            )

        existing = self.meal_service.get_meal(user_id, meal_id)
        if existing is None:
            _logger.warning("Meal not found: user_id=%s meal_id=%s", user_id, meal_id)
            self.registry.forget(user_id, meal_id)
            return MutationOutcome(
                success=False, summary=NOT_FOUND_MESSAGE, error=NOT_FOUND
            )

        raw = await self.oracle.generate_structured(
            instructions=MUTATION_INSTRUCTIONS,
            prompt=_build_prompt(existing, mutation_description),
            schema=MEAL_REPLACEMENT_SCHEMA,
            schema_name="meal_replacement",
        )
        try:
            replacement = parse_structured(raw, MealReplacement)
        except MalformedOracleOutputError as exc:
            _logger.warning("Meal replacement rejected: %s", exc)
            return MutationOutcome(
                success=False,
                summary=(
                    "I couldn't work out that change. "
                    "Could you rephrase what you'd like to update?"
                ),
                error=UNPARSEABLE_CHANGE,
            )

        draft = _to_draft(existing, replacement)
        _check_reported_totals(meal_id, draft, replacement)
        updated = self.meal_service.replace_meal(user_id, meal_id, draft)
        if updated is None:
            self.registry.forget(user_id, meal_id)
            return MutationOutcome(
                success=False, summary=NOT_FOUND_MESSAGE, error=NOT_FOUND
            )

        try:
            self.audit_service.record_meal_update(
                user_id,
                meal_id,
                before=existing.as_dict(),
                after=updated.as_dict(),
                changes_summary=replacement.changes_summary,
            )
        except Exception:
            _logger.exception("Failed to record audit event for meal %s", meal_id)

        _logger.info(
            "Meal updated: user_id=%s meal_id=%s calories=%.0f->%.0f",
            user_id,
            meal_id,
            existing.totals.calories,
            updated.totals.calories,
        )
        return MutationOutcome(
            success=True,
            summary=_summary(updated, replacement.changes_summary),
            meal=updated,
        )


def _build_prompt(existing: MealEntry, mutation_description: str) -> str:
    return (
        f"EXISTING MEAL:\n{json.dumps(existing.as_dict(), indent=2)}\n\n"
        f'USER UPDATE REQUEST:\n"{mutation_description}"'
    )


def _to_draft(existing: MealEntry, replacement: MealReplacement) -> MealDraft:
    logged_at = parse_timestamp(replacement.logged_at) or existing.logged_at
    return MealDraft(
        meal_type=replacement.meal_type,
        foods=build_components(replacement.foods),
        logged_at=logged_at,
        notes=(replacement.notes or "").strip(),
    )


def _check_reported_totals(
    meal_id: str, draft: MealDraft, replacement: MealReplacement
) -> None:
    computed = draft.totals.as_dict()
    reported = replacement.totals.model_dump()
    drift = {
        name: (reported[name], value)
        for name, value in computed.items()
        if abs(reported[name] - value) > TOTALS_TOLERANCE
    }
    if drift:
        _logger.warning(
            "Model totals disagree with food sums for meal %s, using sums: %s",
            meal_id,
            drift,
        )


def _summary(meal: MealEntry, changes_summary: str) -> str:
    changes = changes_summary.strip() or "Your meal has been updated."
    return (
        f"Updated! {changes} Your {meal.meal_type} is now "
        f"{format_macros(meal.totals)}."
    )
