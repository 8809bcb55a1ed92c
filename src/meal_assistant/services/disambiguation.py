"""Resolve which recent meal the user is referring to."""

import json
import logging
from dataclasses import dataclass

from meal_assistant.domain.chat import ChatMessage
from meal_assistant.domain.meals import MealEntry
from meal_assistant.domain.oracle import MealIdentification
from meal_assistant.errors import MalformedOracleOutputError
from meal_assistant.services.formatting import (
    describe_meal,
    format_foods,
    format_macros,
    format_time,
)
from meal_assistant.services.oracle import OracleClient, parse_structured

_logger = logging.getLogger(__name__)

IDENTIFICATION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "target_id": {"type": "string"},
        "confidence": {"type": "string", "enum": ["high", "medium", "low"]},
        "rationale": {"type": "string"},
        "response_text": {"type": "string"},
    },
    "required": ["target_id", "confidence", "rationale", "response_text"],
    "additionalProperties": False,
}

IDENTIFICATION_INSTRUCTIONS = (
    "You match a user's request to one of their recently logged meals. "
    "Read the recent conversation, the user's latest message and the candidate "
    "meals. Pick exactly one candidate and copy its id verbatim into target_id; "
    "never invent an id. When the user refers to the meal only as 'that' or 'it' "
    "with no other detail, pick the most recently created candidate (the first "
    "one in the list). Set confidence to high, medium or low. In response_text, "
    "describe the chosen meal (meal type, time, foods and calories with protein, "
    "carbs, fat and fiber), state the change you are about to make with the "
    "resulting macros, and ask the user to confirm. Return JSON only."
)


@dataclass(frozen=True)
class Identification:
    """Outcome of disambiguation; target_id is None when the user must choose."""

    target_id: str | None
    confidence: str
    rationale: str
    response_text: str


@dataclass
class MealIdentifier:
    """Turns a list of candidate meals into the single meal the user means."""

    oracle: OracleClient
    timezone: str = "UTC"

    async def identify(
        self,
        candidates: list[MealEntry],
        recent_messages: list[ChatMessage],
        user_text: str,
    ) -> Identification | None:
        """Return the identified meal, a pick-list fallback, or None when empty."""
        if not candidates:
            return None
        if len(candidates) == 1:
            return self._single(candidates[0])

        prompt = _build_prompt(candidates, recent_messages, user_text, self.timezone)
        raw = await self.oracle.generate_structured(
            instructions=IDENTIFICATION_INSTRUCTIONS,
            prompt=prompt,
            schema=IDENTIFICATION_SCHEMA,
            schema_name="meal_identification",
        )
        try:
            result = parse_structured(raw, MealIdentification)
        except MalformedOracleOutputError as exc:
            _logger.warning("Meal identification unparseable: %s", exc)
            return self._pick_list(candidates, "unparseable identification")

        candidate_ids = {meal.id for meal in candidates}
        if result.target_id not in candidate_ids:
            _logger.warning(
                "Meal identification chose unknown id: %s", result.target_id
            )
            return self._pick_list(candidates, "identified id not among candidates")
        return Identification(
            target_id=result.target_id,
            confidence=result.confidence,
            rationale=result.rationale,
            response_text=result.response_text,
        )

    def _single(self, meal: MealEntry) -> Identification:
        return Identification(
            target_id=meal.id,
            confidence="high",
            rationale="only one recent meal",
            response_text=(
                f"I found {describe_meal(meal, self.timezone)}. "
                "What would you like to change about it?"
            ),
        )

    def _pick_list(self, candidates: list[MealEntry], reason: str) -> Identification:
        lines = ["I found several recent meals and I'm not sure which one you mean:"]
        for index, meal in enumerate(candidates, start=1):
            lines.append(
                f"{index}. {meal.meal_type.capitalize()} "
                f"({format_time(meal.logged_at, self.timezone)}): "
                f"{format_foods(meal.foods)}, {meal.totals.calories:.0f} cal"
            )
        lines.append("Which one should I change?")
        return Identification(
            target_id=None,
            confidence="low",
            rationale=reason,
            response_text="\n".join(lines),
        )


def _build_prompt(
    candidates: list[MealEntry],
    recent_messages: list[ChatMessage],
    user_text: str,
    timezone_name: str,
) -> str:
    conversation = "\n".join(
        f"{message.role}: {message.content}" for message in recent_messages
    )
    rendered = [
        {
            "id": meal.id,
            "meal_type": meal.meal_type,
            "time": format_time(meal.logged_at, timezone_name),
            "foods": [
                f"{food.quantity} {food.name} ({format_macros(food.macros)})"
                for food in meal.foods
            ],
            "totals": format_macros(meal.totals),
        }
        for meal in candidates
    ]
    return (
        f"RECENT CONVERSATION:\n{conversation or '(none)'}\n\n"
        f'USER MESSAGE:\n"{user_text}"\n\n'
        "CANDIDATE MEALS (newest first):\n"
        f"{json.dumps(rendered, indent=2)}"
    )
