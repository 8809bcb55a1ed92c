"""Per-turn driver that runs the model through operations to one reply."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from meal_assistant.domain.chat import (
    ChatMessage,
    OracleReply,
    ToolResult,
    TranscriptItem,
)
from meal_assistant.domain.meals import NOT_FOUND, UNVERIFIED_ID
from meal_assistant.domain.pending import PendingMutation
from meal_assistant.services.confirmation import Confirmation, classify_confirmation
from meal_assistant.services.disambiguation import MealIdentifier
from meal_assistant.services.formatting import (
    describe_activity,
    format_macros,
    format_personal_records,
)
from meal_assistant.services.mutations import MealMutationService
from meal_assistant.services.operations import (
    FIND_RECENT_ACTIVITIES,
    FIND_RECENT_MEALS,
    GET_DAILY_SUMMARY,
    LOG_ACTIVITY,
    LOG_MEAL,
    UPDATE_ACTIVITY,
    UPDATE_MEAL,
    OperationResult,
    OperationSet,
)
from meal_assistant.services.oracle import OracleClient
from meal_assistant.services.pending import (
    DEFAULT_PENDING_TTL_SECONDS,
    active_pending,
    create_pending,
)
from meal_assistant.services.prompts import SYSTEM_PROMPT

_logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 10
DEFAULT_CONTEXT_TURNS = 5
GENERIC_ACKNOWLEDGEMENT = "Got it! Anything else you'd like to log or change?"
NOTHING_FOUND = (
    "I couldn't find any recent meals to change. "
    "Could you tell me which meal you mean?"
)
TARGET_LOST = (
    "I couldn't find that meal anymore, so nothing was changed. "
    "Could you tell me again which meal you'd like to update?"
)
NO_RECENT_SESSION = (
    "I don't see a workout from the last hour. "
    "Should I log this as a new session?"
)


@dataclass(frozen=True)
class TurnResult:
    """Reply text plus the pending mutation to carry into the next turn."""

    response_text: str
    pending_mutation: PendingMutation | None = None


@dataclass
class ChatOrchestrator:
    """Runs one user turn: confirmation shortcut or the bounded model loop."""

    oracle: OracleClient
    operations: OperationSet
    identifier: MealIdentifier
    mutation_service: MealMutationService
    max_steps: int = DEFAULT_MAX_STEPS
    context_turns: int = DEFAULT_CONTEXT_TURNS
    pending_ttl_seconds: int = DEFAULT_PENDING_TTL_SECONDS
    timezone: str = "UTC"
    instructions: str = SYSTEM_PROMPT

    async def run_turn(
        self,
        messages: list[ChatMessage],
        user_id: UUID,
        pending: PendingMutation | None = None,
    ) -> TurnResult:
        """Produce the reply for the latest user message."""
        now = datetime.now(tz=UTC)
        pending = active_pending(pending, user_id, now)
        latest = _latest_user_text(messages)

        if pending is not None:
            confirmation = classify_confirmation(latest)
            if confirmation is Confirmation.AFFIRMATIVE:
                return await self._apply_confirmed(user_id, pending)
            if confirmation is Confirmation.NEGATIVE:
                _logger.info("Pending change discarded: user_id=%s", user_id)
                pending = None

        return await self._run_model(messages, user_id, latest, pending)

    def untouched_pending(
        self,
        messages: list[ChatMessage],
        user_id: UUID,
        pending: PendingMutation | None,
    ) -> PendingMutation | None:
        """Return the pending change if this turn neither confirms nor rejects it."""
        pending = active_pending(pending, user_id, datetime.now(tz=UTC))
        if pending is None:
            return None
        if classify_confirmation(_latest_user_text(messages)) is not None:
            return None
        return pending

    async def _apply_confirmed(
        self, user_id: UUID, pending: PendingMutation
    ) -> TurnResult:
        _logger.info(
            "Applying confirmed change: user_id=%s meal_id=%s",
            user_id,
            pending.target_id,
        )
        if not self.mutation_service.is_verified(user_id, pending.target_id):
            # Caller-carried changes can outlive the in-process id registry.
            self.operations.lookup_recent_meals(user_id)
        outcome = await self.mutation_service.apply_mutation(
            user_id, pending.target_id, pending.mutation_description
        )
        if outcome.error in (UNVERIFIED_ID, NOT_FOUND):
            _logger.warning(
                "Confirmed change lost its meal: user_id=%s meal_id=%s error=%s",
                user_id,
                pending.target_id,
                outcome.error,
            )
            return TurnResult(response_text=TARGET_LOST)
        return TurnResult(response_text=outcome.summary)

    async def _run_model(
        self,
        messages: list[ChatMessage],
        user_id: UUID,
        latest: str,
        pending: PendingMutation | None,
    ) -> TurnResult:
        transcript: list[TranscriptItem] = list(messages)
        tools = self.operations.catalog()
        texts: list[str] = []
        executed: list[OperationResult] = []
        final_text = ""

        for step in range(self.max_steps):
            reply = await self.oracle.respond(
                instructions=self.instructions, transcript=transcript, tools=tools
            )
            text = reply.text.strip()
            if text:
                texts.append(text)
            if not reply.tool_calls:
                final_text = text
                break
            _record_step(transcript, reply)
            results = await asyncio.gather(
                *(self.operations.execute(user_id, call) for call in reply.tool_calls)
            )
            for result in results:
                transcript.append(
                    ToolResult(
                        call_id=result.call_id, name=result.name, output=result.payload
                    )
                )
            executed.extend(results)
            _logger.info(
                "Step %s executed: %s",
                step + 1,
                ", ".join(result.name for result in results),
            )
        else:
            _logger.warning(
                "Step budget of %s exhausted for user_id=%s", self.max_steps, user_id
            )
            texts = []

        pending = _carry_pending(pending, executed)
        if final_text:
            return TurnResult(response_text=final_text, pending_mutation=pending)
        if texts:
            return TurnResult(
                response_text="\n\n".join(texts), pending_mutation=pending
            )

        last = executed[-1] if executed else None
        return await self._silent_fallback(messages, user_id, latest, last, pending)

    async def _silent_fallback(
        self,
        messages: list[ChatMessage],
        user_id: UUID,
        latest: str,
        last: OperationResult | None,
        pending: PendingMutation | None,
    ) -> TurnResult:
        """Build a reply when the model requested operations but wrote nothing."""
        if last is None:
            return TurnResult(GENERIC_ACKNOWLEDGEMENT, pending)
        _logger.info("Model produced no text after %s; using fallback", last.name)

        if last.name == FIND_RECENT_MEALS:
            if not last.succeeded:
                return TurnResult(_failure_text("look up your meals", last), pending)
            identification = await self.identifier.identify(
                last.meals, messages[-self.context_turns :], latest
            )
            if identification is None:
                return TurnResult(NOTHING_FOUND, pending)
            if identification.target_id is None:
                return TurnResult(identification.response_text, pending)
            created = create_pending(
                user_id,
                target_id=identification.target_id,
                mutation_description=latest,
                confidence=identification.confidence,
                now=datetime.now(tz=UTC),
                ttl_seconds=self.pending_ttl_seconds,
            )
            return TurnResult(identification.response_text, created)

        if last.name == LOG_MEAL:
            if not last.succeeded:
                return TurnResult(_failure_text("log that meal", last), pending)
            meal = last.meals[0]
            return TurnResult(
                f"Logged your {meal.meal_type}: {format_macros(meal.totals)}.",
                pending,
            )

        if last.name == UPDATE_MEAL:
            message = str(last.payload.get("message") or "")
            if not last.succeeded:
                return TurnResult(_failure_text("update that meal", last), pending)
            return TurnResult(message or "Your meal has been updated.", pending)

        if last.name == GET_DAILY_SUMMARY and last.succeeded:
            return TurnResult(_daily_summary_text(last.payload), pending)

        if last.name == LOG_ACTIVITY:
            if not last.succeeded:
                return TurnResult(_failure_text("log that activity", last), pending)
            activity = last.activities[0]
            return TurnResult(
                _with_records(f"Logged your {activity.name}!", last.payload),
                pending,
            )

        if last.name == FIND_RECENT_ACTIVITIES:
            if not last.succeeded:
                return TurnResult(_failure_text("look up your workouts", last), pending)
            if not last.activities:
                return TurnResult(NO_RECENT_SESSION, pending)
            latest_session = describe_activity(last.activities[0], self.timezone)
            return TurnResult(
                f"I found {latest_session}. Would you like to add this to it?",
                pending,
            )

        if last.name == UPDATE_ACTIVITY:
            if not last.succeeded:
                return TurnResult(_failure_text("update that workout", last), pending)
            activity = last.activities[0]
            text = (
                f"Added to your {activity.name}! "
                f"Total volume now: {activity.total_volume:,.0f}."
            )
            return TurnResult(_with_records(text, last.payload), pending)

        return TurnResult(GENERIC_ACKNOWLEDGEMENT, pending)


def _latest_user_text(messages: list[ChatMessage]) -> str:
    for message in reversed(messages):
        if message.role == "user":
            return message.content
    return ""


def _record_step(transcript: list[TranscriptItem], reply: OracleReply) -> None:
    if reply.text.strip():
        transcript.append(ChatMessage(role="assistant", content=reply.text))
    transcript.extend(reply.tool_calls)


def _carry_pending(
    pending: PendingMutation | None, executed: list[OperationResult]
) -> PendingMutation | None:
    """Drop the pending change once the model already updated that meal."""
    if pending is None:
        return None
    for result in executed:
        if result.name != UPDATE_MEAL or not result.succeeded:
            continue
        if any(meal.id == pending.target_id for meal in result.meals):
            return None
    return pending


def _with_records(text: str, payload: dict[str, object]) -> str:
    records = payload.get("prs_achieved")
    if not isinstance(records, list) or not records:
        return text
    return f"{text} {format_personal_records(records)}"


def _failure_text(action: str, result: OperationResult) -> str:
    message = str(result.payload.get("message") or "unknown error")
    return f"Sorry, I couldn't {action}: {message}"


def _daily_summary_text(payload: dict[str, object]) -> str:
    totals = payload.get("totals")
    calories = totals.get("calories", 0.0) if isinstance(totals, dict) else 0.0
    target = payload.get("calorie_target", 0.0)
    count = payload.get("meal_count", 0)
    return (
        f"So far on {payload.get('date')}: {float(calories):.0f} / "
        f"{float(target):.0f} cal across {count} meal(s)."
    )
