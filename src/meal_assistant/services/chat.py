"""Caller-facing chat turn handling with per-owner pending state."""

import logging
from dataclasses import dataclass
from uuid import UUID

from meal_assistant.domain.chat import ChatMessage
from meal_assistant.domain.pending import PendingMutation
from meal_assistant.errors import MealAssistantError
from meal_assistant.services.orchestrator import ChatOrchestrator, TurnResult
from meal_assistant.services.pending import PendingMutationStore

_logger = logging.getLogger(__name__)


@dataclass
class ChatService:
    """Loads the owner's pending change, runs the turn and stores the result."""

    orchestrator: ChatOrchestrator
    pending_store: PendingMutationStore

    async def handle_turn(
        self,
        user_id: UUID,
        messages: list[ChatMessage],
        pending: PendingMutation | None = None,
    ) -> TurnResult:
        """Run a turn; an explicit pending mutation overrides the stored one.

        A failed turn restores the pending change unless the user had already
        confirmed or rejected it; a confirmed change is never retried.
        """
        if pending is None:
            pending = self.pending_store.get(user_id)
        # Cleared before the turn so a consumed change can never run twice.
        self.pending_store.clear(user_id)
        try:
            result = await self.orchestrator.run_turn(messages, user_id, pending)
        except MealAssistantError:
            kept = self.orchestrator.untouched_pending(messages, user_id, pending)
            if kept is not None:
                _logger.info("Turn failed, keeping pending change: user_id=%s", user_id)
                self.pending_store.save(kept)
            raise
        if result.pending_mutation is not None:
            self.pending_store.save(result.pending_mutation)
        return result
