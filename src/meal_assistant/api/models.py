"""Pydantic models for the chat endpoint."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from meal_assistant.domain.chat import ChatMessage
from meal_assistant.domain.pending import APPLY_MUTATION, PendingMutation


class ChatMessageModel(BaseModel):
    """Conversation turn payload."""

    role: Literal["user", "assistant"]
    content: str

    def to_domain(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.content)


class PendingMutationModel(BaseModel):
    """Pending change carried between turns by the caller."""

    kind: str = APPLY_MUTATION
    target_id: str
    mutation_description: str
    confidence: Literal["high", "medium", "low"]
    expires_at: datetime

    def to_domain(self, user_id: UUID) -> PendingMutation:
        return PendingMutation(
            user_id=user_id,
            kind=self.kind,
            target_id=self.target_id,
            mutation_description=self.mutation_description,
            confidence=self.confidence,
            expires_at=self.expires_at,
        )

    @classmethod
    def from_domain(cls, pending: PendingMutation) -> "PendingMutationModel":
        return cls(
            kind=pending.kind,
            target_id=pending.target_id,
            mutation_description=pending.mutation_description,
            confidence=pending.confidence,
            expires_at=pending.expires_at,
        )


class ChatRequest(BaseModel):
    """Chat turn request payload."""

    user_id: UUID
    messages: list[ChatMessageModel] = Field(min_length=1)
    pending_mutation: PendingMutationModel | None = None


class ChatResponse(BaseModel):
    """Chat turn response payload."""

    response_text: str
    pending_mutation: PendingMutationModel | None = None
