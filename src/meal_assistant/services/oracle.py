"""Language model interface and structured-output parsing."""

import json
from typing import Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from meal_assistant.domain.chat import OracleReply, ToolSpec, TranscriptItem
from meal_assistant.errors import MalformedOracleOutputError

ModelT = TypeVar("ModelT", bound=BaseModel)


class OracleClient(Protocol):
    """Interface for the text-generation service."""

    async def respond(
        self,
        *,
        instructions: str,
        transcript: list[TranscriptItem],
        tools: list[ToolSpec],
    ) -> OracleReply:
        """Run one model step that may request operations."""

    async def generate_structured(
        self,
        *,
        instructions: str,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
    ) -> str:
        """Run a single-shot call without tools and return the raw JSON text."""


def parse_structured(raw: str, model: type[ModelT]) -> ModelT:
    """Parse model JSON output into a validated record."""
    text = _strip_code_fence(raw)
    if not text:
        raise MalformedOracleOutputError("Model returned an empty response")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedOracleOutputError(f"Model output is not JSON: {exc}") from exc
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedOracleOutputError(
            f"Model output failed validation: {exc.error_count()} error(s)"
        ) from exc


def _strip_code_fence(raw: str) -> str:
    """Remove a markdown code fence around JSON, if present."""
    text = raw.strip()
    if not text.startswith("```"):
        return text
    lines = text.splitlines()[1:]
    if lines and lines[-1].strip().startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()
