"""OpenAI Responses API client for chat steps and structured calls."""

import json
import logging
from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError
from openai.types.responses import Response

from meal_assistant.domain.chat import (
    ChatMessage,
    OracleReply,
    ToolCall,
    ToolResult,
    ToolSpec,
    TranscriptItem,
)
from meal_assistant.errors import MalformedOracleOutputError, OracleUnavailableError
from meal_assistant.services.oracle import OracleClient

_logger = logging.getLogger(__name__)


@dataclass
class OpenAIOracleClient(OracleClient):
    """Oracle client backed by the OpenAI Responses API."""

    client: AsyncOpenAI
    model: str
    reasoning_effort: str | None = None
    store: bool = False

    @classmethod
    def create(
        cls,
        api_key: str,
        model: str,
        reasoning_effort: str | None = None,
        store: bool = False,
    ) -> "OpenAIOracleClient":
        """Create an OpenAI oracle client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key),
            model=model,
            reasoning_effort=reasoning_effort,
            store=store,
        )

    async def respond(
        self,
        *,
        instructions: str,
        transcript: list[TranscriptItem],
        tools: list[ToolSpec],
    ) -> OracleReply:
        """Run one model step with function tools available."""
        request_payload = self._base_payload(instructions)
        request_payload["input"] = [_to_input_item(item) for item in transcript]
        if tools:
            request_payload["tools"] = [
                {
                    "type": "function",
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                    "strict": False,
                }
                for tool in tools
            ]
        response = await self._create(request_payload)
        return _parse_reply(response)

    async def generate_structured(
        self,
        *,
        instructions: str,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
    ) -> str:
        """Call the Responses API with a strict JSON schema and no tools."""
        request_payload = self._base_payload(instructions)
        request_payload["input"] = [
            {"role": "user", "content": [{"type": "input_text", "text": prompt}]}
        ]
        request_payload["text"] = {
            "format": {
                "type": "json_schema",
                "name": schema_name,
                "strict": True,
                "schema": schema,
            }
        }
        response = await self._create(request_payload)
        output_text = response.output_text
        if not output_text:
            raise MalformedOracleOutputError("OpenAI returned an empty response")
        return output_text

    def _base_payload(self, instructions: str) -> dict[str, object]:
        payload: dict[str, object] = {
            "model": self.model,
            "instructions": instructions,
            "store": self.store,
        }
        if self.reasoning_effort:
            payload["reasoning"] = {"effort": self.reasoning_effort}
        return payload

    async def _create(self, request_payload: dict[str, object]) -> Response:
        try:
            return await self.client.responses.create(**request_payload)
        except OpenAIError as exc:
            raise OracleUnavailableError(f"OpenAI request failed: {exc}") from exc

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()


def _to_input_item(item: TranscriptItem) -> dict[str, object]:
    if isinstance(item, ChatMessage):
        return {"role": item.role, "content": item.content}
    if isinstance(item, ToolCall):
        return {
            "type": "function_call",
            "call_id": item.call_id,
            "name": item.name,
            "arguments": json.dumps(item.arguments),
        }
    if isinstance(item, ToolResult):
        return {
            "type": "function_call_output",
            "call_id": item.call_id,
            "output": json.dumps(item.output, default=str),
        }
    raise TypeError(f"Unsupported transcript item: {type(item).__name__}")


def _parse_reply(response: Response) -> OracleReply:
    texts: list[str] = []
    tool_calls: list[ToolCall] = []
    for item in response.output or []:
        item_type = getattr(item, "type", None)
        if item_type == "message":
            for part in getattr(item, "content", None) or []:
                if getattr(part, "type", None) == "output_text" and part.text:
                    texts.append(part.text)
        elif item_type == "function_call":
            tool_calls.append(
                ToolCall(
                    call_id=item.call_id,
                    name=item.name,
                    arguments=_parse_arguments(item.name, item.arguments),
                )
            )
    return OracleReply(text="\n".join(texts), tool_calls=tool_calls)


def _parse_arguments(name: str, raw: str | None) -> dict[str, object]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        _logger.warning("Unparseable arguments for %s: %s", name, raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}
