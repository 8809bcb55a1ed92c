"""Conversation and model transcript models."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChatMessage:
    """Role-tagged conversation turn."""

    role: str
    content: str


@dataclass(frozen=True)
class ToolCall:
    """Operation invocation requested by the model."""

    call_id: str
    name: str
    arguments: dict[str, object]


@dataclass(frozen=True)
class ToolResult:
    """Executed operation result fed back to the model."""

    call_id: str
    name: str
    output: dict[str, object]


@dataclass(frozen=True)
class OracleReply:
    """Single model step: text, requested operations, or both."""

    text: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)


TranscriptItem = ChatMessage | ToolCall | ToolResult


@dataclass(frozen=True)
class ToolSpec:
    """Callable operation exposed to the model."""

    name: str
    description: str
    parameters: dict[str, object]
