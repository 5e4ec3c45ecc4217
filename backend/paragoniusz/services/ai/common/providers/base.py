"""Value types shared by LLM provider clients."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar, Union

T = TypeVar("T")

Role = Literal["system", "user", "assistant"]

# Plain text, or a multimodal list of text / image_url parts.
MessageContent = Union[str, list[dict[str, Any]]]


@dataclass(frozen=True)
class ResponseSchema:
    """JSON Schema the provider must constrain its answer to."""

    name: str
    schema: dict[str, Any]


@dataclass(frozen=True)
class ModelParameters:
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_payload(cls, payload: dict[str, Any] | None) -> TokenUsage | None:
        if not payload:
            return None
        return cls(
            prompt_tokens=int(payload.get("prompt_tokens", 0) or 0),
            completion_tokens=int(payload.get("completion_tokens", 0) or 0),
            total_tokens=int(payload.get("total_tokens", 0) or 0),
        )


@dataclass(frozen=True)
class ChatCompletionResult(Generic[T]):
    """Parsed structured output plus the model that actually answered."""

    data: T
    model: str
    usage: TokenUsage | None = None
    latency_ms: float = 0.0


def text_part(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def image_part(url: str) -> dict[str, Any]:
    """*url* may be an https URL or a base64 data URI."""
    return {"type": "image_url", "image_url": {"url": url}}


def image_data_uri(content: bytes, mime_type: str = "image/jpeg") -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"
