"""Fluent builder for OpenRouter chat completion requests."""

from __future__ import annotations

import copy
from typing import Any

from .errors import ConfigurationError
from .providers.base import MessageContent, ModelParameters, ResponseSchema


class OpenRouterRequestBuilder:
    """Accumulates model, messages, schema and sampling parameters.

    Example::

        request = (
            OpenRouterRequestBuilder()
            .set_model("openai/gpt-4o-mini")
            .add_system_message("You extract receipts.")
            .add_user_message([text_part("Extract"), image_part(uri)])
            .set_response_schema(ResponseSchema("receipt_extraction", schema))
            .set_parameters(ModelParameters(temperature=0.1))
            .build()
        )
    """

    def __init__(self) -> None:
        self._request: dict[str, Any] = {}

    def set_model(self, model: str) -> OpenRouterRequestBuilder:
        self._request["model"] = model
        return self

    def add_system_message(self, content: str) -> OpenRouterRequestBuilder:
        return self._add_message("system", content)

    def add_user_message(self, content: MessageContent) -> OpenRouterRequestBuilder:
        return self._add_message("user", content)

    def set_response_schema(self, schema: ResponseSchema) -> OpenRouterRequestBuilder:
        self._request["response_format"] = {
            "type": "json_schema",
            "json_schema": {
                "name": schema.name,
                "strict": True,
                "schema": schema.schema,
            },
        }
        return self

    def set_parameters(self, params: ModelParameters) -> OpenRouterRequestBuilder:
        """Only parameters that are not ``None`` overwrite existing values."""
        if params.temperature is not None:
            self._request["temperature"] = params.temperature
        if params.max_tokens is not None:
            self._request["max_tokens"] = params.max_tokens
        if params.top_p is not None:
            self._request["top_p"] = params.top_p
        return self

    def build(self) -> dict[str, Any]:
        if not self._request.get("model") or not self._request.get("messages"):
            raise ConfigurationError("Model and messages are required")
        return copy.deepcopy(self._request)

    def reset(self) -> OpenRouterRequestBuilder:
        self._request = {}
        return self

    def _add_message(self, role: str, content: MessageContent) -> OpenRouterRequestBuilder:
        self._request.setdefault("messages", []).append({"role": role, "content": content})
        return self
