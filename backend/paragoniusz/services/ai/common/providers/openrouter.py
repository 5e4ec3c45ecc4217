"""OpenRouter provider: structured-output chat completions with retry and error classification."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..errors import (
    AIError,
    AITimeoutError,
    AIValidationError,
    APIError,
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    RateLimitError,
)
from ..http_client import HTTPClientService, HTTPStatusFailure, RequestTimeout
from ..request_builder import OpenRouterRequestBuilder
from ..retry import ExponentialBackoffStrategy, RetryStrategy, with_retry
from .base import ChatCompletionResult, MessageContent, ModelParameters, ResponseSchema, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_RETRY_ATTEMPTS = 3


def classify_status_failure(exc: HTTPStatusFailure) -> AIError:
    message = str(exc)
    status = exc.status_code
    if status in (401, 403):
        return AuthenticationError(message, status_code=status)
    if status == 429:
        return RateLimitError(message, status_code=status)
    if status == 400:
        return AIValidationError(message, status_code=status)
    return APIError(message, status_code=status)


class OpenRouterClient:
    """Client for ``POST {base_url}/chat/completions``.

    Collaborators are injectable so tests can swap the transport, the retry
    policy or the builder. Worst-case latency of one call is roughly
    ``timeout_seconds * retry_attempts`` plus backoff.
    """

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        default_model: str = DEFAULT_MODEL,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        referer: str = "https://paragoniusz.app",
        title: str = "Paragoniusz",
        http_client: HTTPClientService | None = None,
        retry_strategy: RetryStrategy | None = None,
        request_builder: OpenRouterRequestBuilder | None = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError("API key is required")

        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._default_model = default_model
        self._referer = referer
        self._title = title
        self._http_client = http_client or HTTPClientService()
        self._retry_strategy = retry_strategy or ExponentialBackoffStrategy(retry_attempts)
        self._request_builder = request_builder or OpenRouterRequestBuilder()

    @property
    def default_model(self) -> str:
        return self._default_model

    async def chat_completion(
        self,
        *,
        system_message: str,
        user_message: MessageContent,
        response_schema: ResponseSchema,
        model: str | None = None,
        parameters: ModelParameters | None = None,
        response_model: type[BaseModel] | None = None,
    ) -> ChatCompletionResult[Any]:
        """Send one structured-output request and return the parsed payload.

        When *response_model* is given the JSON payload is validated into it;
        otherwise ``data`` is the decoded JSON value.

        Raises an :class:`AIError` subclass for every failure.
        """
        try:
            request = self._build_request(
                system_message=system_message,
                user_message=user_message,
                response_schema=response_schema,
                model=model,
                parameters=parameters,
            )
            logger.info("Calling LLM: %s", request["model"])

            t0 = time.monotonic()
            response = await with_retry(
                lambda: self._execute_request(request),
                self._retry_strategy,
            )
            elapsed = (time.monotonic() - t0) * 1000

            return self._parse_response(
                response,
                requested_model=request["model"],
                response_model=response_model,
                latency_ms=round(elapsed, 2),
            )
        except AIError:
            raise
        except httpx.TransportError as exc:
            raise NetworkError(str(exc) or NetworkError.default_message) from exc
        except Exception as exc:
            raise AIError(str(exc) or AIError.default_message) from exc

    def _build_request(
        self,
        *,
        system_message: str,
        user_message: MessageContent,
        response_schema: ResponseSchema,
        model: str | None,
        parameters: ModelParameters | None,
    ) -> dict[str, Any]:
        builder = (
            self._request_builder.reset()
            .set_model(model or self._default_model)
            .add_system_message(system_message)
            .add_user_message(user_message)
            .set_response_schema(response_schema)
        )
        if parameters is not None:
            builder.set_parameters(parameters)
        return builder.build()

    async def _execute_request(self, request: dict[str, Any]) -> Any:
        try:
            return await self._http_client.post_with_timeout(
                f"{self._base_url}/chat/completions",
                request,
                self._timeout_seconds,
                {
                    "Authorization": f"Bearer {self._api_key}",
                    "HTTP-Referer": self._referer,
                    "X-Title": self._title,
                },
            )
        except RequestTimeout as exc:
            raise AITimeoutError(f"Request timeout after {self._timeout_seconds:g} seconds") from exc
        except HTTPStatusFailure as exc:
            raise classify_status_failure(exc) from exc
        except httpx.TransportError as exc:
            raise NetworkError(str(exc) or NetworkError.default_message) from exc

    def _parse_response(
        self,
        api_response: Any,
        *,
        requested_model: str,
        response_model: type[BaseModel] | None,
        latency_ms: float,
    ) -> ChatCompletionResult[Any]:
        if not isinstance(api_response, dict):
            raise AIValidationError("Malformed API response")

        choices = api_response.get("choices") or []
        content = None
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")

        if not content:
            raise AIValidationError("No content in API response")

        try:
            data: Any = json.loads(content)
        except (TypeError, ValueError) as exc:
            raise AIValidationError("Failed to parse response as JSON", details=str(exc)) from exc

        if response_model is not None:
            try:
                data = response_model.model_validate(data)
            except PydanticValidationError as exc:
                raise AIValidationError(
                    "Response does not match the expected schema",
                    details=exc.errors(),
                ) from exc

        used_model = api_response.get("model") or requested_model
        usage = TokenUsage.from_payload(api_response.get("usage"))

        logger.info("Response received from: %s", used_model)
        if usage is not None:
            logger.info(
                "Token usage - prompt: %d, completion: %d, total: %d",
                usage.prompt_tokens,
                usage.completion_tokens,
                usage.total_tokens,
            )

        return ChatCompletionResult(data=data, model=used_model, usage=usage, latency_ms=latency_ms)
