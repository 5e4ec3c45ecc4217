"""Provider factory: builds the configured LLM client from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from paragoniusz.core.config import Settings, get_settings

from ..errors import ConfigurationError, ErrorKind
from ..retry import ExponentialBackoffStrategy
from .base import ChatCompletionResult, ModelParameters, ResponseSchema, TokenUsage

if TYPE_CHECKING:
    from .openrouter import OpenRouterClient

logger = logging.getLogger(__name__)

__all__ = [
    "get_llm_client",
    "build_retry_strategy",
    "ChatCompletionResult",
    "ModelParameters",
    "ResponseSchema",
    "TokenUsage",
]


def build_retry_strategy(settings: Settings) -> ExponentialBackoffStrategy:
    """Retry policy from ``AI_RETRY_*`` / ``AI_NON_RETRYABLE_KINDS``.

    Unknown kind names are ignored with a warning rather than failing startup.
    """
    kinds = set()
    for raw in settings.ai_non_retryable_kinds:
        try:
            kinds.add(ErrorKind(raw))
        except ValueError:
            logger.warning("Unknown error kind %r in AI_NON_RETRYABLE_KINDS ignored", raw)

    return ExponentialBackoffStrategy(
        max_attempts=settings.ai_retry_attempts,
        base_delay=settings.ai_retry_base_delay_seconds,
        non_retryable_kinds=kinds,
    )


def get_llm_client(settings: Settings | None = None) -> OpenRouterClient:
    """Return an ``OpenRouterClient`` for the current settings.

    Raises ``ConfigurationError`` when ``OPENROUTER_API_KEY`` is not set.
    """
    settings = settings or get_settings()

    if not settings.openrouter_api_key:
        raise ConfigurationError("OPENROUTER_API_KEY not configured")

    from .openrouter import OpenRouterClient

    return OpenRouterClient(
        api_key=settings.openrouter_api_key,
        base_url=settings.openrouter_base_url,
        timeout_seconds=settings.ai_timeout_seconds,
        default_model=settings.openrouter_default_model,
        retry_attempts=settings.ai_retry_attempts,
        referer=settings.openrouter_referer,
        title=settings.openrouter_title,
        retry_strategy=build_retry_strategy(settings),
    )
