"""AI audit: one structured log entry per completed provider run."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any

from paragoniusz.core.config import get_settings

from .providers.base import ChatCompletionResult

logger = logging.getLogger(__name__)

# Scope-dependent audit actions. Falls back to "AI_RUN" for unknown scopes.
SCOPE_ACTIONS: dict[str, str] = {
    "receipt_extract": "AI_RECEIPT_EXTRACTED",
}


def _hash(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()


def build_ai_run_metadata(
    *,
    scope: str,
    provider: str,
    result: ChatCompletionResult[Any],
    prompt_text: str,
    response_text: str,
    actor_id: str | None = None,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the audit payload.

    PII: prompt and response are always hashed; raw text is only included
    when ``AI_DEBUG_STORE_RAW=true``.
    """
    settings = get_settings()
    usage = result.usage

    metadata: dict[str, Any] = {
        "action": SCOPE_ACTIONS.get(scope, "AI_RUN"),
        "scope": scope,
        "provider": provider,
        "model": result.model,
        "actor_id": actor_id,
        "prompt_tokens": usage.prompt_tokens if usage else 0,
        "completion_tokens": usage.completion_tokens if usage else 0,
        "total_tokens": usage.total_tokens if usage else 0,
        "latency_ms": result.latency_ms,
        "prompt_hash": _hash(prompt_text),
        "response_hash": _hash(response_text),
    }

    if settings.ai_debug_store_raw:
        metadata["prompt_raw"] = prompt_text
        metadata["response_raw"] = response_text

    if extra_meta:
        metadata.update(extra_meta)

    return metadata


def log_ai_run(
    *,
    scope: str,
    provider: str,
    result: ChatCompletionResult[Any],
    prompt_text: str,
    response_text: str,
    actor_id: str | None = None,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    metadata = build_ai_run_metadata(
        scope=scope,
        provider=provider,
        result=result,
        prompt_text=prompt_text,
        response_text=response_text,
        actor_id=actor_id,
        extra_meta=extra_meta,
    )
    logger.info("AI_RUN %s", json.dumps(metadata, ensure_ascii=False, default=str))
    return metadata
