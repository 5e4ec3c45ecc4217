"""Receipt extraction: storage image -> multimodal structured-output LLM call.

This is the work behind the ``process-receipt`` function that the receipt
pipeline invokes. It can run remotely (Supabase Edge Function) or in-process
through ``LocalReceiptFunction``; either way failures surface with the same
message phrasing ("Rate limit exceeded", "... timeout ...").
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from paragoniusz.core.config import get_settings
from paragoniusz.services.ai.common.audit import log_ai_run
from paragoniusz.services.ai.common.errors import AIValidationError, NetworkError, RateLimitError
from paragoniusz.services.ai.common.providers.base import (
    ModelParameters,
    image_data_uri,
    image_part,
    text_part,
)
from paragoniusz.services.ai.common.providers.openrouter import OpenRouterClient
from paragoniusz.utils.rate_limit import SlidingWindowRateLimiter

from .contracts import (
    RECEIPT_CATEGORIES,
    RECEIPT_PATH_RE,
    RECEIPT_RESPONSE_SCHEMA,
    ReceiptData,
    mime_type_for,
)

logger = logging.getLogger(__name__)

RECEIPT_SYSTEM_PROMPT = (
    "You are an expert at extracting structured data from Polish receipts.\n\n"
    "For every item extract the FINAL line price from the rightmost column, "
    "never the unit price. A line such as 'GRAPEFRUIT KG C 2x6.99 ... 15.45C' "
    "has amount 15.45, not 6.99.\n\n"
    "Assign each item exactly one of these category names (case-sensitive): "
    + ", ".join(RECEIPT_CATEGORIES)
    + ".\n\n"
    "Return the receipt total and date. If the date is not visible, use today's date."
)

RECEIPT_USER_PROMPT = "Extract all items, prices, and categories from this Polish receipt."


class ReceiptImageStore(Protocol):
    async def download(self, path: str) -> bytes: ...

    async def remove(self, path: str) -> None: ...


class ReceiptExtractionService:
    """Turns a stored receipt image into a validated ``ReceiptData`` dict."""

    def __init__(
        self,
        llm_client: OpenRouterClient,
        image_store: ReceiptImageStore,
        *,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        rate_limit_per_window: int | None = None,
        rate_limit_window_seconds: int | None = None,
        delete_after_processing: bool = True,
    ) -> None:
        settings = get_settings()
        self._llm = llm_client
        self._images = image_store
        self._rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self._rate_limit = (
            rate_limit_per_window if rate_limit_per_window is not None else settings.receipt_rate_limit_per_min
        )
        self._rate_window = (
            rate_limit_window_seconds
            if rate_limit_window_seconds is not None
            else settings.receipt_rate_limit_window_seconds
        )
        self._delete_after_processing = delete_after_processing
        self._temperature = settings.ai_temperature
        self._max_tokens = settings.ai_max_tokens

    async def extract(self, file_path: str, *, actor_id: str | None = None) -> dict[str, Any]:
        if not RECEIPT_PATH_RE.match(file_path or ""):
            raise AIValidationError("Invalid file path format", details={"file_path": file_path})

        # receipts/<owner_id>/<file>; ownership was checked before the call.
        owner = actor_id or file_path.split("/")[1]
        allowed, hits = self._rate_limiter.allow(f"receipt:{owner}", self._rate_limit, self._rate_window)
        if not allowed:
            logger.warning("Receipt extraction rate limit hit for %s (%d in window)", owner, hits)
            raise RateLimitError("Rate limit exceeded")

        try:
            image = await self._images.download(file_path)
        except Exception as exc:
            raise NetworkError("Failed to access receipt image") from exc
        if not image:
            raise NetworkError("Failed to access receipt image")

        logger.info("Processing receipt %s (%d KB)", file_path, round(len(image) / 1024))

        result = await self._llm.chat_completion(
            system_message=RECEIPT_SYSTEM_PROMPT,
            user_message=[
                text_part(RECEIPT_USER_PROMPT),
                image_part(image_data_uri(image, mime_type_for(file_path))),
            ],
            response_schema=RECEIPT_RESPONSE_SCHEMA,
            parameters=ModelParameters(temperature=self._temperature, max_tokens=self._max_tokens),
            response_model=ReceiptData,
        )
        data: ReceiptData = result.data

        log_ai_run(
            scope="receipt_extract",
            provider=self._llm.name,
            result=result,
            prompt_text=f"{RECEIPT_SYSTEM_PROMPT}\n\n{RECEIPT_USER_PROMPT}",
            response_text=data.model_dump_json(),
            actor_id=owner,
            extra_meta={"file_path": file_path, "item_count": len(data.items)},
        )

        if self._delete_after_processing:
            await self._remove_quietly(file_path)

        return data.model_dump()

    async def _remove_quietly(self, file_path: str) -> None:
        try:
            await self._images.remove(file_path)
        except Exception:
            logger.warning("Failed to delete receipt image %s", file_path, exc_info=True)
