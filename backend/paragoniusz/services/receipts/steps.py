"""The five receipt pipeline steps.

Each step reads what earlier steps left on the :class:`ProcessingContext`,
adds its own field and returns the context. A step that fails raises a
:class:`ReceiptProcessingError` and later steps never run.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from pydantic import ValidationError as PydanticValidationError

from paragoniusz.services.ai.receipt_extract.contracts import ReceiptData

from .category_mapping import CategoryMappingService, format_money, to_money
from .context import Category, ProcessingContext, ProcessReceiptResult, require_field
from .errors import ReceiptProcessingError
from .gateways import CategoryStore, ConsentStore, ReceiptExtractionFunction

logger = logging.getLogger(__name__)

RATE_LIMIT_MARKERS = ("rate limit", "too many requests")
TIMEOUT_MARKERS = ("timeout", "timed out")


class ProcessingStep(ABC):
    name: str = "step"

    @abstractmethod
    async def execute(self, context: ProcessingContext) -> ProcessingContext: ...


class ConsentValidationStep(ProcessingStep):
    name = "consent_validation"

    def __init__(self, consent_store: ConsentStore) -> None:
        self._store = consent_store

    async def execute(self, context: ProcessingContext) -> ProcessingContext:
        try:
            profile = await self._store.get(context.user_id)
        except Exception as exc:
            raise ReceiptProcessingError("PROFILE_FETCH_FAILED", f"Failed to fetch profile: {exc}") from exc

        if not (profile or {}).get("ai_consent_given"):
            raise ReceiptProcessingError("AI_CONSENT_REQUIRED", "AI consent has not been given")

        context.ai_consent_given = True
        return context


class FileOwnershipValidationStep(ProcessingStep):
    name = "file_ownership_validation"

    async def execute(self, context: ProcessingContext) -> ProcessingContext:
        # <prefix>/<owner_id>/<file_name>
        parts = (context.file_path or "").split("/")
        if len(parts) < 3 or not parts[1] or parts[1] != context.user_id:
            raise ReceiptProcessingError("FORBIDDEN", "File does not belong to the requesting user")
        return context


class CategoryFetchStep(ProcessingStep):
    name = "category_fetch"

    def __init__(self, category_store: CategoryStore) -> None:
        self._store = category_store

    async def execute(self, context: ProcessingContext) -> ProcessingContext:
        try:
            rows = await self._store.list_all()
        except Exception as exc:
            raise ReceiptProcessingError("CATEGORY_FETCH_FAILED", f"Failed to fetch categories: {exc}") from exc

        categories = [Category(id=str(row["id"]), name=str(row["name"])) for row in rows or []]
        if not categories:
            raise ReceiptProcessingError("CATEGORIES_UNAVAILABLE", "No expense categories are configured")

        context.categories = categories
        return context


class AIProcessingStep(ProcessingStep):
    name = "ai_processing"

    def __init__(self, extraction_function: ReceiptExtractionFunction) -> None:
        self._function = extraction_function

    async def execute(self, context: ProcessingContext) -> ProcessingContext:
        try:
            payload = await self._function.invoke({"file_path": context.file_path}, context.access_token)
        except Exception as exc:
            raise self.classify_failure(exc) from exc

        if not payload:
            raise ReceiptProcessingError("EXTRACTION_FAILED", "No data returned from AI processing")

        try:
            context.provider_raw_result = ReceiptData.model_validate(payload)
        except PydanticValidationError as exc:
            raise ReceiptProcessingError(
                "EXTRACTION_FAILED",
                f"AI returned an invalid receipt payload ({exc.error_count()} errors)",
            ) from exc
        return context

    @staticmethod
    def classify_failure(exc: BaseException) -> ReceiptProcessingError:
        message = str(exc) or type(exc).__name__
        lowered = message.lower()
        if any(marker in lowered for marker in RATE_LIMIT_MARKERS):
            return ReceiptProcessingError("RATE_LIMIT_EXCEEDED", message)
        if any(marker in lowered for marker in TIMEOUT_MARKERS):
            return ReceiptProcessingError("PROCESSING_TIMEOUT", message)
        return ReceiptProcessingError("AI_SERVICE_ERROR", message)


class CategoryMappingStep(ProcessingStep):
    name = "category_mapping"

    def __init__(self, mapper: CategoryMappingService | None = None, *, currency: str = "PLN") -> None:
        self._mapper = mapper or CategoryMappingService()
        self._currency = currency

    async def execute(self, context: ProcessingContext) -> ProcessingContext:
        categories = require_field(context.categories, "categories")
        raw = require_field(context.provider_raw_result, "provider_raw_result")

        expenses = self._mapper.map_expenses_with_categories(raw.items, categories)
        context.result = ProcessReceiptResult(
            expenses=expenses,
            total_amount=format_money(to_money(raw.total)),
            currency=self._currency,
            receipt_date=raw.date,
            processing_time_ms=int((time.monotonic() - context.start_time) * 1000),
        )
        logger.info(
            "Receipt %s mapped into %d expense groups (total %s)",
            context.file_path,
            len(expenses),
            context.result.total_amount,
        )
        return context
