"""Receipt processing pipeline: storage path in, grouped expenses out."""

from __future__ import annotations

import logging
import time
from typing import Optional, Sequence

from paragoniusz.core.config import Settings, get_settings
from paragoniusz.core.feature_flags import ensure_ai_receipt_processing_enabled
from paragoniusz.core.supabase import get_supabase_client
from paragoniusz.services.ai.common.providers import get_llm_client
from paragoniusz.services.ai.receipt_extract.service import ReceiptExtractionService
from paragoniusz.utils.alerting import alert_tracker

from .category_mapping import CategoryMappingService
from .context import ProcessingContext, ProcessReceiptResult, require_field
from .errors import ReceiptProcessingError
from .gateways import (
    CategoryStore,
    ConsentStore,
    LocalReceiptFunction,
    ReceiptExtractionFunction,
    SupabaseCategoryStore,
    SupabaseConsentStore,
    SupabaseEdgeFunction,
    SupabaseReceiptImageStore,
)
from .steps import (
    AIProcessingStep,
    CategoryFetchStep,
    CategoryMappingStep,
    ConsentValidationStep,
    FileOwnershipValidationStep,
    ProcessingStep,
)

logger = logging.getLogger(__name__)


async def run_pipeline(steps: Sequence[ProcessingStep], context: ProcessingContext) -> ProcessingContext:
    """Run *steps* in order; the first failure propagates and stops the run."""
    for step in steps:
        context = await step.execute(context)
        context.step_names.append(step.name)
    return context


class ReceiptService:
    def __init__(
        self,
        consent_store: ConsentStore,
        category_store: CategoryStore,
        extraction_function: ReceiptExtractionFunction,
        *,
        category_mapper: Optional[CategoryMappingService] = None,
        currency: str = "PLN",
    ) -> None:
        self.steps: list[ProcessingStep] = [
            ConsentValidationStep(consent_store),
            FileOwnershipValidationStep(),
            CategoryFetchStep(category_store),
            AIProcessingStep(extraction_function),
            CategoryMappingStep(category_mapper, currency=currency),
        ]

    async def process_receipt(
        self,
        file_path: str,
        user_id: str,
        *,
        access_token: Optional[str] = None,
    ) -> ProcessReceiptResult:
        """Process one uploaded receipt for *user_id*.

        Returns the full result or raises :class:`ReceiptProcessingError`;
        there are no partial results.
        """
        context = ProcessingContext(
            file_path=file_path,
            user_id=user_id,
            start_time=time.monotonic(),
            access_token=access_token,
        )
        try:
            ensure_ai_receipt_processing_enabled()
            context = await run_pipeline(self.steps, context)
            return require_field(context.result, "result")
        except ReceiptProcessingError as exc:
            alert_tracker.record(exc.code, {"file_path": file_path, "user_id": user_id})
            logger.warning(
                "Receipt processing failed: code=%s kind=%s file=%s completed_steps=%s detail=%s",
                exc.code,
                exc.kind.value,
                file_path,
                context.step_names,
                exc.message,
            )
            raise


async def build_receipt_service(settings: Optional[Settings] = None) -> ReceiptService:
    """Wire a :class:`ReceiptService` against Supabase.

    ``RECEIPT_EXTRACTION_MODE=edge`` invokes the deployed Edge Function;
    ``local`` runs extraction in this process with the OpenRouter client.
    """
    settings = settings or get_settings()
    client = await get_supabase_client(settings)

    extraction_function: ReceiptExtractionFunction
    if settings.receipt_extraction_mode == "local":
        extractor = ReceiptExtractionService(
            get_llm_client(settings),
            SupabaseReceiptImageStore(client, settings.receipts_bucket),
            rate_limit_per_window=settings.receipt_rate_limit_per_min,
            rate_limit_window_seconds=settings.receipt_rate_limit_window_seconds,
        )
        extraction_function = LocalReceiptFunction(extractor)
    else:
        extraction_function = SupabaseEdgeFunction(client, settings.receipt_function_name)

    logger.info("Receipt service ready (extraction mode: %s)", settings.receipt_extraction_mode)
    return ReceiptService(
        SupabaseConsentStore(client),
        SupabaseCategoryStore(client),
        extraction_function,
        currency=settings.receipt_currency,
    )
