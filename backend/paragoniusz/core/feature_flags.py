from paragoniusz.core.config import get_settings
from paragoniusz.services.receipts.errors import ReceiptProcessingError


def ensure_ai_receipt_processing_enabled() -> None:
    settings = get_settings()
    if not settings.enable_ai_receipt_processing:
        raise ReceiptProcessingError("FEATURE_DISABLED", "AI receipt processing is currently disabled")
