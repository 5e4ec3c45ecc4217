"""Receipt pipeline failures and the user-facing message catalogue.

Every failure code maps to exactly one error kind, one HTTP status hint and
one actionable message.
"""

from __future__ import annotations

from dataclasses import dataclass

from paragoniusz.services.ai.common.errors import AIError, ErrorKind


@dataclass(frozen=True)
class ErrorMessage:
    kind: ErrorKind
    status_code: int
    title: str
    description: str
    retry: bool = True
    manual: bool = True


ERROR_MESSAGES: dict[str, ErrorMessage] = {
    "FEATURE_DISABLED": ErrorMessage(
        ErrorKind.CONFIGURATION,
        503,
        "AI receipt processing is currently disabled",
        "Scanning receipts is turned off right now. You can still add expenses manually.",
        retry=False,
    ),
    "AI_CONSENT_REQUIRED": ErrorMessage(
        ErrorKind.DOMAIN,
        403,
        "AI consent required",
        "Enable AI features in your settings before uploading receipts.",
        retry=False,
    ),
    "PROFILE_FETCH_FAILED": ErrorMessage(
        ErrorKind.NETWORK,
        500,
        "Could not load your profile, try again",
        "We could not check your AI settings. Try again in a moment.",
    ),
    "FORBIDDEN": ErrorMessage(
        ErrorKind.DOMAIN,
        403,
        "You are not allowed to process this file",
        "This receipt belongs to a different account.",
        retry=False,
        manual=False,
    ),
    "CATEGORY_FETCH_FAILED": ErrorMessage(
        ErrorKind.NETWORK,
        500,
        "Could not load categories, try again",
        "Expense categories could not be loaded. Try again in a moment.",
    ),
    "CATEGORIES_UNAVAILABLE": ErrorMessage(
        ErrorKind.CONFIGURATION,
        500,
        "Expense categories are not configured",
        "No expense categories exist, so receipt items cannot be assigned.",
        retry=False,
    ),
    "RATE_LIMIT_EXCEEDED": ErrorMessage(
        ErrorKind.RATE_LIMIT,
        429,
        "Rate limit exceeded, try later",
        "Too many receipts were scanned in a short time. Wait a minute and try again.",
    ),
    "PROCESSING_TIMEOUT": ErrorMessage(
        ErrorKind.TIMEOUT,
        408,
        "Processing timed out, try again",
        "AI processing took longer than 20 seconds. Try a sharper, well-lit photo "
        "or add the expenses manually.",
    ),
    "EXTRACTION_FAILED": ErrorMessage(
        ErrorKind.VALIDATION,
        422,
        "Could not read the receipt",
        "No expenses could be extracted. Try a clearer photo or add expenses manually.",
    ),
    "AI_SERVICE_ERROR": ErrorMessage(
        ErrorKind.API,
        500,
        "AI service error, try again later",
        "The AI service is temporarily unavailable.",
    ),
    "PIPELINE_STATE_INVALID": ErrorMessage(
        ErrorKind.CONFIGURATION,
        500,
        "Unexpected processing error",
        "Something went wrong on our side. Try again or add expenses manually.",
    ),
}

DEFAULT_ERROR_MESSAGE = ErrorMessage(
    ErrorKind.UNKNOWN,
    500,
    "An error occurred",
    "An unexpected error occurred. Try again or add expenses manually.",
)


def get_error_message(code: str) -> ErrorMessage:
    return ERROR_MESSAGES.get(code, DEFAULT_ERROR_MESSAGE)


class ReceiptProcessingError(AIError):
    """Failure of one pipeline run, identified by a catalogue ``code``.

    ``kind`` and ``status_code`` come from the catalogue; ``message`` keeps the
    technical detail for logs while ``user_message`` is safe to display.
    """

    def __init__(self, code: str, message: str | None = None) -> None:
        entry = get_error_message(code)
        self.code = code
        self.kind = entry.kind
        super().__init__(message or code, status_code=entry.status_code)

    @property
    def user_message(self) -> str:
        return get_error_message(self.code).title
