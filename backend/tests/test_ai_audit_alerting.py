"""AI run audit metadata and receipt failure alerting."""

import hashlib
import os
import unittest
from unittest.mock import patch

from paragoniusz.services.ai.common import errors as ai_errors
from paragoniusz.services.ai.common.audit import build_ai_run_metadata, log_ai_run
from paragoniusz.services.ai.common.errors import AIError, ErrorKind
from paragoniusz.services.ai.common.providers.base import ChatCompletionResult, TokenUsage
from paragoniusz.services.receipts.errors import (
    DEFAULT_ERROR_MESSAGE,
    ERROR_MESSAGES,
    ReceiptProcessingError,
    get_error_message,
)
from paragoniusz.utils.alerting import AuditAlertTracker


def _result(usage=None):
    return ChatCompletionResult(
        data={"total": 1},
        model="openai/gpt-4o-mini",
        usage=usage or TokenUsage(prompt_tokens=100, completion_tokens=20, total_tokens=120),
        latency_ms=321.5,
    )


class AuditMetadataTests(unittest.TestCase):
    def test_hashes_without_raw_text_by_default(self):
        with patch.dict(os.environ, {"AI_DEBUG_STORE_RAW": "false"}, clear=False):
            meta = build_ai_run_metadata(
                scope="receipt_extract",
                provider="openrouter",
                result=_result(),
                prompt_text="prompt",
                response_text="response",
                actor_id="user-1",
                extra_meta={"file_path": "receipts/x/y.jpg"},
            )

        self.assertEqual(meta["action"], "AI_RECEIPT_EXTRACTED")
        self.assertEqual(meta["total_tokens"], 120)
        self.assertEqual(meta["latency_ms"], 321.5)
        self.assertEqual(meta["prompt_hash"], hashlib.sha256(b"prompt").hexdigest())
        self.assertEqual(meta["file_path"], "receipts/x/y.jpg")
        self.assertNotIn("prompt_raw", meta)
        self.assertNotIn("response_raw", meta)

    def test_raw_text_only_when_enabled(self):
        with patch.dict(os.environ, {"AI_DEBUG_STORE_RAW": "true"}, clear=False):
            meta = build_ai_run_metadata(
                scope="receipt_extract",
                provider="openrouter",
                result=_result(),
                prompt_text="prompt",
                response_text="response",
            )
        self.assertEqual(meta["prompt_raw"], "prompt")
        self.assertEqual(meta["response_raw"], "response")

    def test_unknown_scope_and_missing_usage(self):
        result = ChatCompletionResult(data={}, model="m")
        with self.assertLogs("paragoniusz.services.ai.common.audit", level="INFO") as logs:
            meta = log_ai_run(
                scope="something_else",
                provider="openrouter",
                result=result,
                prompt_text="p",
                response_text="r",
            )
        self.assertEqual(meta["action"], "AI_RUN")
        self.assertEqual(meta["prompt_tokens"], 0)
        self.assertIn("AI_RUN", logs.output[0])


class AlertTrackerTests(unittest.TestCase):
    def test_alert_fires_at_threshold_multiples(self):
        tracker = AuditAlertTracker(window_seconds=3600, thresholds={"PROCESSING_TIMEOUT": 2})

        fired = [tracker.record("PROCESSING_TIMEOUT") for _ in range(4)]

        self.assertEqual(fired, [False, True, False, True])
        self.assertEqual(tracker.count("PROCESSING_TIMEOUT"), 4)

    def test_untracked_codes_ignored(self):
        tracker = AuditAlertTracker(window_seconds=3600, thresholds={"PROCESSING_TIMEOUT": 1})
        self.assertFalse(tracker.record("FORBIDDEN"))
        self.assertEqual(tracker.count("FORBIDDEN"), 0)

    def test_window_expiry(self):
        tracker = AuditAlertTracker(window_seconds=60, thresholds={"AI_SERVICE_ERROR": 2})
        with patch("paragoniusz.utils.alerting.time.monotonic", return_value=1000.0):
            tracker.record("AI_SERVICE_ERROR")
        with patch("paragoniusz.utils.alerting.time.monotonic", return_value=1100.0):
            self.assertFalse(tracker.record("AI_SERVICE_ERROR"))
        self.assertEqual(tracker.count("AI_SERVICE_ERROR"), 1)

    def test_alert_logged_as_warning(self):
        tracker = AuditAlertTracker(window_seconds=3600, thresholds={"CATEGORIES_UNAVAILABLE": 1})
        with self.assertLogs("paragoniusz.utils.alerting", level="WARNING") as logs:
            tracker.record("CATEGORIES_UNAVAILABLE", {"user_id": "u"})
        self.assertIn("receipt_failure=CATEGORIES_UNAVAILABLE", logs.output[0])


class ErrorCatalogueTests(unittest.TestCase):
    def test_every_code_has_one_kind_and_status(self):
        expected = {
            "FEATURE_DISABLED": (ErrorKind.CONFIGURATION, 503),
            "AI_CONSENT_REQUIRED": (ErrorKind.DOMAIN, 403),
            "PROFILE_FETCH_FAILED": (ErrorKind.NETWORK, 500),
            "FORBIDDEN": (ErrorKind.DOMAIN, 403),
            "CATEGORY_FETCH_FAILED": (ErrorKind.NETWORK, 500),
            "CATEGORIES_UNAVAILABLE": (ErrorKind.CONFIGURATION, 500),
            "RATE_LIMIT_EXCEEDED": (ErrorKind.RATE_LIMIT, 429),
            "PROCESSING_TIMEOUT": (ErrorKind.TIMEOUT, 408),
            "EXTRACTION_FAILED": (ErrorKind.VALIDATION, 422),
            "AI_SERVICE_ERROR": (ErrorKind.API, 500),
            "PIPELINE_STATE_INVALID": (ErrorKind.CONFIGURATION, 500),
        }
        self.assertEqual(set(ERROR_MESSAGES), set(expected))
        for code, (kind, status) in expected.items():
            error = ReceiptProcessingError(code)
            self.assertIsInstance(error, AIError)
            self.assertEqual((error.kind, error.status_code), (kind, status), code)
            self.assertEqual(error.message, code)

    def test_domain_failures_come_from_the_catalogue(self):
        domain_codes = {code for code, entry in ERROR_MESSAGES.items() if entry.kind == ErrorKind.DOMAIN}
        self.assertEqual(domain_codes, {"AI_CONSENT_REQUIRED", "FORBIDDEN"})
        for code in domain_codes:
            self.assertFalse(ERROR_MESSAGES[code].retry, code)
        self.assertFalse(hasattr(ai_errors, "DomainError"))

    def test_unknown_code_uses_default_message(self):
        self.assertIs(get_error_message("NOPE"), DEFAULT_ERROR_MESSAGE)
        error = ReceiptProcessingError("NOPE", "detail")
        self.assertEqual(error.kind, ErrorKind.UNKNOWN)
        self.assertEqual(error.user_message, DEFAULT_ERROR_MESSAGE.title)
        self.assertEqual(str(error), "detail")
