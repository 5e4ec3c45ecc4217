import os

import pytest

from paragoniusz.core.config import get_settings
from paragoniusz.utils.alerting import alert_tracker

# Keep a developer's local .env / shell exports out of the tests.
for _name in ("ENABLE_AI_RECEIPT_PROCESSING", "AI_RECEIPT_PROCESSING", "AI_DEBUG_STORE_RAW"):
    os.environ.pop(_name, None)


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    # Tests patch env vars and clear the settings cache. Ensure we don't leak
    # a cached Settings instance across tests.
    get_settings.cache_clear()
    alert_tracker.reset()
    yield
    get_settings.cache_clear()
    alert_tracker.reset()
