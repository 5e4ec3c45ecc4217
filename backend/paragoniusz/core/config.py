from functools import lru_cache
import json
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        validate_by_name=True,
        populate_by_name=True,
    )
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: str = ""

    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_default_model: str = "openai/gpt-4o-mini"
    openrouter_referer: str = "https://paragoniusz.app"
    openrouter_title: str = "Paragoniusz"

    ai_timeout_seconds: float = Field(default=20.0, gt=0)
    ai_retry_attempts: int = Field(default=3, ge=1, le=10)
    ai_retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    ai_non_retryable_kinds_raw: str = Field(
        default="authentication,validation,timeout",
        validation_alias=AliasChoices("AI_NON_RETRYABLE_KINDS", "ai_non_retryable_kinds_raw"),
    )
    ai_temperature: float = 0.1
    ai_max_tokens: int = 2000
    ai_debug_store_raw: bool = False

    enable_ai_receipt_processing: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "ENABLE_AI_RECEIPT_PROCESSING",
            "AI_RECEIPT_PROCESSING",
            "enable_ai_receipt_processing",
        ),
    )
    # "edge" calls the Supabase Edge Function, "local" runs extraction in-process.
    receipt_extraction_mode: str = "edge"
    receipt_function_name: str = "process-receipt"
    receipts_bucket: str = "receipts"
    receipt_rate_limit_per_min: int = 10
    receipt_rate_limit_window_seconds: int = 60
    receipt_currency: str = "PLN"

    @field_validator("receipt_extraction_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value):
        if value is None:
            return "edge"
        mode = str(value).strip().lower()
        if mode not in {"edge", "local"}:
            raise ValueError("RECEIPT_EXTRACTION_MODE must be 'edge' or 'local'")
        return mode

    @property
    def ai_non_retryable_kinds(self) -> list[str]:
        return [item.lower() for item in _parse_list_value(self.ai_non_retryable_kinds_raw)]

    @property
    def supabase_server_key(self) -> str:
        return self.supabase_service_role_key or self.supabase_key


@lru_cache
def get_settings() -> Settings:
    return Settings()
