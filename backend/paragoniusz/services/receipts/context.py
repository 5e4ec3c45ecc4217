from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, TypeVar

from pydantic import BaseModel, Field

from paragoniusz.services.ai.receipt_extract.contracts import ReceiptData

from .errors import ReceiptProcessingError

T = TypeVar("T")


class Category(BaseModel):
    id: str
    name: str


class ReceiptExpense(BaseModel):
    category_id: str
    category_name: str
    amount: str
    items: list[str] = Field(default_factory=list)


class ProcessReceiptResult(BaseModel):
    expenses: list[ReceiptExpense]
    total_amount: str
    currency: str = "PLN"
    receipt_date: str
    processing_time_ms: int


@dataclass
class ProcessingContext:
    """State of one pipeline run. Each step fills in its own fields."""

    file_path: str
    user_id: str
    start_time: float
    access_token: Optional[str] = None

    ai_consent_given: Optional[bool] = None
    categories: Optional[list[Category]] = None
    provider_raw_result: Optional[ReceiptData] = None
    result: Optional[ProcessReceiptResult] = None
    step_names: list[str] = field(default_factory=list)


def require_field(value: Optional[T], name: str) -> T:
    """Narrow an optional context field, failing the run if an earlier step left it unset."""
    if value is None:
        raise ReceiptProcessingError(
            "PIPELINE_STATE_INVALID",
            f"Pipeline state is missing '{name}'",
        )
    return value
