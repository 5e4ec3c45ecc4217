"""Receipt extraction contracts: the structured payload returned by the model."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field

from paragoniusz.services.ai.common.providers.base import ResponseSchema

RECEIPT_CATEGORIES: tuple[str, ...] = (
    "żywność",
    "transport",
    "media",
    "rozrywka",
    "zdrowie",
    "edukacja",
    "odzież",
    "restauracje",
    "mieszkanie",
    "ubezpieczenia",
    "higiena",
    "prezenty",
    "podróże",
    "subskrypcje",
    "inne",
)

# receipts/{user_uuid}/{file_uuid}.{ext}
RECEIPT_PATH_RE = re.compile(
    r"^receipts/[a-f0-9-]{36}/[a-f0-9-]{36}\.(jpg|jpeg|png|webp|heic)$",
    re.IGNORECASE,
)

MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "heic": "image/heic",
}

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class ReceiptItem(BaseModel):
    name: str
    # Discount lines (RABAT) are negative, free items are 0.
    amount: float
    category: str


class ReceiptData(BaseModel):
    """Raw extraction result: one entry per receipt line."""

    items: list[ReceiptItem]
    total: float
    date: str = Field(..., pattern=DATE_PATTERN)


RECEIPT_JSON_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Item name from receipt"},
                    "amount": {"type": "number", "description": "Final item price in PLN"},
                    "category": {
                        "type": "string",
                        "description": "Category name, one of the allowed values",
                        "enum": list(RECEIPT_CATEGORIES),
                    },
                },
                "required": ["name", "amount", "category"],
                "additionalProperties": False,
            },
        },
        "total": {"type": "number", "description": "Total amount from receipt in PLN"},
        "date": {
            "type": "string",
            "description": "Receipt date in YYYY-MM-DD format",
            "pattern": DATE_PATTERN,
        },
    },
    "required": ["items", "total", "date"],
    "additionalProperties": False,
}

RECEIPT_RESPONSE_SCHEMA = ResponseSchema(name="receipt_extraction", schema=RECEIPT_JSON_SCHEMA)


def mime_type_for(file_path: str) -> str:
    ext = file_path.rsplit(".", 1)[-1].lower() if "." in file_path else ""
    return MIME_TYPES.get(ext, "image/jpeg")
