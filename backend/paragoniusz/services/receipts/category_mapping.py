"""Maps model-produced category labels onto the user's real categories."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from paragoniusz.services.ai.receipt_extract.contracts import ReceiptItem

from .context import Category, ReceiptExpense

FALLBACK_CATEGORY_NAMES = ("inne", "other")
_CENT = Decimal("0.01")


def to_money(value: float | Decimal) -> Decimal:
    # str() keeps 15.45 as 15.45 instead of its binary float expansion.
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return str(value.quantize(_CENT, rounding=ROUND_HALF_UP))


class CategoryMappingService:
    def find_category(self, label: str, categories: Sequence[Category]) -> Category:
        """Resolve *label* to a category.

        Order: exact case-insensitive name, substring match in either
        direction, a fallback category named ``inne``/``other``, then the
        first category. *categories* must not be empty.
        """
        needle = (label or "").strip().lower()

        for category in categories:
            if category.name.lower() == needle:
                return category

        if needle:
            for category in categories:
                name = category.name.lower()
                if needle in name or name in needle:
                    return category

        fallback = self._fallback(categories)
        return fallback if fallback is not None else categories[0]

    def map_expenses_with_categories(
        self,
        items: Sequence[ReceiptItem],
        categories: Sequence[Category],
    ) -> list[ReceiptExpense]:
        """Group items by resolved category id, keeping first-seen order."""
        groups: dict[str, dict] = {}
        for item in items:
            category = self.find_category(item.category, categories)
            group = groups.get(category.id)
            if group is None:
                group = {"category": category, "amount": Decimal("0.00"), "items": []}
                groups[category.id] = group
            amount = to_money(item.amount)
            group["amount"] += amount
            group["items"].append(f"{item.name} - {format_money(amount)}")

        return [
            ReceiptExpense(
                category_id=group["category"].id,
                category_name=group["category"].name,
                amount=format_money(group["amount"]),
                items=group["items"],
            )
            for group in groups.values()
        ]

    @staticmethod
    def _fallback(categories: Sequence[Category]) -> Optional[Category]:
        for category in categories:
            if category.name.lower() in FALLBACK_CATEGORY_NAMES:
                return category
        return None
