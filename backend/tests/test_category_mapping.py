import unittest

from paragoniusz.services.ai.receipt_extract.contracts import ReceiptItem
from paragoniusz.services.receipts.category_mapping import CategoryMappingService
from paragoniusz.services.receipts.context import Category

CATEGORIES = [
    Category(id="c-food", name="Żywność"),
    Category(id="c-hygiene", name="Higiena"),
    Category(id="c-home", name="Artykuły domowe"),
    Category(id="c-other", name="Inne"),
]


def _item(name, amount, category):
    return ReceiptItem(name=name, amount=amount, category=category)


class FindCategoryTests(unittest.TestCase):
    def setUp(self):
        self.mapper = CategoryMappingService()

    def test_exact_match_is_case_insensitive(self):
        self.assertEqual(self.mapper.find_category("żywność", CATEGORIES).id, "c-food")
        self.assertEqual(self.mapper.find_category("HIGIENA", CATEGORIES).id, "c-hygiene")

    def test_substring_match_either_direction(self):
        self.assertEqual(self.mapper.find_category("domowe", CATEGORIES).id, "c-home")
        self.assertEqual(self.mapper.find_category("higiena osobista", CATEGORIES).id, "c-hygiene")

    def test_unknown_label_falls_back_to_other(self):
        self.assertEqual(self.mapper.find_category("elektronika", CATEGORIES).id, "c-other")

    def test_english_other_fallback(self):
        categories = [Category(id="a", name="Food"), Category(id="b", name="Other")]
        self.assertEqual(self.mapper.find_category("tools", categories).id, "b")

    def test_first_category_when_no_fallback_exists(self):
        categories = [Category(id="a", name="Food"), Category(id="b", name="Transport")]
        self.assertEqual(self.mapper.find_category("tools", categories).id, "a")

    def test_blank_label_uses_fallback(self):
        self.assertEqual(self.mapper.find_category("  ", CATEGORIES).id, "c-other")


class MapExpensesTests(unittest.TestCase):
    def setUp(self):
        self.mapper = CategoryMappingService()

    def test_groups_by_category_in_first_seen_order(self):
        items = [
            _item("Chleb", 4.99, "żywność"),
            _item("Mydło", 3.5, "higiena"),
            _item("Mleko", 3.79, "Żywność"),
        ]

        expenses = self.mapper.map_expenses_with_categories(items, CATEGORIES)

        self.assertEqual([e.category_id for e in expenses], ["c-food", "c-hygiene"])
        food = expenses[0]
        self.assertEqual(food.category_name, "Żywność")
        self.assertEqual(food.amount, "8.78")
        self.assertEqual(food.items, ["Chleb - 4.99", "Mleko - 3.79"])
        self.assertEqual(expenses[1].amount, "3.50")
        self.assertEqual(expenses[1].items, ["Mydło - 3.50"])

    def test_two_items_in_one_category_are_summed(self):
        items = [_item("Chleb", 5.50, "żywność"), _item("Mleko", 3.00, "żywność")]

        expenses = self.mapper.map_expenses_with_categories(items, CATEGORIES)

        self.assertEqual(len(expenses), 1)
        self.assertEqual(expenses[0].category_id, "c-food")
        self.assertEqual(expenses[0].amount, "8.50")
        self.assertEqual(expenses[0].items, ["Chleb - 5.50", "Mleko - 3.00"])

    def test_labels_resolving_to_same_category_share_a_group(self):
        items = [
            _item("Kabel", 19.99, "elektronika"),
            _item("Zapalniczka", 2.5, "inne"),
        ]

        expenses = self.mapper.map_expenses_with_categories(items, CATEGORIES)

        self.assertEqual(len(expenses), 1)
        self.assertEqual(expenses[0].category_id, "c-other")
        self.assertEqual(expenses[0].amount, "22.49")

    def test_decimal_sum_has_no_float_drift(self):
        items = [_item(f"Item {n}", 0.1, "żywność") for n in range(3)]

        expenses = self.mapper.map_expenses_with_categories(items, CATEGORIES)

        # 0.1 + 0.1 + 0.1 in float is 0.30000000000000004
        self.assertEqual(expenses[0].amount, "0.30")

    def test_amounts_rounded_half_up(self):
        expenses = self.mapper.map_expenses_with_categories([_item("Ser", 2.005, "żywność")], CATEGORIES)
        self.assertEqual(expenses[0].items, ["Ser - 2.01"])
