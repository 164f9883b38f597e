# pos/tests/test_item_keys.py

import uuid

from django.test import SimpleTestCase

from pos.services.exceptions import ValidationFailed
from pos.services.item_keys import make_item_key

PRODUCT = uuid.UUID("11111111-1111-4111-8111-111111111111")
VARIATION = uuid.UUID("22222222-2222-4222-8222-222222222222")


class ItemKeyTests(SimpleTestCase):
    def test_key_is_stable_across_attribute_order(self):
        a = make_item_key(PRODUCT, VARIATION, {"size": "L", "colour": "red"}, {"tags": ["b", "a"], "note": "x"})
        b = make_item_key(PRODUCT, VARIATION, {"colour": "red", "size": "L"}, {"note": "x", "tags": ["a", "b"]})

        self.assertEqual(a, b)
        self.assertEqual(len(a), 32)

    def test_key_is_stable_across_calls(self):
        # Pinned: changing the canonical encoding would split existing carts
        first = make_item_key(PRODUCT)
        self.assertEqual(first, make_item_key(str(PRODUCT), None, {}, {}))
        self.assertEqual(first, make_item_key(PRODUCT, 0))

    def test_different_configurations_differ(self):
        base = make_item_key(PRODUCT)
        self.assertNotEqual(base, make_item_key(PRODUCT, VARIATION))
        self.assertNotEqual(base, make_item_key(PRODUCT, None, {"size": "L"}))
        self.assertNotEqual(base, make_item_key(PRODUCT, None, None, {"engraving": "AB"}))
        self.assertNotEqual(
            make_item_key(PRODUCT, None, {"size": "L"}),
            make_item_key(PRODUCT, None, {"size": "M"}),
        )

    def test_values_are_compared_as_strings(self):
        self.assertEqual(
            make_item_key(PRODUCT, None, {"pack": 6}),
            make_item_key(PRODUCT, None, {"pack": "6"}),
        )

    def test_rejects_non_mapping_data(self):
        with self.assertRaises(ValidationFailed):
            make_item_key(PRODUCT, None, ["size", "L"])
        with self.assertRaises(ValidationFailed):
            make_item_key(PRODUCT, None, None, {"nested": {"a": 1}})
