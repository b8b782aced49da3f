"""Tests for the Values parameter container."""

import unittest

from mwengine import Values


class TestValues(unittest.TestCase):

    def test_set_coerces_to_string(self):
        p = Values()
        p.set("limit", 50)
        self.assertEqual(p["limit"], "50")

    def test_set_replaces_existing_value(self):
        p = Values({"action": "query"})
        p.set("action", "parse")
        self.assertEqual(p, {"action": "parse"})

    def test_get_missing_key_is_empty_string(self):
        self.assertEqual(Values().get("maxlag"), "")

    def test_get_empty_value_is_empty_string(self):
        self.assertEqual(Values({"utf8": ""}).get("utf8"), "")

    def test_encode_keeps_insertion_order(self):
        p = Values()
        p.set("b", "2")
        p.set("a", "1")
        p.set("c", "3")
        self.assertEqual(p.encode(), "b=2&a=1&c=3")

    def test_encode_puts_token_last(self):
        p = Values({"token": "abc+\\", "action": "edit", "title": "Main Page"})
        self.assertEqual(p.encode(), "action=edit&title=Main+Page&token=abc%2B%5C")

    def test_encode_empty_value(self):
        self.assertEqual(Values({"utf8": ""}).encode(), "utf8=")

    def test_copy_is_independent_values(self):
        original = Values({"action": "query"})
        clone = original.copy()
        clone.set("format", "json")

        self.assertIsInstance(clone, Values)
        self.assertNotIn("format", original)


if __name__ == "__main__":
    unittest.main()
