"""Tests for internal utilities."""

import unittest

from mwengine._utils import lookup, lookup_string


class TestLookup(unittest.TestCase):

    def test_nested_value(self):
        document = {"query": {"tokens": {"csrftoken": "+\\"}}}
        self.assertEqual(lookup(document, "query", "tokens", "csrftoken"), "+\\")

    def test_missing_key(self):
        self.assertIsNone(lookup({"query": {}}, "query", "tokens"))

    def test_non_object_step(self):
        self.assertIsNone(lookup({"query": ["a"]}, "query", "tokens"))

    def test_empty_path_returns_document(self):
        document = {"a": 1}
        self.assertIs(lookup(document), document)


class TestLookupString(unittest.TestCase):

    def test_string_value(self):
        self.assertEqual(lookup_string({"login": {"result": "Success"}}, "login", "result"), "Success")

    def test_non_string_value(self):
        self.assertIsNone(lookup_string({"login": {"result": 1}}, "login", "result"))


if __name__ == "__main__":
    unittest.main()
