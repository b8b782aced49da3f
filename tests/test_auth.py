"""Tests for token fetching and the login/logout state machine."""

import unittest

import requests

from fakes import FakeHttpClient, make_response
from mwengine import (
    CSRF_TOKEN,
    LOGIN_TOKEN,
    MWENGINE,
    APIError,
    AssertMode,
    Client,
    LoginError,
    ParseError,
    TransportError,
)

API_URL = "https://example.org/w/api.php"


def token_response(token_type: str, token: str) -> requests.Response:
    return make_response({"batchcomplete": "", "query": {"tokens": {f"{token_type}token": token}}})


def login_response(result: str, **extra: str) -> requests.Response:
    return make_response({"login": {"result": result, **extra}})


class AuthTestCase(unittest.TestCase):

    def setUp(self):
        MWENGINE.reset()
        self.transport = FakeHttpClient()
        self.client = Client(API_URL, "TestAgent/1.0", http_client=self.transport)

    def tearDown(self):
        MWENGINE.reset()


class TestGetToken(AuthTestCase):

    def test_fetches_token_with_query_meta_tokens(self):
        self.transport.enqueue(token_response("csrf", "abc+\\"))

        token = self.client.get_token(CSRF_TOKEN)

        self.assertEqual(token, "abc+\\")
        params = self.transport.sent_params[0]
        self.assertEqual(self.transport.sent[0].method, "GET")
        self.assertEqual(params["action"], "query")
        self.assertEqual(params["meta"], "tokens")
        self.assertEqual(params["type"], "csrf")

    def test_caches_token(self):
        self.transport.enqueue(token_response("csrf", "cached"))

        first = self.client.get_token(CSRF_TOKEN)
        second = self.client.get_token(CSRF_TOKEN)

        self.assertEqual(first, second)
        self.assertEqual(len(self.transport.sent), 1)
        self.assertEqual(self.client.tokens, {"csrf": "cached"})

    def test_login_token_is_never_cached(self):
        self.transport.enqueue(token_response("login", "one"), token_response("login", "two"))

        self.assertEqual(self.client.get_token(LOGIN_TOKEN), "one")
        self.assertEqual(self.client.get_token(LOGIN_TOKEN), "two")
        self.assertNotIn("login", self.client.tokens)

    def test_missing_token_raises_parse_error(self):
        self.transport.enqueue(make_response({"query": {"tokens": {}}}))

        with self.assertRaises(ParseError):
            self.client.get_token(CSRF_TOKEN)

        self.assertEqual(self.client.tokens, {})

    def test_api_error_propagates(self):
        self.transport.enqueue(make_response({"error": {"code": "badvalue", "info": "Unrecognized value"}}))

        with self.assertRaises(APIError) as ctx:
            self.client.get_token("nonsense")

        self.assertEqual(ctx.exception.code, "badvalue")


class TestLogin(AuthTestCase):

    def test_success_moves_none_to_user(self):
        self.transport.enqueue(token_response("login", "tok"), login_response("Success", lgusername="Bot"))

        self.client.login("Bot", "s3cret")

        self.assertIs(self.client.assertion, AssertMode.USER)

    def test_posts_credentials_and_token(self):
        self.transport.enqueue(token_response("login", "tok+\\"), login_response("Success"))

        self.client.login("Bot", "s3cret")

        login_request = self.transport.sent[1]
        params = self.transport.sent_params[1]
        self.assertEqual(login_request.method, "POST")
        self.assertEqual(params["action"], "login")
        self.assertEqual(params["lgname"], "Bot")
        self.assertEqual(params["lgpassword"], "s3cret")
        self.assertEqual(params["lgtoken"], "tok+\\")

    def test_failed_result_raises_login_error_and_keeps_none(self):
        self.transport.enqueue(token_response("login", "tok"), login_response("Failed", reason="Incorrect password"))

        with self.assertRaises(LoginError) as ctx:
            self.client.login("Bot", "wrong")

        self.assertIsInstance(ctx.exception, APIError)
        self.assertEqual(ctx.exception.code, "Failed")
        self.assertEqual(ctx.exception.info, "Incorrect password")
        self.assertIs(self.client.assertion, AssertMode.NONE)

    def test_unreadable_result_raises_parse_error(self):
        self.transport.enqueue(token_response("login", "tok"), make_response({"login": {"result": 1}}))

        with self.assertRaises(ParseError):
            self.client.login("Bot", "s3cret")

        self.assertIs(self.client.assertion, AssertMode.NONE)

    def test_missing_login_object_raises_parse_error(self):
        self.transport.enqueue(token_response("login", "tok"), make_response({"batchcomplete": ""}))

        with self.assertRaises(ParseError):
            self.client.login("Bot", "s3cret")

    def test_bot_mode_is_not_changed_by_login(self):
        self.client.assertion = AssertMode.BOT
        self.transport.enqueue(token_response("login", "tok"), login_response("Success"))

        self.client.login("Bot", "s3cret")

        self.assertIs(self.client.assertion, AssertMode.BOT)

    def test_user_mode_stays_user_after_second_login(self):
        self.client.assertion = AssertMode.USER
        self.transport.enqueue(token_response("login", "tok"), login_response("Success"))

        self.client.login("Bot", "s3cret")

        self.assertIs(self.client.assertion, AssertMode.USER)

    def test_later_requests_assert_user(self):
        self.transport.enqueue(
            token_response("login", "tok"),
            login_response("Success"),
            make_response({"query": {}}),
        )

        self.client.login("Bot", "s3cret")
        self.client.get({"action": "query", "meta": "userinfo"})

        self.assertNotIn("assert", self.transport.sent_params[0])
        self.assertNotIn("assert", self.transport.sent_params[1])
        self.assertEqual(self.transport.sent_params[2]["assert"], "user")

    def test_token_fetch_failure_propagates(self):
        self.transport.enqueue(requests.ConnectionError("down"))

        with self.assertRaises(TransportError):
            self.client.login("Bot", "s3cret")

        self.assertEqual(len(self.transport.sent), 1)


class TestLogout(AuthTestCase):

    def test_resets_mode_to_none_from_each_state(self):
        for mode in AssertMode:
            with self.subTest(mode=mode):
                self.client.assertion = mode
                self.transport.enqueue(make_response({}))

                self.client.logout()

                self.assertIs(self.client.assertion, AssertMode.NONE)

    def test_sends_get_action_logout_without_assert(self):
        self.client.assertion = AssertMode.USER
        self.transport.enqueue(make_response({}))

        self.client.logout()

        sent = self.transport.sent[0]
        self.assertEqual(sent.method, "GET")
        self.assertEqual(self.transport.sent_params[0]["action"], "logout")
        self.assertNotIn("assert", self.transport.sent_params[0])

    def test_transport_failure_is_ignored(self):
        self.client.assertion = AssertMode.USER
        self.transport.enqueue(requests.ConnectionError("down"))

        self.client.logout()

        self.assertIs(self.client.assertion, AssertMode.NONE)

    def test_api_error_is_ignored(self):
        self.client.assertion = AssertMode.BOT
        self.transport.enqueue(make_response({"error": {"code": "badtoken", "info": "Invalid CSRF token."}}))

        self.client.logout()

        self.assertIs(self.client.assertion, AssertMode.NONE)

    def test_clears_token_cache(self):
        self.client.tokens["csrf"] = "stale"
        self.transport.enqueue(make_response({}))

        self.client.logout()

        self.assertEqual(self.client.tokens, {})


if __name__ == "__main__":
    unittest.main()
