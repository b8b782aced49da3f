"""Tests for HTTP transport implementations."""

from unittest.mock import MagicMock

import pytest
import requests

from mwengine import HttpClient, SessionHttpClient


class TestHttpClientBase:

    def test_cannot_instantiate_abstract_class(self):
        with pytest.raises(TypeError):
            HttpClient()  # type: ignore[abstract]

    def test_close_is_noop_by_default(self):
        class MinimalHttpClient(HttpClient):
            def prepare(self, request):
                return request.prepare()

            def send(self, prepared, timeout=30):
                raise NotImplementedError

        assert MinimalHttpClient().close() is None


class TestSessionHttpClient:

    def test_creates_own_session_by_default(self):
        client = SessionHttpClient()

        assert isinstance(client.session, requests.Session)
        assert client.cookies is client.session.cookies

    def test_prepare_merges_session_cookies(self):
        session = requests.Session()
        session.cookies.set("enwikiSession", "abc123", domain="example.org", path="/")
        client = SessionHttpClient(session=session)

        prepared = client.prepare(requests.Request("GET", "https://example.org/w/api.php?action=query"))

        assert prepared.headers["Cookie"] == "enwikiSession=abc123"

    def test_send_streams_with_timeout(self):
        session = MagicMock(spec=requests.Session)
        response = MagicMock(spec=requests.Response)
        session.send.return_value = response
        client = SessionHttpClient(session=session)
        prepared = requests.Request("GET", "https://example.org/w/api.php").prepare()

        result = client.send(prepared, timeout=12)

        assert result is response
        session.send.assert_called_once_with(prepared, timeout=12, stream=True)

    def test_send_propagates_request_exceptions(self):
        session = MagicMock(spec=requests.Session)
        session.send.side_effect = requests.ConnectionError("refused")
        client = SessionHttpClient(session=session)
        prepared = requests.Request("GET", "https://example.org/w/api.php").prepare()

        with pytest.raises(requests.ConnectionError):
            client.send(prepared)

    def test_send_rejects_non_positive_timeout(self):
        client = SessionHttpClient(session=MagicMock(spec=requests.Session))
        prepared = requests.Request("GET", "https://example.org/w/api.php").prepare()

        with pytest.raises(AssertionError, match="Timeout must be greater than 0"):
            client.send(prepared, timeout=0)

    def test_close_closes_owned_session(self):
        client = SessionHttpClient()
        client.session = MagicMock(spec=requests.Session)

        client.close()

        client.session.close.assert_called_once()

    def test_close_leaves_external_session_open(self):
        session = MagicMock(spec=requests.Session)
        client = SessionHttpClient(session=session)

        client.close()

        session.close.assert_not_called()
