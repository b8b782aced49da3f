"""
Client for MediaWiki-style JSON APIs.

This module provides a synchronous client that sends GET/POST requests to a
single `api.php` endpoint, cooperates with the server's maxlag backpressure
protocol, and turns `error`/`warnings` envelopes into exceptions.

Example:
    >>> from mwengine import Client, Values
    >>> client = Client.new("https://en.wikipedia.org/w/api.php", "MyBot/1.0 (me@example.org)")
    >>> client.maxlag.enabled = True
    >>> client.login("MyBot", "s3cret")
    >>> doc = client.get(Values({"action": "query", "meta": "userinfo"}))
    >>> doc["query"]["userinfo"]["name"]
    'MyBot'
    >>> client.logout()
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Mapping
from enum import Enum
from types import TracebackType
from typing import Any, Protocol, assert_never
from urllib.parse import urlsplit

import requests

from mwengine._errors import (
    LoginError,
    MaxlagError,
    MWEngineError,
    ParseError,
    TransportError,
    extract_api_errors,
)
from mwengine._http import HttpClient
from mwengine._maxlag import Maxlag, MaxlagRetrying
from mwengine._params import Values
from mwengine._trace import dump_request, dump_response
from mwengine._utils import lookup_string

logger = logging.getLogger(__name__)

# Appended to every user agent. If you fork this package, please change it.
DEFAULT_USER_AGENT = "mwengine (Python requests)"

LAG_HEADER = "X-Database-Lag"
RETRY_AFTER_HEADER = "Retry-After"

# Non-negative ASCII base-10 integer
_RETRY_AFTER_PATTERN = re.compile(r"[0-9]+")

# Token types accepted by action=query&meta=tokens
CSRF_TOKEN = "csrf"
LOGIN_TOKEN = "login"
WATCH_TOKEN = "watch"
PATROL_TOKEN = "patrol"
ROLLBACK_TOKEN = "rollback"
USERRIGHTS_TOKEN = "userrights"
CREATEACCOUNT_TOKEN = "createaccount"


class AssertMode(Enum):
    """
    Identity the server must verify before acting on a request.

    Attributes:
        NONE: No `assert` parameter is sent.
        USER: Every request carries `assert=user`.
        BOT: Every request carries `assert=bot`.
    """
    NONE = "none"
    USER = "user"
    BOT = "bot"


class TraceSink(Protocol):
    """Anything with a text `write` method, e.g. `sys.stderr` or `io.StringIO`."""

    def write(self, text: str, /) -> Any: ...


class Client:
    """
    Synchronous API client.

    All state lives on the instance and is mutated without locking:
    `login()`, `logout()` and `get_token()` must not run concurrently on the
    same client.

    Attributes:
        api_url: The API endpoint (e.g. "https://example.org/w/api.php").
        user_agent: The User-Agent sent with every request.
        tokens: Cached tokens, keyed by token type.
        maxlag: Maxlag settings (see Maxlag).
        assertion: Current assertion mode. Login only moves it from NONE to
            USER; set BOT explicitly.
        request_timeout: HTTP request timeout in seconds.
        http_client: Transport used for every request.
    """

    def __init__(
        self,
        api_url: str,
        user_agent: str,
        http_client: HttpClient | None = None,
        trace: TraceSink | None = None,
    ):
        """
        Initialize the client.

        Maxlag settings, assertion mode and request timeout start from the
        global configuration (MWENGINE.config).

        Args:
            api_url: The API endpoint. Must be an absolute http(s) URL.
            user_agent: Identification of the calling tool. The library's own
                DEFAULT_USER_AGENT is appended to it.
            http_client: Custom transport. If None, uses SessionHttpClient.
            trace: Optional sink receiving a dump of every request and response.

        Raises:
            ValueError: If api_url is not a valid http(s) URL or user_agent is blank.
        """
        from mwengine._config import MWENGINE
        cfg = MWENGINE.config

        parsed = urlsplit(api_url)  # raises ValueError on malformed URLs
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid API URL: {api_url!r}")
        if not user_agent or not user_agent.strip():
            raise ValueError("user_agent cannot be empty.")

        if http_client is None:
            from mwengine._http import SessionHttpClient
            http_client = SessionHttpClient()

        self.api_url = api_url
        self.user_agent = f"{user_agent} {DEFAULT_USER_AGENT}"
        self.tokens: dict[str, str] = {}
        self.maxlag = Maxlag(
            enabled=cfg.maxlag.enabled,
            threshold=cfg.maxlag.threshold,
            retries=cfg.maxlag.retries,
        )
        self.assertion = AssertMode(cfg.client.assertion)
        self.request_timeout = cfg.client.request_timeout
        self.http_client: HttpClient = http_client
        self._trace = trace
        self._log_prefix = f"{parsed.netloc} | Client"

    @classmethod
    def new(cls, api_url: str, user_agent: str, **kwargs: Any) -> Client:
        """Create a client. Same arguments and errors as the constructor."""
        return cls(api_url, user_agent, **kwargs)

    def set_trace(self, sink: TraceSink | None) -> None:
        """
        Dump every request and response to `sink` from now on.

        Pass None to disable tracing (the default).
        """
        self._trace = sink

    def close(self) -> None:
        """Release the transport."""
        self.http_client.close()

    def __enter__(self) -> Client:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    # =========================================================================
    # Public request API
    # =========================================================================

    def get(self, params: Mapping[str, str]) -> dict[str, Any]:
        """
        Perform a GET request and return the decoded JSON document.

        Raises:
            TransportError: If the request could not be sent.
            ParseError: If the response is not a JSON object.
            APIError: If the response carries an error or warnings envelope.
            APIBusyError: If maxlag retries were exhausted.
        """
        return self._call_json(params, post=False)

    def get_raw(self, params: Mapping[str, str]) -> bytes:
        """
        Perform a GET request and return the body verbatim.

        Unlike `get`, the body is not checked for errors or warnings, which
        makes it the way to read a response that carries warnings.
        """
        return self._call_raw(params, post=False)

    def post(self, params: Mapping[str, str]) -> dict[str, Any]:
        """Perform a POST request. See `get`."""
        return self._call_json(params, post=True)

    def post_raw(self, params: Mapping[str, str]) -> bytes:
        """Perform a POST request and return the body verbatim. See `get_raw`."""
        return self._call_raw(params, post=True)

    # =========================================================================
    # Tokens and authentication
    # =========================================================================

    def get_token(self, token_type: str) -> str:
        """
        Return a token of the given type, fetching it if not cached.

        Login tokens are single-use and are never cached.

        Raises:
            ParseError: If the response does not contain the token.
            MWEngineError: Any error raised by `get`.
        """
        assert token_type, "Token type cannot be empty."

        if token_type != LOGIN_TOKEN and token_type in self.tokens:
            return self.tokens[token_type]

        document = self.get(Values({"action": "query", "meta": "tokens", "type": token_type}))
        token = lookup_string(document, "query", "tokens", f"{token_type}token")
        if token is None:
            raise ParseError(f"invalid API response: no '{token_type}' token in response")

        if token_type != LOGIN_TOKEN:
            self.tokens[token_type] = token
        return token

    def login(self, username: str, password: str) -> None:
        """
        Log in with the given credentials.

        On success, the assertion mode moves from NONE to USER. A client in
        BOT mode stays in BOT mode.

        Raises:
            LoginError: If the server answers with a result other than "Success".
            ParseError: If the login result cannot be read.
            MWEngineError: Any error raised while fetching the token or posting.
        """
        token = self.get_token(LOGIN_TOKEN)
        document = self.post(Values({
            "action": "login",
            "lgname": username,
            "lgpassword": password,
            "lgtoken": token,
        }))

        result = lookup_string(document, "login", "result")
        if result is None:
            raise ParseError("invalid API response: unable to read login result")
        if result != "Success":
            reason = lookup_string(document, "login", "reason") or ""
            logger.warning(f"{self._log_prefix} | ❌ Login as '{username}' failed: {result}")
            raise LoginError(code=result, info=reason)

        if self.assertion is AssertMode.NONE:
            self.assertion = AssertMode.USER
        logger.info(f"{self._log_prefix} | ✅ Logged in as '{username}'")

    def logout(self) -> None:
        """
        Log out and reset the assertion mode to NONE.

        The logout request is best-effort: its outcome is ignored, and the
        mode and token cache are reset even if the request fails.
        """
        self.assertion = AssertMode.NONE
        self.tokens.clear()
        try:
            self.get(Values({"action": "logout"}))
        except MWEngineError as e:
            logger.debug(
                f"{self._log_prefix} | Logout request failed (ignored): {e}",
                exc_info=logger.isEnabledFor(logging.DEBUG)
            )
        logger.info(f"{self._log_prefix} | Logged out")

    # =========================================================================
    # Decoders
    # =========================================================================

    def _call_json(self, params: Mapping[str, str], post: bool) -> dict[str, Any]:
        response = self._call(params, post)
        with response:
            body = self._read_body(response)

        try:
            document = json.loads(body)
        except ValueError as e:
            raise ParseError(f"invalid JSON response: {e}", cause=e) from e
        if not isinstance(document, dict):
            raise ParseError(f"invalid JSON response: expected an object, got {type(document).__name__}")

        api_error = extract_api_errors(document)
        if api_error is not None:
            raise api_error
        return document

    def _call_raw(self, params: Mapping[str, str], post: bool) -> bytes:
        response = self._call(params, post)
        with response:
            return self._read_body(response)

    @staticmethod
    def _read_body(response: requests.Response) -> bytes:
        try:
            return response.content
        except requests.RequestException as e:
            raise TransportError(f"error occurred while reading HTTP response: {e}", cause=e) from e

    # =========================================================================
    # Retry loop and dispatcher
    # =========================================================================

    def _call(self, params: Mapping[str, str], post: bool) -> requests.Response:
        """
        Dispatch a request, honoring maxlag backpressure when enabled.

        Only lag signals are retried; every other outcome returns or raises on
        the spot. The returned response is live and must be closed.

        Raises:
            APIBusyError: If every allowed attempt was lagged.
        """
        if not self.maxlag.enabled:
            return self._dispatch(params, post)

        retrying = MaxlagRetrying(self.maxlag, logger_prefix=self._log_prefix)
        for attempt in retrying:
            with attempt:
                return self._dispatch(params, post)

        raise retrying.exhausted()

    def _dispatch(self, params: Mapping[str, str], post: bool) -> requests.Response:
        """
        Build, send and classify a single request.

        The caller's params are not modified.

        Returns:
            The live response. The caller owns it and must close it.

        Raises:
            TransportError: If the request could not be built or sent.
            MaxlagError: If the server signaled replication lag. The response
                is drained and closed before raising.
            ParseError: If a lagged response has a non-integer Retry-After.
        """
        p = Values(params)
        p.set("format", "json")
        p.set("utf8", "")

        if self.maxlag.enabled and not p.get("maxlag"):
            p.set("maxlag", self.maxlag.threshold)

        match self.assertion:
            case AssertMode.NONE:
                pass
            case AssertMode.USER:
                p.set("assert", "user")
            case AssertMode.BOT:
                p.set("assert", "bot")
            case _:
                assert_never(self.assertion)

        method = "POST" if post else "GET"
        headers = {"User-Agent": self.user_agent}
        if post:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            request = requests.Request(method, self.api_url, data=p.encode(), headers=headers)
        else:
            request = requests.Request(method, f"{self.api_url}?{p.encode()}", headers=headers)

        try:
            prepared = self.http_client.prepare(request)
        except requests.RequestException as e:
            # Parameter values may hold credentials: only keys are reported.
            raise TransportError(
                f"unable to create HTTP request (method: {method}, params: {list(p)}): {e}",
                cause=e,
            ) from e

        logger.debug(f"{self._log_prefix} | {method} action={p.get('action') or '-'}")
        self._write_trace("request", dump_request, prepared)

        try:
            response = self.http_client.send(prepared, timeout=self.request_timeout)
        except requests.RequestException as e:
            raise TransportError(f"error occurred during HTTP request: {e}", cause=e) from e

        if self._trace is not None:
            # The dump reads the body: a broken stream must fail here, not in the dump.
            try:
                self._read_body(response)
            except TransportError:
                response.close()
                raise
        self._write_trace("response", dump_response, response)

        lag = response.headers.get(LAG_HEADER)
        if lag:
            with response:
                raw_retry_after = response.headers.get(RETRY_AFTER_HEADER, "")
                if not _RETRY_AFTER_PATTERN.fullmatch(raw_retry_after):
                    raise ParseError(
                        f"invalid {RETRY_AFTER_HEADER} header on lagged response: {raw_retry_after!r}"
                    )
                retry_after = int(raw_retry_after)
                body = self._read_body(response).decode(response.encoding or "utf-8", errors="replace")
            raise MaxlagError(retry_after=retry_after, body=body, lag=lag)

        return response

    def _write_trace(self, what: str, dumper: Callable[[Any], str], message: Any) -> None:
        if self._trace is None:
            return
        try:
            text = dumper(message)
        except Exception as e:
            text = f"Err dumping {what}: {e}\n"
        try:
            self._trace.write(text)
        except Exception as e:
            logger.debug(
                f"{self._log_prefix} | Trace write failed (ignored): {e}",
                exc_info=logger.isEnabledFor(logging.DEBUG)
            )
