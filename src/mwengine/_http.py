"""
HTTP transport abstraction for the mwengine client.

The client never talks to `requests` directly: it builds a `requests.Request`,
asks the transport to prepare it (merging session cookies) and then to send
it. Splitting prepare from send lets the client dump the exact outgoing
request to a trace sink before it hits the wire.

Available implementations:
    - SessionHttpClient: Backed by a `requests.Session` with a persistent cookie jar. Default.

Example:
    >>> from mwengine._http import SessionHttpClient
    >>> transport = SessionHttpClient()
    >>> prepared = transport.prepare(requests.Request("GET", "https://example.org/w/api.php"))
    >>> response = transport.send(prepared, timeout=30)
"""

import logging
from abc import ABC, abstractmethod
import sys

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override

import requests

logger = logging.getLogger(__name__)


# =============================================================================
# Abstract Base Class
# =============================================================================


class HttpClient(ABC):
    """
    Abstract base class for HTTP transports.

    Implementations own the cookie storage that keeps the login session alive
    between requests.

    Example:
        >>> class MyHttpClient(HttpClient):
        ...     def prepare(self, request):
        ...         return request.prepare()
        ...     def send(self, prepared, timeout=30):
        ...         return requests.Session().send(prepared, timeout=timeout, stream=True)
    """

    @abstractmethod
    def prepare(self, request: requests.Request) -> requests.PreparedRequest:
        """
        Turn a request into its final wire form.

        Args:
            request: The request built by the client.

        Returns:
            The prepared request, including any stored cookies.
        """
        pass

    @abstractmethod
    def send(self, prepared: requests.PreparedRequest, timeout: int = 30) -> requests.Response:
        """
        Send a prepared request.

        The returned response body must be left unread (streamed); whoever
        receives it is responsible for closing it.

        Args:
            prepared: The request returned by `prepare`.
            timeout: Request timeout in seconds.

        Returns:
            The HTTP response.

        Raises:
            requests.RequestException: If the HTTP request fails.
        """
        pass

    def close(self) -> None:
        """Release any pooled connections. No-op by default."""
        return None


# =============================================================================
# requests.Session Implementation
# =============================================================================


class SessionHttpClient(HttpClient):
    """
    HTTP transport backed by a `requests.Session`.

    The session's cookie jar persists the login session across calls, so a
    `login()` followed by `post()` on the same client is authenticated.

    Args:
        session: Session to use. If None, a new session is created and owned
            by this transport (closed by `close()`).
    """

    def __init__(self, session: requests.Session | None = None):
        self._owns_session = session is None
        self.session: requests.Session = session if session is not None else requests.Session()

    @property
    def cookies(self) -> requests.cookies.RequestsCookieJar:
        """The persistent cookie jar."""
        return self.session.cookies

    @override
    def prepare(self, request: requests.Request) -> requests.PreparedRequest:
        assert request is not None, "Request cannot be None."
        return self.session.prepare_request(request)

    @override
    def send(self, prepared: requests.PreparedRequest, timeout: int = 30) -> requests.Response:
        """
        Send the request through the session with a streamed body.

        Raises:
            AssertionError: If timeout is invalid.
            requests.RequestException: If the HTTP request fails.
        """
        assert timeout is not None, "Timeout cannot be None."
        assert timeout > 0, "Timeout must be greater than 0."

        return self.session.send(prepared, timeout=timeout, stream=True)

    @override
    def close(self) -> None:
        if self._owns_session:
            self.session.close()
