"""
mwengine: resilient request engine for MediaWiki-style JSON APIs.

Quick Start:
    >>> from mwengine import Client, Values
    >>> client = Client.new("https://test.wikipedia.org/w/api.php", "MyTool/0.1 (me@example.org)")
    >>> doc = client.get(Values({"action": "query", "meta": "siteinfo"}))
    >>> print(doc["query"]["general"]["sitename"])

Maxlag:
    >>> client.maxlag.enabled = True     # send maxlag=5, retry lagged responses
    >>> client.maxlag.retries = 5        # total attempts per call

Authentication:
    >>> client.login("MyBot", "s3cret")  # assertion mode NONE -> USER
    >>> client.assertion = AssertMode.BOT
    >>> client.logout()                  # assertion mode -> NONE

Global Configuration:
    >>> from mwengine import MWENGINE
    >>> MWENGINE.configure(maxlag={"enabled": True, "retries": 5})

Main Classes:
    - Client: The API client.
    - Values: Ordered request-parameter container.
    - AssertMode: Assertion mode enum (NONE, USER, BOT).
    - Maxlag: Per-client maxlag settings.
    - HttpClient / SessionHttpClient: Transport abstraction and default implementation.

Errors:
    - MWEngineError: Base class.
    - TransportError: Request could not be sent.
    - ParseError: Response could not be understood.
    - APIError / APIWarningsError / LoginError: Server-reported failures.
    - MaxlagError: Lag signal, a TransportError (only surfaced when maxlag handling is off).
    - APIBusyError: Maxlag retries exhausted.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("mwengine")

from mwengine._client import (
    CREATEACCOUNT_TOKEN,
    CSRF_TOKEN,
    DEFAULT_USER_AGENT,
    LOGIN_TOKEN,
    PATROL_TOKEN,
    ROLLBACK_TOKEN,
    USERRIGHTS_TOKEN,
    WATCH_TOKEN,
    AssertMode,
    Client,
)
from mwengine._config import (
    MWENGINE,
    ClientConfig,
    ConfigEnvVarError,
    ConfigValidationError,
    MaxlagConfig,
    MWEngineConfig,
)
from mwengine._errors import (
    APIBusyError,
    APIError,
    APIWarning,
    APIWarningsError,
    LoginError,
    MaxlagError,
    MWEngineError,
    ParseError,
    TransportError,
    extract_api_errors,
)
from mwengine._http import HttpClient, SessionHttpClient
from mwengine._maxlag import Maxlag
from mwengine._params import Values

__all__ = [
    "__version__",
    # Client
    "Client",
    "AssertMode",
    "DEFAULT_USER_AGENT",
    "Values",
    "Maxlag",
    # Tokens
    "CSRF_TOKEN",
    "LOGIN_TOKEN",
    "WATCH_TOKEN",
    "PATROL_TOKEN",
    "ROLLBACK_TOKEN",
    "USERRIGHTS_TOKEN",
    "CREATEACCOUNT_TOKEN",
    # Configuration
    "MWENGINE",
    "MWEngineConfig",
    "MaxlagConfig",
    "ClientConfig",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # HTTP Client
    "HttpClient",
    "SessionHttpClient",
    # Errors
    "MWEngineError",
    "TransportError",
    "ParseError",
    "APIError",
    "APIWarning",
    "APIWarningsError",
    "LoginError",
    "MaxlagError",
    "APIBusyError",
    "extract_api_errors",
]
