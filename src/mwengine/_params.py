"""
Ordered query-parameter container for API requests.

Example:
    >>> p = Values({"action": "query", "token": "abc+"})
    >>> p.set("titles", "Main Page")
    >>> p.encode()
    'action=query&titles=Main+Page&token=abc%2B'
"""

from __future__ import annotations

from urllib.parse import urlencode


class Values(dict[str, str]):
    """
    Ordered mapping of parameter names to string values.

    Keys keep insertion order when encoded, except `token`, which is always
    emitted last: if a POST body gets truncated in transit the token goes
    missing and the server rejects the request instead of acting on a partial
    parameter set.
    """

    def set(self, key: str, value: object) -> None:
        """Set `key` to `value`, replacing any previous value."""
        self[key] = str(value)

    def get(self, key: str, default: str = "") -> str:  # type: ignore[override]
        """Return the value for `key`, or an empty string when it is absent."""
        return super().get(key, default)

    def copy(self) -> Values:
        return Values(self)

    def encode(self) -> str:
        """Encode as `application/x-www-form-urlencoded`."""
        items = [(k, v) for k, v in self.items() if k != "token"]
        if "token" in self:
            items.append(("token", self["token"]))
        return urlencode(items)
