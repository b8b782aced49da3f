"""
Wire dumps of requests and responses for the client's trace sink.

The format follows the shape of a raw HTTP/1.1 message: a start line, one
header per line, a blank line and the body.
"""

from __future__ import annotations

from urllib.parse import urlsplit

import requests


def dump_request(prepared: requests.PreparedRequest) -> str:
    """Render an outgoing request, body included."""
    url = urlsplit(prepared.url or "")
    target = url.path or "/"
    if url.query:
        target = f"{target}?{url.query}"

    lines = [f"{prepared.method} {target} HTTP/1.1", f"Host: {url.netloc}"]
    lines.extend(f"{name}: {value}" for name, value in prepared.headers.items())

    body = prepared.body
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return "\r\n".join(lines) + "\r\n\r\n" + (body or "") + "\n"


def dump_response(response: requests.Response) -> str:
    """
    Render an incoming response, body included.

    Reading the body here caches it on the response (`response.content`), so
    the response can still be consumed normally afterwards.
    """
    lines = [f"HTTP/1.1 {response.status_code} {response.reason or ''}".rstrip()]
    lines.extend(f"{name}: {value}" for name, value in response.headers.items())
    body = response.content.decode(response.encoding or "utf-8", errors="replace")
    return "\r\n".join(lines) + "\r\n\r\n" + body + "\n"
