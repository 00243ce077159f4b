"""OpenSSO wire subpackage -- raw transport and response framing.

* **Transport** -- certificate-pinned, single-shot HTTP/1.0 round-trip
  over plain TCP or TLS (:mod:`~opensso.wire.transport`).
* **Response parser** -- header/body split and status-line grammar
  (:mod:`~opensso.wire.response`).
"""
from __future__ import annotations

from opensso.wire.response import (
    HEADER_SEPARATOR,
    parse_headers,
    parse_response,
    parse_status_line,
)
from opensso.wire.transport import (
    Transport,
    build_request,
    create_ssl_context,
    resolve_mode,
)

__all__ = [
    # Response
    "HEADER_SEPARATOR",
    "parse_headers",
    "parse_response",
    "parse_status_line",
    # Transport
    "Transport",
    "build_request",
    "create_ssl_context",
    "resolve_mode",
]
