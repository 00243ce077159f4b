"""Response framing for the identity service.

The service speaks HTTP/1.0 and closes the connection after answering,
so a response is the complete byte stream read until EOF:

* header block and body are separated by the first ``\\r\\n\\r\\n``;
* the first header line is a status line of exactly three
  space-separated fields: protocol, code, reason (the reason may itself
  contain spaces, and may be empty);
* the body is returned trimmed and is not interpreted here.

Every failure to find that structure raises
:class:`~opensso.core.errors.MalformedResponse`; nothing is guessed.
"""
from __future__ import annotations

from opensso.core.errors import MalformedResponse
from opensso.core.types import QueryResult

HEADER_SEPARATOR = b"\r\n\r\n"
HEADER_ENCODING = "iso-8859-1"
BODY_ENCODING = "utf-8"


def parse_status_line(line: str) -> tuple[str, int, str]:
    """Split a status line into ``(protocol, status_code, reason)``.

    Raises
    ------
    MalformedResponse
        If the line does not have three fields, the protocol is not
        ``HTTP/x``, or the code is not a three-digit integer.
    """
    fields = line.split(" ", 2)
    if len(fields) != 3:
        raise MalformedResponse(
            "Status line must have protocol, code and reason",
            details={"status_line": line[:200]},
        )
    protocol, code, reason = fields
    if not protocol.startswith("HTTP/"):
        raise MalformedResponse(
            f"Unknown protocol in status line: {protocol[:20]!r}",
            details={"status_line": line[:200]},
        )
    if len(code) != 3 or not code.isdigit():
        raise MalformedResponse(
            f"Invalid status code: {code[:20]!r}",
            details={"status_line": line[:200]},
        )
    return protocol, int(code), reason.strip()


def parse_headers(lines: list[str]) -> dict[str, str]:
    """Collect ``Name: value`` lines; keys are lower-cased, later wins.

    Lines without a colon are skipped.
    """
    headers: dict[str, str] = {}
    for line in lines:
        name, sep, value = line.partition(":")
        if sep and name.strip():
            headers[name.strip().lower()] = value.strip()
    return headers


def parse_response(raw: bytes) -> QueryResult:
    """Parse a complete response byte stream.

    Parameters
    ----------
    raw:
        Every byte received before the server closed the connection.

    Returns
    -------
    QueryResult
        Status code, reason, headers, and trimmed body text.

    Raises
    ------
    MalformedResponse
        If the header/body separator is absent or the status line is
        not well formed.
    """
    head, sep, body = raw.partition(HEADER_SEPARATOR)
    if not sep:
        raise MalformedResponse(
            "Response has no header/body separator",
            details={"size": len(raw)},
        )

    lines = head.decode(HEADER_ENCODING).splitlines()
    if not lines:
        raise MalformedResponse("Response has an empty header block")

    _protocol, status_code, reason = parse_status_line(lines[0])
    return QueryResult(
        status_code=status_code,
        reason=reason,
        headers=parse_headers(lines[1:]),
        body=body.decode(BODY_ENCODING, errors="replace").strip(),
    )
