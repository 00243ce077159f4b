"""Explicit request context and token extraction.

The session facade never reads process-wide request state.  The
surrounding application builds a :class:`RequestContext` (directly or
from a WSGI environ) and passes it in; :func:`extract_token` turns it
into a normalised token string plus any cookie the application must
set on its response.

Two browser-era quirks are handled here rather than in the protocol
client:

* **Query/cookie mismatch** -- some browsers fail to store the SSO
  cookie for the application host, so the login service also passes
  the token in the query string.  When the query value is present and
  differs from the cookie, the query value wins (over HTTPS only) and
  a host cookie is issued for it.
* **Space-for-plus** -- the cookie value arrives URL-decoded, which
  turns every ``+`` of the token into a space; spaces are put back.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from http.cookies import CookieError, SimpleCookie
from typing import Any
from urllib.parse import parse_qsl, quote, unquote_plus

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

EPOCH_EXPIRES = "Thu, 01 Jan 1970 00:00:00 GMT"


class CookieDirective(BaseModel):
    """A cookie the application must set (or clear) on its response."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    value: str = ""
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    expires: str | None = None

    @classmethod
    def expire(cls, name: str, path: str = "/") -> CookieDirective:
        """Directive that deletes cookie *name* for the current host."""
        return cls(name=name, value="", path=path, expires=EPOCH_EXPIRES)

    def to_header(self) -> str:
        """Render the ``Set-Cookie`` header value."""
        parts = [f"{self.name}={quote(self.value, safe='')}"]
        if self.expires:
            parts.append(f"expires={self.expires}")
        parts.append(f"path={self.path}")
        if self.domain:
            parts.append(f"domain={self.domain}")
        if self.secure:
            parts.append("secure")
        return "; ".join(parts)


class RequestContext(BaseModel):
    """What the facade needs to know about the incoming request.

    ``host`` is the ``Host`` header (used as the cookie domain);
    ``server_name``/``server_port``/``request_uri`` rebuild the current
    URL for the post-login return address.
    """

    model_config = ConfigDict(frozen=True)

    cookies: dict[str, str] = Field(default_factory=dict)
    query: dict[str, str] = Field(default_factory=dict)
    https: bool = False
    host: str = ""
    server_name: str = "localhost"
    server_port: int = 80
    request_uri: str = "/"

    @classmethod
    def from_wsgi_environ(cls, environ: Mapping[str, Any]) -> RequestContext:
        """Build a context from a WSGI *environ*.

        Cookie values are URL-decoded, as PHP-era servers did before
        handing them to applications.
        """
        cookies: dict[str, str] = {}
        jar = SimpleCookie()
        try:
            jar.load(environ.get("HTTP_COOKIE", ""))
        except CookieError as exc:
            logger.debug("Ignoring malformed Cookie header: %s", exc)
        for name, morsel in jar.items():
            cookies[name] = unquote_plus(morsel.value)

        query_string = environ.get("QUERY_STRING", "")
        path = environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")
        request_uri = environ.get("REQUEST_URI") or (
            f"{path or '/'}?{query_string}" if query_string else path or "/"
        )
        https = environ.get("wsgi.url_scheme") == "https" or (
            str(environ.get("HTTPS", "")).lower() in ("on", "1")
        )
        return cls(
            cookies=cookies,
            query=dict(parse_qsl(query_string, keep_blank_values=True)),
            https=https,
            host=environ.get("HTTP_HOST", ""),
            server_name=environ.get("SERVER_NAME", "localhost"),
            server_port=int(environ.get("SERVER_PORT", 443 if https else 80)),
            request_uri=request_uri,
        )

    def current_url(self) -> str:
        """Reconstruct the URL of the current request."""
        scheme = "https" if self.https else "http"
        return f"{scheme}://{self.server_name}:{self.server_port}{self.request_uri}"


class TokenExtraction(BaseModel):
    """Normalised token plus cookies to emit on the response."""

    model_config = ConfigDict(frozen=True)

    token: str = ""
    cookies: tuple[CookieDirective, ...] = ()


def extract_token(context: RequestContext, cookie_name: str) -> TokenExtraction:
    """Locate the session token for *cookie_name* in *context*.

    Returns
    -------
    TokenExtraction
        ``token`` is empty when the request carries no session.
    """
    from_query = context.query.get(cookie_name)
    from_cookie = context.cookies.get(cookie_name)

    if from_query is not None and from_cookie != from_query:
        token = from_query if context.https else ""
        directive = CookieDirective(
            name=cookie_name,
            value=token,
            path="/",
            domain=context.host or None,
            secure=True,
        )
        return TokenExtraction(token=token, cookies=(directive,))

    if from_cookie is not None:
        return TokenExtraction(token=from_cookie.replace(" ", "+"))

    return TokenExtraction()
