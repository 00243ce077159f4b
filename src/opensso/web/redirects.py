"""Login and logout redirect targets.

The library only computes the target; emitting the redirect is the
application's job (see :meth:`Redirect.headers`).
"""
from __future__ import annotations

from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict

from opensso.web.context import CookieDirective


def build_redirect_url(base_url: str, goto_url: str) -> str:
    """Append ``goto=<urlencoded goto_url>`` to *base_url*."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'goto': goto_url})}"


class Redirect(BaseModel):
    """A redirect the application should send, with its cookies."""

    model_config = ConfigDict(frozen=True)

    url: str
    cookies: tuple[CookieDirective, ...] = ()
    status: str = "302 Found"

    def headers(self) -> list[tuple[str, str]]:
        """Header list suitable for WSGI ``start_response``."""
        headers = [("Location", self.url)]
        headers.extend(("Set-Cookie", cookie.to_header()) for cookie in self.cookies)
        return headers
