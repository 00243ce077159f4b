"""OpenSSO web subpackage -- request-side collaborators of the facade.

* **RequestContext** -- explicit request state (cookies, query, URL parts).
* **extract_token** -- token normalisation (query/cookie mismatch,
  space-for-plus).
* **CookieDirective** / **Redirect** -- response instructions for the
  application.
"""
from __future__ import annotations

from opensso.web.context import (
    CookieDirective,
    RequestContext,
    TokenExtraction,
    extract_token,
)
from opensso.web.redirects import Redirect, build_redirect_url

__all__ = [
    "CookieDirective",
    "Redirect",
    "RequestContext",
    "TokenExtraction",
    "build_redirect_url",
    "extract_token",
]
