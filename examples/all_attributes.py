#!/usr/bin/env python3
"""OpenSSO example -- list every attribute of the current session.

Forces single sign-on, then renders each attribute of the logged-in
user as an HTML list.  A forbidden or unreachable identity service is
reported as an error page instead of looping back to the login page.

Run:
    python examples/all_attributes.py /path/to/metadata [env]

then browse to http://localhost:8000/.
"""
from __future__ import annotations

import html
import logging
import sys
from collections.abc import Callable, Iterable
from typing import Any

from opensso import RequestContext, SessionHandler, SSOClientConfig, SSOError


def make_app(config: SSOClientConfig) -> Callable[..., Iterable[bytes]]:
    def app(environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        handler = SessionHandler(config, RequestContext.from_wsgi_environ(environ))
        try:
            redirect = handler.check_and_force()
        except SSOError as exc:
            start_response("502 Bad Gateway", [("Content-Type", "text/plain; charset=utf-8")])
            return [f"{exc.code}: {exc.message}\n".encode()]

        if redirect is not None:
            start_response(redirect.status, redirect.headers())
            return [b""]

        parts = ["<h1>Your attributes:</h1>"]
        for name, values in handler.all_attributes(force_arrays=True).items():
            parts.append(f"<h2>{html.escape(name)}</h2>")
            parts.append("<ul>")
            parts.extend(f"<li>{html.escape(value)}</li>" for value in values)
            parts.append("</ul>")

        headers = [("Content-Type", "text/html; charset=utf-8")]
        headers.extend(("Set-Cookie", cookie.to_header()) for cookie in handler.cookies)
        start_response("200 OK", headers)
        return ["\n".join(parts).encode()]

    return app


def main() -> None:
    from wsgiref.simple_server import make_server

    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) < 2:
        sys.exit(f"usage: {sys.argv[0]} METADATA_DIR [ENV]")
    env = sys.argv[2] if len(sys.argv) > 2 else "prodV1"
    config = SSOClientConfig.from_ini(sys.argv[1], env)

    with make_server("", 8000, make_app(config)) as server:
        print("Serving on http://localhost:8000/")
        server.serve_forever()


if __name__ == "__main__":
    main()
