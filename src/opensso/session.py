"""OpenSSO session facade -- the main entry point.

:class:`SessionHandler` ties the token carried by one incoming request
to the identity service and produces the externally visible
:class:`~opensso.core.types.Verdict` plus the decoded attributes.

Validation
----------
::

    no token --------------------------------------------> INVALID
    token --> isTokenValid --+-- 401 / body w/o "true" --> INVALID   (token cleared)
                             +-- 403 --------------------> FORBIDDEN       (token kept)
                             +-- other failure ----------> TRANSPORT_ERROR (token kept)
                             +-- "true" --> attributes --> VALID     (attributes decoded)

FORBIDDEN and TRANSPORT_ERROR keep the underlying exception in
:attr:`SessionHandler.error`; :meth:`SessionHandler.check_and_force`
re-raises it instead of redirecting, so a broken or hostile link to
the identity service never turns into a login loop.

Usage
-----
::

    config = SSOClientConfig.from_ini("/etc/opensso", env="prodV1")
    handler = SessionHandler(config, RequestContext.from_wsgi_environ(environ))

    redirect = handler.check_and_force()
    if redirect is not None:
        start_response(redirect.status, redirect.headers())
        return [b""]
    email = handler.attribute("mail")

A handler is scoped to one request and is not meant to be shared
between threads.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opensso.core.constants import IE_TEST_COOKIE
from opensso.core.errors import Forbidden, ServiceError, SSOError, TransportError
from opensso.core.types import Verdict
from opensso.identity.attributes import AttributeMap, AttributeValue, decode_attributes
from opensso.identity.client import IdentityClient, mask_token
from opensso.web.context import CookieDirective, RequestContext, extract_token
from opensso.web.redirects import Redirect, build_redirect_url

if TYPE_CHECKING:
    from opensso.core.config import SSOClientConfig

logger = logging.getLogger(__name__)


class SessionHandler:
    """Session facade for one incoming request.

    Parameters
    ----------
    config:
        Deployment configuration (URLs, trust, cookie name).
    context:
        The incoming request.  Defaults to an empty context, i.e. a
        request without a session.
    client:
        Pre-built identity client.  When ``None`` one is built from
        *config*, which loads trust material and may raise
        :class:`~opensso.core.errors.ConfigurationError`.

    Raises
    ------
    ConfigurationError
        On an unsupported endpoint scheme or unusable trust material.
    TransportError, ServiceError
        Only when ``config.fetch_cookie_name`` is set and the cookie
        name lookup fails.
    """

    def __init__(
        self,
        config: SSOClientConfig,
        context: RequestContext | None = None,
        *,
        client: IdentityClient | None = None,
    ) -> None:
        self._config = config
        self._context = context or RequestContext()
        self._client = client or IdentityClient.from_config(config)

        if config.fetch_cookie_name:
            self._cookie_name = self._client.discover_cookie_name()
        else:
            self._cookie_name = config.cookie_name

        extraction = extract_token(self._context, self._cookie_name)
        self._token = extraction.token
        self._cookies = extraction.cookies
        self._attributes = AttributeMap()
        self._verdict: Verdict | None = None
        self._error: SSOError | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def token(self) -> str:
        return self._token

    @property
    def cookie_name(self) -> str:
        return self._cookie_name

    @property
    def cookies(self) -> tuple[CookieDirective, ...]:
        """Cookies the application must set, from token extraction."""
        return self._cookies

    @property
    def verdict(self) -> Verdict | None:
        """Outcome of the last :meth:`validate`, ``None`` before the first."""
        return self._verdict

    @property
    def error(self) -> SSOError | None:
        """Failure behind a FORBIDDEN or TRANSPORT_ERROR verdict."""
        return self._error

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, token: str | None = None) -> Verdict:
        """Check the session against the identity service.

        Parameters
        ----------
        token:
            Replaces the token extracted from the request context.

        Returns
        -------
        Verdict
            VALID only after both validation and attribute retrieval
            succeeded.  Any previous attributes are discarded first.
        """
        if token is not None:
            self._token = token
        self._attributes = AttributeMap()
        self._error = None

        if not self._token:
            return self._finish(Verdict.INVALID)

        try:
            if not self._client.validate_token(self._token):
                self._token = ""
                return self._finish(Verdict.INVALID)
            body = self._client.fetch_attributes(self._token)
        except Forbidden as exc:
            return self._fail(Verdict.FORBIDDEN, exc)
        except (TransportError, ServiceError) as exc:
            return self._fail(Verdict.TRANSPORT_ERROR, exc)

        self._attributes = decode_attributes(body)
        return self._finish(Verdict.VALID)

    def _finish(self, verdict: Verdict) -> Verdict:
        self._verdict = verdict
        logger.info("Session %s: %s", mask_token(self._token), verdict)
        return verdict

    def _fail(self, verdict: Verdict, exc: SSOError) -> Verdict:
        logger.warning("Session check failed (%s): %s", verdict, exc.message)
        self._error = exc
        return self._finish(verdict)

    def check_and_force(self, goto_url: str | None = None) -> Redirect | None:
        """Validate and, when the session is invalid, return a login redirect.

        Returns
        -------
        Redirect | None
            ``None`` when the session is valid.

        Raises
        ------
        Forbidden, TransportError, ServiceError
            The stored failure for FORBIDDEN and TRANSPORT_ERROR verdicts.
        """
        verdict = self.validate()
        if verdict is Verdict.VALID:
            return None
        if verdict is Verdict.INVALID:
            return self.login_redirect(goto_url)
        if self._error is None:
            raise TransportError(f"Session check ended with {verdict} but no error")
        raise self._error

    # ------------------------------------------------------------------
    # Redirects
    # ------------------------------------------------------------------

    def login_redirect(self, goto_url: str | None = None) -> Redirect:
        """Redirect to the login page, returning to *goto_url* afterwards.

        *goto_url* defaults to the current request URL.
        """
        goto = goto_url or self._context.current_url()
        return Redirect(
            url=build_redirect_url(self._config.login_url, goto),
            cookies=self._cookies,
        )

    def logout(self, goto_url: str | None = None) -> Redirect:
        """Redirect to the logout page.

        When the browser holds no ``testExplorerBug`` cookie, it did not
        store the domain-wide SSO cookie, so the host cookie is expired
        as well.
        """
        cookies: tuple[CookieDirective, ...] = ()
        if IE_TEST_COOKIE not in self._context.cookies:
            cookies = (CookieDirective.expire(self._cookie_name),)
        goto = goto_url or self._context.current_url()
        return Redirect(
            url=build_redirect_url(self._config.logout_url, goto),
            cookies=cookies,
        )

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def attribute(self, name: str, force_array: bool = False) -> AttributeValue:
        """Return one attribute of the validated session.

        Lookup is case-insensitive.  Unknown names give ``""`` (or
        ``[]`` with *force_array*).

        Raises
        ------
        EmptyAttributeName
            If *name* is empty.
        """
        return self._attributes.value(name, force_array)

    def all_attributes(self, force_arrays: bool = False) -> dict[str, AttributeValue]:
        """Return every attribute, keyed by lower-cased name."""
        return self._attributes.to_dict(force_arrays)
