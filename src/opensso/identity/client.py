"""Identity REST protocol client.

Three operations, each a fixed mapping onto one
:meth:`~opensso.wire.transport.Transport.send` round-trip:

==================== ====== ========================= ==========================
Operation            Method Query                     Success
==================== ====== ========================= ==========================
validate_token       GET    ``tokenid=<token>``       body contains ``true``
fetch_attributes     GET    ``subjectid=<token>``     body is the attribute dump
discover_cookie_name POST   (none)                    body is ``string=<name>``
==================== ====== ========================= ==========================

Non-200 statuses become :class:`~opensso.core.errors.ServiceError`
subclasses.  Only :meth:`IdentityClient.validate_token` absorbs one of
them: ``401`` means the token is not valid.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from opensso.core.constants import (
    COOKIE_NAME_PREFIX,
    SERVICE_ATTRIBUTES,
    SERVICE_COOKIE_NAME,
    SERVICE_IS_TOKEN_VALID,
    VALID_TOKEN_MARKER,
)
from opensso.core.errors import EmptyToken, Forbidden, MalformedResponse, NotAuthenticated
from opensso.wire.transport import Transport

if TYPE_CHECKING:
    from opensso.core.config import SSOClientConfig
    from opensso.core.types import Endpoint

logger = logging.getLogger(__name__)


def mask_token(token: str) -> str:
    """Return a log-safe rendering of *token*."""
    if not token:
        return "<empty>"
    return f"{token[:6]}..." if len(token) > 6 else "***"


class IdentityClient:
    """Client for the OpenSSO identity REST services.

    Parameters
    ----------
    endpoint:
        Base location of the identity services.
    transport:
        Round-trip implementation; anything with a compatible
        ``send(endpoint, method, path, query)`` method.
    """

    def __init__(self, endpoint: Endpoint, transport: Transport) -> None:
        self._endpoint = endpoint
        self._transport = transport

    @classmethod
    def from_config(cls, config: SSOClientConfig) -> IdentityClient:
        """Build a client, its endpoint, and its transport from *config*.

        Raises
        ------
        ConfigurationError
            On an unsupported scheme or unusable trust material.
        """
        endpoint = config.endpoint()
        transport = Transport(
            config.trust_policy(),
            user_agent=config.user_agent,
            plain_timeout=config.plain_timeout,
            tls_timeout=config.tls_timeout,
        )
        return cls(endpoint, transport)

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    def _query(self, service: str, method: str = "GET", query: str = "") -> str:
        result = self._transport.send(
            self._endpoint,
            method,
            self._endpoint.service_path(service),
            query,
        )
        result.raise_for_status()
        return result.body

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def validate_token(self, token: str) -> bool:
        """Ask the service whether *token* is a live session.

        Returns
        -------
        bool
            ``True`` when the body contains ``true``; ``False`` for any
            other ``200`` body and for a ``401``.

        Raises
        ------
        EmptyToken
            If *token* is empty.
        Forbidden
            If the service answered ``403``.
        TransportError, ServiceError
            For every other failure, unchanged.
        """
        if not token:
            raise EmptyToken("Cannot validate an empty token")
        try:
            body = self._query(SERVICE_IS_TOKEN_VALID, "GET", urlencode({"tokenid": token}))
        except NotAuthenticated:
            logger.info("Token %s rejected with 401", mask_token(token))
            return False
        except Forbidden:
            logger.warning("Identity service refused token validation (403)")
            raise
        return VALID_TOKEN_MARKER in body

    def fetch_attributes(self, token: str) -> str:
        """Return the raw attribute dump for *token*.

        Raises
        ------
        EmptyToken
            If *token* is empty.
        """
        if not token:
            raise EmptyToken()
        return self._query(SERVICE_ATTRIBUTES, "GET", urlencode({"subjectid": token}))

    def discover_cookie_name(self) -> str:
        """Ask the service which cookie carries the session token.

        Raises
        ------
        MalformedResponse
            If the answer yields an empty cookie name.
        """
        body = self._query(SERVICE_COOKIE_NAME, "POST")
        name = body.removeprefix(COOKIE_NAME_PREFIX).strip()
        if not name:
            raise MalformedResponse(
                "Identity service returned an empty cookie name",
                details={"body": body[:200]},
            )
        logger.debug("Discovered session cookie name %s", name)
        return name
