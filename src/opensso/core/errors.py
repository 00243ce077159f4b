"""OpenSSO client error hierarchy.

Every failure the client can report is a concrete exception class,
grouped under a category base so callers can catch as broadly or as
narrowly as they need.

Hierarchy
---------
::

    SSOError
    +-- ConfigurationError    (SSO-E1xx)  fatal, raised at construction
    +-- TransportError        (SSO-E2xx)  socket, TLS, or framing failure
    +-- ServiceError          (SSO-E3xx)  identity service answered non-200
    +-- UsageError            (SSO-E4xx)  caller broke the client contract

Usage
-----
Catch by category::

    try:
        client.validate_token(token)
    except Forbidden:
        # operational alarm, not a login prompt
        ...
    except (TransportError, ServiceError):
        ...
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------


class SSOError(Exception):
    """Base exception for all OpenSSO client errors.

    Attributes
    ----------
    code : str
        Client error code, e.g. ``"SSO-E200"``.
    message : str
        Human-readable description (never contains a token value).
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "SSO-E000"
    message: str = "Unknown OpenSSO client error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error for structured logs or JSON error pages."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================


class ConfigurationError(SSOError):
    """SSO-E1xx -- Invalid or missing client configuration."""

    code = "SSO-E1XX"


class TransportError(SSOError):
    """SSO-E2xx -- The round-trip to the identity service failed."""

    code = "SSO-E2XX"


class ServiceError(SSOError):
    """SSO-E3xx -- The identity service answered with a non-200 status.

    Attributes
    ----------
    status_code : int
        The HTTP status code returned by the service.
    """

    code = "SSO-E3XX"

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.status_code = status_code
        merged = {"status_code": status_code, **(details or {})}
        super().__init__(message, details=merged, resolution=resolution)


class UsageError(SSOError):
    """SSO-E4xx -- The client was used outside its contract."""

    code = "SSO-E4XX"


# ===================================================================
# SSO-E1xx  Configuration
# ===================================================================


class UnsupportedScheme(ConfigurationError):
    """SSO-E100 -- The endpoint scheme is neither ``http`` nor ``https``."""

    code = "SSO-E100"
    message = "Unsupported endpoint scheme"
    resolution = "Use an http:// or https:// identity service URL."


class TrustMaterialMissing(ConfigurationError):
    """SSO-E101 -- Pinned trust requested but the CA material is unusable."""

    code = "SSO-E101"
    message = "CA certificate material is missing or unreadable"
    resolution = (
        "Provide a readable PEM or DER CA certificate, or explicitly "
        "allow self-signed certificates."
    )


class InvalidConfiguration(ConfigurationError):
    """SSO-E102 -- Configuration source is missing or incomplete."""

    code = "SSO-E102"
    message = "Invalid OpenSSO client configuration"


# ===================================================================
# SSO-E2xx  Transport
# ===================================================================


class ConnectionFailed(TransportError):
    """SSO-E200 -- Connection refused, timed out, or TLS handshake failed.

    Attributes
    ----------
    errno : int
        Operating-system error number, ``0`` when none applies
        (timeouts and certificate verification failures).
    strerror : str
        Low-level reason reported by the socket layer.
    """

    code = "SSO-E200"
    message = "Connection to the identity service failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        errno: int = 0,
        strerror: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        self.errno = errno
        self.strerror = strerror
        merged = {"errno": errno, "strerror": strerror, **(details or {})}
        super().__init__(message, details=merged)

    @classmethod
    def from_os_error(cls, exc: OSError, host: str, port: int) -> ConnectionFailed:
        """Wrap a socket-level :class:`OSError`."""
        strerror = exc.strerror or str(exc) or type(exc).__name__
        return cls(
            f"Connection to {host}:{port} failed [{exc.errno or 0}, {strerror}]",
            errno=exc.errno or 0,
            strerror=strerror,
            details={"host": host, "port": port},
        )


class CertificateMismatch(TransportError):
    """SSO-E201 -- Peer certificate does not match the pinned serial number.

    This indicates a potential man-in-the-middle and must never be
    reported as a merely invalid session.
    """

    code = "SSO-E201"
    message = "Peer certificate does not match the configured serial number"
    resolution = "Verify the identity service certificate and the pinned serial."


class MalformedResponse(TransportError):
    """SSO-E202 -- Response bytes do not follow the expected HTTP shape."""

    code = "SSO-E202"
    message = "Malformed response from the identity service"


# ===================================================================
# SSO-E3xx  Service status
# ===================================================================


class UnexpectedStatus(ServiceError):
    """SSO-E300 -- Any non-200 status without a dedicated meaning."""

    code = "SSO-E300"
    message = "Unexpected HTTP status from the identity service"


class NotAuthenticated(ServiceError):
    """SSO-E301 -- The service answered ``401``: the token is not valid."""

    code = "SSO-E301"
    message = "Not authenticated"


class Forbidden(ServiceError):
    """SSO-E302 -- The service answered ``403``: this client is not allowed.

    Treat as an operational alarm rather than a login prompt.
    """

    code = "SSO-E302"
    message = "Access forbidden to the identity service"
    resolution = "Check that this application is allowed to query the identity service."


# ===================================================================
# SSO-E4xx  Usage
# ===================================================================


class EmptyToken(UsageError):
    """SSO-E400 -- An operation requiring a token was given none."""

    code = "SSO-E400"
    message = "Empty token"


class EmptyAttributeName(UsageError):
    """SSO-E401 -- Attribute lookup with an empty name."""

    code = "SSO-E401"
    message = "Empty attribute name"


# ---------------------------------------------------------------------------
# Status mapping
# ---------------------------------------------------------------------------

_STATUS_ERRORS: dict[int, type[ServiceError]] = {
    401: NotAuthenticated,
    403: Forbidden,
}


def status_error(status_code: int, reason: str = "") -> ServiceError:
    """Return the :class:`ServiceError` matching a non-200 *status_code*."""
    error_cls = _STATUS_ERRORS.get(status_code, UnexpectedStatus)
    text = f"HTTP response code {status_code}"
    if reason:
        text = f"{text} ({reason})"
    return error_cls(text, status_code=status_code)
