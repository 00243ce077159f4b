"""OpenSSO client shared value types.

Key design decisions:
* ``Endpoint`` and the trust policies are frozen Pydantic models: they
  are fixed when a client is built and never change afterwards.
* ``Endpoint.scheme`` stays a plain string so that the transport, not
  the model, decides which schemes it can speak.
* ``PinnedTrust`` carries the CA bytes themselves, loaded once at
  construction, never a path that is re-read per request.
* Enums use *string* values so they log and serialise cleanly.
"""
from __future__ import annotations

import enum
from pathlib import Path
from urllib.parse import urlsplit

from cryptography import x509
from pydantic import BaseModel, ConfigDict, Field

from opensso.core.constants import DEFAULT_PORTS
from opensso.core.errors import (
    TrustMaterialMissing,
    UnsupportedScheme,
    status_error,
)

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Verdict(enum.StrEnum):
    """Outcome of a session validation attempt.

    * **VALID** -- token accepted, attributes decoded.
    * **INVALID** -- no token, ``401``, or body without the success marker.
    * **FORBIDDEN** -- the service answered ``403``.
    * **TRANSPORT_ERROR** -- connection, certificate, framing, or other
      unexpected status failure.
    """

    VALID = "valid"
    INVALID = "invalid"
    FORBIDDEN = "forbidden"
    TRANSPORT_ERROR = "transport_error"


class TransportMode(enum.StrEnum):
    """How bytes travel to the identity service."""

    PLAIN = "plain"
    TLS = "tls"


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------


class Endpoint(BaseModel):
    """Network location of the identity REST service.

    ``path`` is the base path; service names are appended to it with
    :meth:`service_path`.
    """

    model_config = ConfigDict(frozen=True)

    scheme: str
    host: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    path: str = "/"

    @classmethod
    def from_url(cls, url: str) -> Endpoint:
        """Build an endpoint from an absolute URL.

        Raises
        ------
        UnsupportedScheme
            If the scheme is not ``http`` or ``https``, or the URL
            carries no host.
        """
        parts = urlsplit(url)
        scheme = parts.scheme.lower()
        if scheme not in DEFAULT_PORTS:
            raise UnsupportedScheme(
                f"Invalid protocol: {parts.scheme or '(none)'}",
                details={"url": url},
            )
        if not parts.hostname:
            raise UnsupportedScheme(
                f"Identity service URL has no host: {url}",
                details={"url": url},
            )
        return cls(
            scheme=scheme,
            host=parts.hostname,
            port=parts.port or DEFAULT_PORTS[scheme],
            path=parts.path or "/",
        )

    def service_path(self, service: str) -> str:
        """Return the request path for *service* under the base path."""
        return f"{self.path}{service}"


# ---------------------------------------------------------------------------
# Trust policies
# ---------------------------------------------------------------------------


class PinnedTrust(BaseModel):
    """Verify the peer chain against a configured CA.

    When *serial_number* is set, the peer certificate's serial must
    also match it exactly.
    """

    model_config = ConfigDict(frozen=True)

    ca_certificate: bytes = Field(min_length=1)
    serial_number: int | None = None

    @classmethod
    def from_file(cls, path: Path | str, serial_number: int | None = None) -> PinnedTrust:
        """Load CA material from *path*.

        The file may hold one or more PEM certificates or a single DER
        certificate.

        Raises
        ------
        TrustMaterialMissing
            If the file does not exist, cannot be read, or contains no
            certificate.
        """
        ca_path = Path(path)
        try:
            data = ca_path.read_bytes()
        except OSError as exc:
            raise TrustMaterialMissing(
                f"CA certificate file not found on {ca_path}",
                details={"path": str(ca_path), "reason": exc.strerror or str(exc)},
            ) from exc
        try:
            if b"-----BEGIN" in data:
                x509.load_pem_x509_certificates(data)
            else:
                x509.load_der_x509_certificate(data)
        except ValueError as exc:
            raise TrustMaterialMissing(
                f"No usable certificate in {ca_path}",
                details={"path": str(ca_path)},
            ) from exc
        return cls(ca_certificate=data, serial_number=serial_number)

    @property
    def is_pem(self) -> bool:
        return b"-----BEGIN" in self.ca_certificate


class SelfSignedTrust(BaseModel):
    """Skip chain verification entirely.

    This is a deliberate trust downgrade.  A configured
    *serial_number* is still enforced after the handshake.
    """

    model_config = ConfigDict(frozen=True)

    serial_number: int | None = None


TrustPolicy = PinnedTrust | SelfSignedTrust


# ---------------------------------------------------------------------------
# Query result
# ---------------------------------------------------------------------------


class QueryResult(BaseModel):
    """Parsed identity service response."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    reason: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def raise_for_status(self) -> None:
        """Raise the matching :class:`~opensso.core.errors.ServiceError` unless ``200``."""
        if not self.ok:
            raise status_error(self.status_code, self.reason)
