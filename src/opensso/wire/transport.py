"""Certificate-pinned raw transport for the identity service.

This is deliberately not a general HTTP client.  One call to
:meth:`Transport.send` is one round-trip:

1. Resolve the endpoint scheme to a :class:`~opensso.core.types.TransportMode`
   (``http`` -> plain, ``https`` -> TLS); anything else is rejected before
   a socket exists.
2. Connect with the mode's timeout (TLS gets the longer budget because
   it includes the handshake).
3. Under TLS, check the peer certificate against the active trust
   policy.  Chain verification is done by :mod:`ssl` during the
   handshake; the optional serial pin is checked here with
   :mod:`cryptography`.
4. Write a hand-built HTTP/1.0 request with no body.
5. Read until the server closes, then close the socket on every path.
6. Hand the bytes to :func:`~opensso.wire.response.parse_response`.
"""
from __future__ import annotations

import logging
import socket
import ssl

from cryptography import x509

from opensso.core.constants import (
    DEFAULT_PLAIN_TIMEOUT,
    DEFAULT_TLS_TIMEOUT,
    READ_CHUNK_SIZE,
)
from opensso.core.errors import (
    CertificateMismatch,
    ConfigurationError,
    ConnectionFailed,
    UnsupportedScheme,
)
from opensso.core.types import (
    Endpoint,
    PinnedTrust,
    QueryResult,
    TransportMode,
    TrustPolicy,
)
from opensso.wire.response import parse_response

logger = logging.getLogger(__name__)

_MODES: dict[str, TransportMode] = {
    "http": TransportMode.PLAIN,
    "https": TransportMode.TLS,
}


def resolve_mode(scheme: str) -> TransportMode:
    """Map a URL scheme to a transport mode.

    Raises
    ------
    UnsupportedScheme
        For any scheme other than ``http`` and ``https``.
    """
    try:
        return _MODES[scheme.lower()]
    except KeyError:
        raise UnsupportedScheme(
            f"Invalid protocol: {scheme}",
            details={"scheme": scheme},
        ) from None


def build_request(method: str, host: str, path: str, query: str, user_agent: str) -> bytes:
    """Build the complete request buffer.

    All parameters travel in the query string; no body is ever sent.
    """
    target = f"{path}?{query}" if query else path
    return (
        f"{method} {target} HTTP/1.0\r\n"
        f"Host: {host}\r\n"
        f"User-Agent: {user_agent}\r\n"
        "\r\n"
    ).encode("utf-8")


def create_ssl_context(trust_policy: TrustPolicy) -> ssl.SSLContext:
    """Build the client TLS context for *trust_policy*.

    Raises
    ------
    ConfigurationError
        If the pinned CA material cannot be loaded by :mod:`ssl`.
    """
    if isinstance(trust_policy, PinnedTrust):
        cadata: str | bytes = (
            trust_policy.ca_certificate.decode("ascii")
            if trust_policy.is_pem
            else trust_policy.ca_certificate
        )
        try:
            return ssl.create_default_context(cadata=cadata)
        except (ssl.SSLError, ValueError) as exc:
            raise ConfigurationError(f"Error setting up TLS context: {exc}") from exc

    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def _read_to_eof(conn: socket.socket) -> bytes:
    chunks: list[bytes] = []
    while True:
        try:
            chunk = conn.recv(READ_CHUNK_SIZE)
        except ssl.SSLEOFError:
            # peer closed without close_notify
            break
        if not chunk:
            break
        chunks.append(chunk)
    return b"".join(chunks)


class Transport:
    """Synchronous, single-shot transport to the identity service.

    Parameters
    ----------
    trust_policy:
        Either :class:`~opensso.core.types.PinnedTrust` or
        :class:`~opensso.core.types.SelfSignedTrust`.  Fixed for the
        lifetime of the transport.
    user_agent:
        Value of the ``User-Agent`` header, ``"<product> <version>"``.
    plain_timeout:
        Seconds allowed for a plain-text connect and each read.
    tls_timeout:
        Seconds allowed for a TLS connect, handshake, and each read.

    Raises
    ------
    ConfigurationError
        If the TLS context cannot be built from the trust policy.
    """

    def __init__(
        self,
        trust_policy: TrustPolicy,
        *,
        user_agent: str,
        plain_timeout: float = DEFAULT_PLAIN_TIMEOUT,
        tls_timeout: float = DEFAULT_TLS_TIMEOUT,
    ) -> None:
        self._trust_policy = trust_policy
        self._user_agent = user_agent
        self._timeouts = {
            TransportMode.PLAIN: plain_timeout,
            TransportMode.TLS: tls_timeout,
        }
        self._ssl_context = create_ssl_context(trust_policy)

    @property
    def trust_policy(self) -> TrustPolicy:
        return self._trust_policy

    # ------------------------------------------------------------------
    # Round-trip
    # ------------------------------------------------------------------

    def send(
        self,
        endpoint: Endpoint,
        method: str,
        path: str,
        query: str = "",
    ) -> QueryResult:
        """Perform one request/response round-trip.

        Parameters
        ----------
        endpoint:
            Where to connect; its scheme selects the transport mode.
        method:
            HTTP method, e.g. ``"GET"`` or ``"POST"``.
        path:
            Request path, already URL-safe.
        query:
            Encoded query string without the leading ``?``.

        Returns
        -------
        QueryResult
            The parsed response; non-200 statuses are returned, not raised.

        Raises
        ------
        UnsupportedScheme
            If the endpoint scheme is not ``http``/``https``.
        ConnectionFailed
            On refusal, timeout, handshake failure, or a broken stream.
        CertificateMismatch
            If a pinned serial number does not match the peer certificate.
        MalformedResponse
            If the response cannot be framed.
        """
        mode = resolve_mode(endpoint.scheme)
        request = build_request(method, endpoint.host, path, query, self._user_agent)
        logger.debug("%s %s:%d %s (%s)", method, endpoint.host, endpoint.port, path, mode)

        with self._connect(endpoint, mode) as conn:
            if mode is TransportMode.TLS:
                self._check_peer_certificate(conn, endpoint)
            try:
                conn.sendall(request)
                raw = _read_to_eof(conn)
            except OSError as exc:
                raise ConnectionFailed.from_os_error(exc, endpoint.host, endpoint.port) from exc

        result = parse_response(raw)
        logger.debug("%s %s -> %d", method, path, result.status_code)
        return result

    def _connect(self, endpoint: Endpoint, mode: TransportMode) -> socket.socket:
        address = (endpoint.host, endpoint.port)
        try:
            sock = socket.create_connection(address, timeout=self._timeouts[mode])
        except OSError as exc:
            raise ConnectionFailed.from_os_error(exc, endpoint.host, endpoint.port) from exc

        if mode is TransportMode.PLAIN:
            return sock
        try:
            return self._ssl_context.wrap_socket(sock, server_hostname=endpoint.host)
        except ssl.SSLCertVerificationError as exc:
            sock.close()
            raise ConnectionFailed(
                f"SSL verification failed for {endpoint.host}:{endpoint.port} "
                f"[{exc.verify_message}]",
                strerror=exc.verify_message or str(exc),
                details={"host": endpoint.host, "port": endpoint.port},
            ) from exc
        except OSError as exc:
            sock.close()
            raise ConnectionFailed.from_os_error(exc, endpoint.host, endpoint.port) from exc

    def _check_peer_certificate(self, conn: ssl.SSLSocket, endpoint: Endpoint) -> None:
        der = conn.getpeercert(binary_form=True)
        if der is None:
            raise CertificateMismatch(
                "Identity service presented no certificate",
                details={"host": endpoint.host},
            )
        try:
            certificate = x509.load_der_x509_certificate(der)
        except ValueError as exc:
            raise CertificateMismatch(
                f"Unparseable peer certificate from {endpoint.host}",
                details={"host": endpoint.host},
            ) from exc
        logger.debug(
            "Peer certificate for %s: serial=%d subject=%s",
            endpoint.host,
            certificate.serial_number,
            certificate.subject.rfc4514_string(),
        )

        expected = self._trust_policy.serial_number
        if expected is not None and certificate.serial_number != expected:
            logger.warning(
                "Certificate serial mismatch for %s: expected %d, got %d",
                endpoint.host,
                expected,
                certificate.serial_number,
            )
            raise CertificateMismatch(
                f"Invalid certificate serial number ({certificate.serial_number})",
                details={
                    "host": endpoint.host,
                    "expected": expected,
                    "actual": certificate.serial_number,
                },
            )
