"""Shared fixtures for the OpenSSO unit and conformance suites.

Provides:

* **CannedServer** -- one-connection loopback server (plain or TLS)
  that records the request and replays canned response bytes.
* **LoopbackPKI** -- a throw-away CA plus a ``127.0.0.1`` server
  certificate it signed, generated with :mod:`cryptography`.
* **FakeTransport** -- in-process transport that replays raw response
  bytes through the real response parser and records every call.
"""
from __future__ import annotations

import ipaddress
import socket
import ssl
import threading
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from opensso.core.config import SSOClientConfig
from opensso.core.types import Endpoint, QueryResult
from opensso.wire.response import parse_response

BASE_URL = "https://sso.example.com/opensso/identity/"
LOGIN_URL = "https://sso.example.com/opensso/UI/Login"
LOGOUT_URL = "https://sso.example.com/opensso/UI/Logout"


# ---------------------------------------------------------------------------
# Loopback servers
# ---------------------------------------------------------------------------


class CannedServer:
    """Accept one connection, read one request, answer *response*, close."""

    def __init__(self, response: bytes, ssl_context: ssl.SSLContext | None = None) -> None:
        self.response = response
        self.requests: list[bytes] = []
        self._ssl_context = ssl_context
        self._listener = socket.create_server(("127.0.0.1", 0))
        self._listener.settimeout(5)
        self.port: int = self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def __enter__(self) -> CannedServer:
        self._thread.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._thread.join(timeout=5)
        self._listener.close()

    def endpoint(self, scheme: str = "http") -> Endpoint:
        return Endpoint(scheme=scheme, host="127.0.0.1", port=self.port, path="/identity/")

    def _serve(self) -> None:
        try:
            conn, _ = self._listener.accept()
        except OSError:
            return
        conn.settimeout(5)
        try:
            if self._ssl_context is not None:
                conn = self._ssl_context.wrap_socket(conn, server_side=True)
            data = b""
            while b"\r\n\r\n" not in data:
                chunk = conn.recv(1024)
                if not chunk:
                    break
                data += chunk
            self.requests.append(data)
            if data:
                conn.sendall(self.response)
        except OSError:
            # client aborted the handshake or the request on purpose
            pass
        finally:
            conn.close()


# ---------------------------------------------------------------------------
# PKI
# ---------------------------------------------------------------------------


@dataclass
class LoopbackPKI:
    ca_pem: bytes
    cert_path: Path
    key_path: Path
    serial_number: int

    def server_context(self) -> ssl.SSLContext:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.load_cert_chain(self.cert_path, self.key_path)
        return context


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def _key_usage(*, cert_sign: bool) -> x509.KeyUsage:
    return x509.KeyUsage(
        digital_signature=True,
        content_commitment=False,
        key_encipherment=False,
        data_encipherment=False,
        key_agreement=False,
        key_cert_sign=cert_sign,
        crl_sign=cert_sign,
        encipher_only=False,
        decipher_only=False,
    )


def issue_ca(common_name: str) -> tuple[ec.EllipticCurvePrivateKey, x509.Certificate]:
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(UTC)
    ski = x509.SubjectKeyIdentifier.from_public_key(key.public_key())
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(common_name))
        .issuer_name(_name(common_name))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(_key_usage(cert_sign=True), critical=True)
        .add_extension(ski, critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    return key, cert


def issue_server_cert(
    ca_key: ec.EllipticCurvePrivateKey,
    ca_cert: x509.Certificate,
) -> tuple[ec.EllipticCurvePrivateKey, x509.Certificate]:
    key = ec.generate_private_key(ec.SECP256R1())
    now = datetime.now(UTC)
    ca_ski = ca_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier).value
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name("127.0.0.1"))
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(_key_usage(cert_sign=False), critical=True)
        .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
        .add_extension(
            x509.SubjectAlternativeName(
                [
                    x509.DNSName("localhost"),
                    x509.IPAddress(ipaddress.ip_address("127.0.0.1")),
                ]
            ),
            critical=False,
        )
        .add_extension(x509.SubjectKeyIdentifier.from_public_key(key.public_key()), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ca_ski),
            critical=False,
        )
        .sign(ca_key, hashes.SHA256())
    )
    return key, cert


@pytest.fixture(scope="session")
def pki(tmp_path_factory: pytest.TempPathFactory) -> LoopbackPKI:
    """CA and loopback server certificate shared by every TLS test."""
    directory = tmp_path_factory.mktemp("pki")
    ca_key, ca_cert = issue_ca("OpenSSO Test CA")
    key, cert = issue_server_cert(ca_key, ca_cert)

    cert_path = directory / "server.crt"
    key_path = directory / "server.key"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    (directory / "ca.crt").write_bytes(ca_cert.public_bytes(serialization.Encoding.PEM))
    return LoopbackPKI(
        ca_pem=ca_cert.public_bytes(serialization.Encoding.PEM),
        cert_path=cert_path,
        key_path=key_path,
        serial_number=cert.serial_number,
    )


@pytest.fixture(scope="session")
def foreign_ca_pem() -> bytes:
    """A CA that signed nothing the loopback server presents."""
    _, cert = issue_ca("Unrelated CA")
    return cert.public_bytes(serialization.Encoding.PEM)


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeTransport:
    """Replay queued responses; raw bytes go through the real parser."""

    def __init__(self, *responses: bytes | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[tuple[str, str, str]] = []

    def send(self, endpoint: Endpoint, method: str, path: str, query: str = "") -> QueryResult:
        self.calls.append((method, path, query))
        if not self._responses:
            raise AssertionError(f"Unexpected round-trip: {method} {path}")
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return parse_response(item)


def http_response(status: str, body: str = "") -> bytes:
    """Build raw response bytes, e.g. ``http_response("200 OK", "true")``."""
    return f"HTTP/1.0 {status}\r\nContent-Type: text/plain\r\n\r\n{body}".encode()


@pytest.fixture()
def config() -> SSOClientConfig:
    return SSOClientConfig(
        ws_base_url=BASE_URL,
        login_url=LOGIN_URL,
        logout_url=LOGOUT_URL,
        self_signed=True,
    )
