"""OpenSSO client for Python.

Validates web single-sign-on sessions against an OpenSSO / OpenAM
identity REST service, retrieves session attributes, and builds
login/logout redirects.

Components
----------
1. Transport (:mod:`opensso.wire.transport`)
2. Response parser (:mod:`opensso.wire.response`)
3. Identity protocol client (:mod:`opensso.identity.client`)
4. Attribute decoder (:mod:`opensso.identity.attributes`)
5. Session facade (:mod:`opensso.session`)
"""
from __future__ import annotations

from opensso.core.config import SSOClientConfig
from opensso.core.constants import LIBRARY_VERSION
from opensso.core.errors import (
    CertificateMismatch,
    ConfigurationError,
    ConnectionFailed,
    EmptyAttributeName,
    EmptyToken,
    Forbidden,
    InvalidConfiguration,
    MalformedResponse,
    NotAuthenticated,
    ServiceError,
    SSOError,
    TransportError,
    TrustMaterialMissing,
    UnexpectedStatus,
    UnsupportedScheme,
    UsageError,
)
from opensso.core.types import (
    Endpoint,
    PinnedTrust,
    QueryResult,
    SelfSignedTrust,
    TransportMode,
    TrustPolicy,
    Verdict,
)
from opensso.identity import AttributeMap, IdentityClient, decode_attributes
from opensso.session import SessionHandler
from opensso.web import (
    CookieDirective,
    Redirect,
    RequestContext,
    build_redirect_url,
    extract_token,
)
from opensso.wire import Transport, parse_response

__version__ = LIBRARY_VERSION

__all__ = [
    # Meta
    "__version__",
    # Types
    "Endpoint",
    "PinnedTrust",
    "QueryResult",
    "SelfSignedTrust",
    "TransportMode",
    "TrustPolicy",
    "Verdict",
    # Config
    "SSOClientConfig",
    # Error hierarchy
    "SSOError",
    "ConfigurationError",
    "TransportError",
    "ServiceError",
    "UsageError",
    "UnsupportedScheme",
    "TrustMaterialMissing",
    "InvalidConfiguration",
    "ConnectionFailed",
    "CertificateMismatch",
    "MalformedResponse",
    "UnexpectedStatus",
    "NotAuthenticated",
    "Forbidden",
    "EmptyToken",
    "EmptyAttributeName",
    # Wire
    "Transport",
    "parse_response",
    # Identity
    "IdentityClient",
    "AttributeMap",
    "decode_attributes",
    # Web
    "RequestContext",
    "CookieDirective",
    "Redirect",
    "build_redirect_url",
    "extract_token",
    # Facade
    "SessionHandler",
]
