"""Protocol constants shared across the OpenSSO client.

Values mirror the identity REST service conventions: service names are
appended to the configured base URL, the default cookie name is the
stock OpenSSO one, and the connect timeouts are the budgets used for
plain and TLS round-trips.
"""
from __future__ import annotations

LIBRARY_VERSION: str = "1.0.0"
USER_AGENT_PRODUCT: str = "libopensso-py"

# ---------------------------------------------------------------------------
# Identity REST services
# ---------------------------------------------------------------------------

SERVICE_IS_TOKEN_VALID: str = "isTokenValid"
SERVICE_ATTRIBUTES: str = "attributes"
SERVICE_COOKIE_NAME: str = "getCookieNameForToken"

VALID_TOKEN_MARKER: str = "true"
COOKIE_NAME_PREFIX: str = "string="

ATTRIBUTE_NAME_KEY: str = "userdetails.attribute.name"
ATTRIBUTE_VALUE_KEY: str = "userdetails.attribute.value"

# ---------------------------------------------------------------------------
# Cookies
# ---------------------------------------------------------------------------

DEFAULT_COOKIE_NAME: str = "iPlanetDirectoryPro"
IE_TEST_COOKIE: str = "testExplorerBug"

# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

DEFAULT_PLAIN_TIMEOUT: float = 15.0  # seconds
DEFAULT_TLS_TIMEOUT: float = 20.0  # seconds
READ_CHUNK_SIZE: int = 1024
DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}
