"""OpenSSO client configuration.

Defines the validated configuration model consumed by the transport,
the identity client, and the session facade.  Field names follow the
keys of the classic ``metadata.ini`` so an existing metadata directory
can be loaded with :meth:`SSOClientConfig.from_ini`.
"""
from __future__ import annotations

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from opensso.core.constants import (
    DEFAULT_COOKIE_NAME,
    DEFAULT_PLAIN_TIMEOUT,
    DEFAULT_TLS_TIMEOUT,
    LIBRARY_VERSION,
    USER_AGENT_PRODUCT,
)
from opensso.core.errors import InvalidConfiguration, TrustMaterialMissing
from opensso.core.types import Endpoint, PinnedTrust, SelfSignedTrust, TrustPolicy

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT = "prodV1"
METADATA_FILE = "metadata.ini"


class SSOClientConfig(BaseModel):
    """Configuration for one OpenSSO deployment.

    Only ``ws_base_url``, ``login_url`` and ``logout_url`` are required.
    Trust defaults to the pinned policy, so either ``ca_cert_path`` or
    ``self_signed=True`` must be supplied before a client is built.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    ws_base_url: str = Field(
        description=(
            "Identity REST base URL; service names are appended to it, "
            "e.g. https://sso.example.com/opensso/identity/."
        ),
    )
    login_url: str = Field(description="Login page users are redirected to.")
    logout_url: str = Field(description="Logout page users are redirected to.")
    ca_cert_path: Path | None = Field(
        default=None,
        description="CA certificate used to verify the identity service.",
    )
    self_signed: bool = Field(
        default=False,
        description="Accept any peer certificate (disables chain verification).",
    )
    crt_serialnumber: int | None = Field(
        default=None,
        description="Expected serial number of the identity service certificate.",
    )
    cookie_name: str = Field(
        default=DEFAULT_COOKIE_NAME,
        min_length=1,
        description="Session cookie name used when it is not fetched from the server.",
    )
    fetch_cookie_name: bool = Field(
        default=False,
        description="Ask the identity service for the cookie name at startup.",
    )
    user_agent_product: str = Field(default=USER_AGENT_PRODUCT, min_length=1)
    product_version: str = Field(default=LIBRARY_VERSION, min_length=1)
    plain_timeout: float = Field(
        default=DEFAULT_PLAIN_TIMEOUT,
        gt=0,
        description="Timeout in seconds for plain-text round-trips.",
    )
    tls_timeout: float = Field(
        default=DEFAULT_TLS_TIMEOUT,
        gt=0,
        description="Timeout in seconds for TLS round-trips, handshake included.",
    )

    @field_validator("crt_serialnumber", mode="before")
    @classmethod
    def _parse_serial(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        text = value.strip()
        if not text:
            return None
        if ":" in text:
            return int(text.replace(":", ""), 16)
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)

    # ------------------------------------------------------------------
    # Derived objects
    # ------------------------------------------------------------------

    @property
    def user_agent(self) -> str:
        return f"{self.user_agent_product} {self.product_version}"

    def endpoint(self) -> Endpoint:
        """Return the identity service :class:`Endpoint`.

        Raises
        ------
        UnsupportedScheme
            If ``ws_base_url`` is not an http(s) URL.
        """
        return Endpoint.from_url(self.ws_base_url)

    def trust_policy(self) -> TrustPolicy:
        """Return the active trust policy, loading CA material if pinned.

        Raises
        ------
        TrustMaterialMissing
            If the pinned policy is active and no readable CA is configured.
        """
        if self.self_signed:
            logger.warning(
                "Self-signed certificates allowed for %s; chain verification is disabled",
                self.ws_base_url,
            )
            return SelfSignedTrust(serial_number=self.crt_serialnumber)
        if self.ca_cert_path is None:
            raise TrustMaterialMissing(
                "No CA certificate configured and self-signed certificates not allowed",
            )
        return PinnedTrust.from_file(self.ca_cert_path, self.crt_serialnumber)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_ini(
        cls,
        metadata_dir: Path | str,
        env: str = DEFAULT_ENVIRONMENT,
        **overrides: Any,
    ) -> SSOClientConfig:
        """Load the *env* section of ``<metadata_dir>/metadata.ini``.

        Unless the section sets ``self_signed = 1``, the CA certificate
        is expected at ``<metadata_dir>/crt/<env>/ca.crt``.  Keyword
        *overrides* replace values read from the file.

        Raises
        ------
        InvalidConfiguration
            If the file or the section is missing, required keys are
            absent, or a value fails validation.
        """
        base = Path(metadata_dir)
        ini_path = base / METADATA_FILE
        parser = configparser.ConfigParser(interpolation=None)
        if not parser.read(ini_path, encoding="utf-8"):
            raise InvalidConfiguration(
                f"Metadata file not found: {ini_path}",
                details={"path": str(ini_path)},
            )
        if not parser.has_section(env):
            raise InvalidConfiguration(
                f"Metadata for {env} not found",
                details={"path": str(ini_path), "env": env},
            )

        section = parser[env]
        values: dict[str, Any] = {
            key: section[key]
            for key in ("ws_base_url", "login_url", "logout_url", "cookie_name")
            if key in section
        }
        values["self_signed"] = section.get("self_signed", "0").strip() == "1"
        if "crt_serialnumber" in section:
            values["crt_serialnumber"] = section["crt_serialnumber"]
        if not values["self_signed"]:
            values["ca_cert_path"] = base / "crt" / env / "ca.crt"
        values.update(overrides)

        missing = [k for k in ("ws_base_url", "login_url", "logout_url") if k not in values]
        if missing:
            raise InvalidConfiguration(
                f"Metadata for {env} lacks required keys: {', '.join(missing)}",
                details={"env": env, "missing": missing},
            )
        try:
            config = cls(**values)
        except ValidationError as exc:
            raise InvalidConfiguration(
                f"Metadata for {env} has invalid values",
                details={
                    "env": env,
                    "errors": [
                        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                        for err in exc.errors()
                    ],
                },
            ) from exc
        logger.debug("Loaded OpenSSO metadata %s from %s", env, ini_path)
        return config
