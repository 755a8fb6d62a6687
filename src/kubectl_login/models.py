"""Canonical Pydantic models shared across all kubectl-login modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Configuration** -- :class:`ConfigFile` (the on-disk JSON file) and
:class:`FlowConfig` (the resolved, immutable input of every flow).

**Tokens and protocol material** -- :class:`TokenRecord` (what the cache
stores), :class:`PKCEMaterial` (per-attempt browser flow secrets), and
:class:`ProviderMetadata` (the subset of the OpenID discovery document the
flows consume).

**Exec-credential envelope** -- :class:`ExecCredential` and
:class:`ExecCredentialStatus`, exchanged with kubectl on stdin/stdout.

All timestamps are timezone-aware UTC datetimes.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from kubectl_login.exceptions import TokenExchangeError

DEFAULT_CALLBACK_PORT = 8000
"""Port of the local redirect listener when none is configured."""

DEFAULT_TOKEN_LIFETIME = 3600
"""Seconds assumed when a token response omits ``expires_in``."""

EXEC_CREDENTIAL_API_VERSION = "client.authentication.k8s.io/v1beta1"
"""apiVersion used when kubectl does not send one."""


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# --- Configuration ---


class ConfigFile(BaseModel):
    """Contents of the optional JSON configuration file.

    Every field is optional; empty values leave the corresponding flag
    untouched when the file is merged by
    :func:`~kubectl_login.config.resolve_flow_config`.

    Example file::

        {
          "issuer_url": "https://sso.example.com/realms/k8s",
          "client_id": "kubectl",
          "headless": false,
          "port": 8000
        }
    """

    model_config = ConfigDict(extra="ignore")

    issuer_url: str = ""
    client_id: str = ""
    client_secret: str = ""
    headless: bool = False
    port: int = 0


class FlowConfig(BaseModel):
    """Resolved, immutable configuration consumed by every flow driver.

    Built once per invocation from flags, the config file, and the
    environment, then passed explicitly to the
    :class:`~kubectl_login.auth.orchestrator.Authenticator`.
    """

    model_config = ConfigDict(frozen=True)

    issuer_url: str = Field(description="OIDC issuer URL")
    client_id: str = Field(description="OAuth2 client identifier")
    client_secret: Optional[str] = Field(
        default=None, description="OAuth2 client secret, if the client is confidential"
    )
    headless: bool = Field(
        default=False, description="Use client credentials / device code instead of a browser"
    )
    callback_port: int = Field(
        default=DEFAULT_CALLBACK_PORT,
        ge=1,
        le=65535,
        description="Local port for the browser flow redirect listener",
    )

    @field_validator("client_secret")
    @classmethod
    def _empty_secret_is_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @property
    def redirect_uri(self) -> str:
        """Redirect URI registered with the provider for the browser flow."""
        return f"http://localhost:{self.callback_port}/callback"


# --- Tokens ---


class TokenRecord(BaseModel):
    """A token set obtained from the identity provider.

    Records are immutable; a refresh produces a new record that replaces the
    old one in the :class:`~kubectl_login.auth.token_store.TokenStore`.

    Attributes:
        access_token: Bearer token handed to kubectl.
        refresh_token: Optional token used for silent renewal.
        id_token: Optional raw OIDC ID token (JWT).
        expiry: Absolute UTC expiry of ``access_token``.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    id_token: Optional[str] = None
    expiry: datetime

    @field_validator("refresh_token", "id_token", mode="before")
    @classmethod
    def _empty_is_none(cls, value: Any) -> Any:
        # Cache files written by older releases store "" for absent tokens.
        if value == "":
            return None
        return value

    @field_validator("expiry")
    @classmethod
    def _expiry_is_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @classmethod
    def from_token_response(
        cls,
        token_data: dict[str, Any],
        now: Optional[datetime] = None,
        previous_refresh_token: Optional[str] = None,
    ) -> "TokenRecord":
        """Build a record from a token endpoint JSON response.

        Args:
            token_data: Parsed response containing at least ``access_token``.
            now: Reference time for ``expires_in``. Defaults to the current time.
            previous_refresh_token: Kept when the response does not rotate
                the refresh token.

        Returns:
            A new :class:`TokenRecord` with an absolute ``expiry``.

        Raises:
            TokenExchangeError: If ``expires_in`` is not a number of seconds.
        """
        now = now or utcnow()
        expires_in = token_data.get("expires_in")
        if expires_in is None:
            expires_in = DEFAULT_TOKEN_LIFETIME
        try:
            expiry = now + timedelta(seconds=float(expires_in))
        except (TypeError, ValueError, OverflowError) as exc:
            raise TokenExchangeError(
                f"Token response has an invalid expires_in: {expires_in!r}"
            ) from exc
        return cls(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token") or previous_refresh_token,
            id_token=token_data.get("id_token"),
            expiry=expiry,
        )

    def time_remaining(self, now: Optional[datetime] = None) -> timedelta:
        """Return how long the access token stays valid (negative once expired)."""
        return self.expiry - (now or utcnow())


class PKCEMaterial(BaseModel):
    """Per-attempt secrets of the browser flow (:rfc:`7636`).

    Never persisted. Use :meth:`generate` to create a fresh set.
    """

    model_config = ConfigDict(frozen=True)

    state: str
    code_verifier: str
    code_challenge: str
    code_challenge_method: str = "S256"

    @classmethod
    def generate(cls) -> "PKCEMaterial":
        """Generate a random state and an S256 verifier/challenge pair.

        The state is 32 URL-safe characters; the verifier is 32 random bytes
        encoded as unpadded base64url (43 characters).
        """
        state = secrets.token_urlsafe(32)[:32]
        code_verifier = _b64url(secrets.token_bytes(32))
        return cls(
            state=state,
            code_verifier=code_verifier,
            code_challenge=challenge_for(code_verifier),
        )


def challenge_for(code_verifier: str) -> str:
    """Return the S256 code challenge for *code_verifier*."""
    return _b64url(hashlib.sha256(code_verifier.encode("ascii")).digest())


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


class ProviderMetadata(BaseModel):
    """Endpoints taken from the issuer's ``/.well-known/openid-configuration``."""

    model_config = ConfigDict(extra="ignore")

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: Optional[str] = None
    device_authorization_endpoint: Optional[str] = None
    id_token_signing_alg_values_supported: list[str] = Field(
        default_factory=lambda: ["RS256"]
    )


# --- Exec credential ---


class ExecCredentialStatus(BaseModel):
    """The ``status`` block returned to kubectl."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    expiration_timestamp: datetime = Field(alias="expirationTimestamp")

    @field_serializer("expiration_timestamp")
    def _rfc3339(self, value: datetime) -> str:
        return _as_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")


class ExecCredential(BaseModel):
    """The ``ExecCredential`` envelope exchanged with kubectl.

    kubectl sends one with ``spec`` filled in; the plugin answers with the
    same ``apiVersion`` and a populated ``status``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    api_version: str = Field(default=EXEC_CREDENTIAL_API_VERSION, alias="apiVersion")
    kind: str = "ExecCredential"
    spec: dict[str, Any] = Field(default_factory=dict)
    status: Optional[ExecCredentialStatus] = None
