"""Abstract base for authentication flow drivers.

Every driver turns a :class:`~kubectl_login.models.FlowConfig` into a
:class:`~kubectl_login.models.TokenRecord` or raises a subclass of
:class:`~kubectl_login.exceptions.AuthError`. Drivers never touch the token
cache; persisting results is the job of
:class:`~kubectl_login.auth.orchestrator.Authenticator`.

:class:`TokenEndpointClient` holds what all drivers share: provider
discovery, the form POST to the token endpoint, and ID token verification.

To add a flow, subclass :class:`FlowDriver`, set :attr:`~FlowDriver.name`, and
implement :meth:`~FlowDriver.run`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from kubectl_login.auth.discovery import HTTP_TIMEOUT, ProviderDiscovery
from kubectl_login.auth.verifier import IDTokenVerifier
from kubectl_login.exceptions import TokenExchangeError
from kubectl_login.models import FlowConfig, ProviderMetadata, TokenRecord

logger = logging.getLogger(__name__)

INTERACTIVE_SCOPES = "openid profile email offline_access"
"""Scopes requested by the browser and device-code flows."""

CLIENT_CREDENTIALS_SCOPES = "openid profile email"
"""Scopes requested by the client-credentials flow."""


class TokenEndpointClient:
    """Shared plumbing for talking to the provider's token endpoint.

    Args:
        discovery: Discovery cache to use. Drivers built by the same
            :class:`~kubectl_login.auth.orchestrator.Authenticator` share one
            so the document is fetched once per invocation.
        timeout: HTTP timeout in seconds.
    """

    def __init__(
        self,
        discovery: Optional[ProviderDiscovery] = None,
        timeout: float = HTTP_TIMEOUT,
    ) -> None:
        self._discovery = discovery or ProviderDiscovery(timeout=timeout)
        self._timeout = timeout

    def provider(self, config: FlowConfig) -> ProviderMetadata:
        """Return the discovered endpoints of the configured issuer."""
        return self._discovery.get(config.issuer_url)

    def request_token(self, url: str, data: dict[str, str], what: str) -> dict[str, Any]:
        """POST a form to *url* and return the decoded token response.

        Args:
            url: Token endpoint.
            data: Form fields, including ``grant_type``.
            what: Short description used in error messages
                (e.g. ``"Token exchange"``).

        Raises:
            TokenExchangeError: On transport errors, non-200 responses,
                undecodable bodies, or a missing ``access_token``.
        """
        try:
            response = httpx.post(
                url,
                data=data,
                headers={"Accept": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise TokenExchangeError(f"{what} failed: {exc}") from exc

        if response.status_code != 200:
            raise TokenExchangeError(
                f"{what} failed with status {response.status_code}: {response.text}"
            )
        try:
            token_data: dict[str, Any] = response.json()
        except ValueError as exc:
            raise TokenExchangeError(f"{what} returned invalid JSON: {exc}") from exc

        if not isinstance(token_data, dict) or not token_data.get("access_token"):
            raise TokenExchangeError(f"{what} response missing 'access_token' field")
        return token_data

    def verify_id_token(
        self, config: FlowConfig, metadata: ProviderMetadata, raw_id_token: str
    ) -> dict[str, Any]:
        """Verify *raw_id_token* against the provider's keys and return its claims."""
        return IDTokenVerifier(metadata, config.client_id).verify(raw_id_token)


class FlowDriver(TokenEndpointClient, ABC):
    """Abstract base class for flow drivers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier of the flow (e.g. ``"browser"``)."""

    @abstractmethod
    def run(self, config: FlowConfig) -> TokenRecord:
        """Obtain a fresh token for *config*.

        Raises:
            AuthError: On any failure. Nothing is cached by the driver.
        """
