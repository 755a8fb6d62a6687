"""OAuth2 Client Credentials grant (:rfc:`6749` section 4.4).

Non-interactive: one form POST of ``client_id`` + ``client_secret`` to the
token endpoint. Only available when a client secret is configured. The
resulting token carries no refresh token and no ID token.
"""

from __future__ import annotations

from typing import Optional

from kubectl_login.auth.discovery import ProviderDiscovery
from kubectl_login.exceptions import UnsupportedGrantError
from kubectl_login.flows.base import CLIENT_CREDENTIALS_SCOPES, FlowDriver
from kubectl_login.models import FlowConfig, TokenRecord


class ClientCredentialsFlow(FlowDriver):
    """Exchange the client's own credentials for an access token."""

    def __init__(self, discovery: Optional[ProviderDiscovery] = None) -> None:
        super().__init__(discovery)

    @property
    def name(self) -> str:
        return "client_credentials"

    def run(self, config: FlowConfig) -> TokenRecord:
        if not config.client_secret:
            raise UnsupportedGrantError("Client credentials flow requires a client secret")

        metadata = self.provider(config)
        token_data = self.request_token(
            metadata.token_endpoint,
            {
                "grant_type": "client_credentials",
                "client_id": config.client_id,
                "client_secret": config.client_secret,
                "scope": CLIENT_CREDENTIALS_SCOPES,
            },
            "Client credentials request",
        )
        record = TokenRecord.from_token_response(token_data)
        return record.model_copy(update={"refresh_token": None, "id_token": None})
