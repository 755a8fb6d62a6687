"""Silent renewal with a refresh token."""

from __future__ import annotations

from typing import Optional

from kubectl_login.auth.discovery import ProviderDiscovery
from kubectl_login.exceptions import UnsupportedGrantError
from kubectl_login.flows.base import FlowDriver
from kubectl_login.models import FlowConfig, TokenRecord


class RefreshFlow(FlowDriver):
    """Exchange a cached record's refresh token for a new token set.

    Unlike the other drivers this needs the previous record, so callers use
    :meth:`refresh`; :meth:`run` exists only to satisfy the driver interface.
    """

    def __init__(self, discovery: Optional[ProviderDiscovery] = None) -> None:
        super().__init__(discovery)

    @property
    def name(self) -> str:
        return "refresh"

    def run(self, config: FlowConfig) -> TokenRecord:
        raise UnsupportedGrantError("Refresh requires a cached token; use refresh()")

    def refresh(self, config: FlowConfig, record: TokenRecord) -> TokenRecord:
        """Return a new record obtained with ``record.refresh_token``.

        The old refresh token is kept when the provider does not rotate it.
        A returned ID token is verified before the record is built.

        Raises:
            UnsupportedGrantError: If *record* has no refresh token.
            AuthError: On discovery, token endpoint, or verification failure.
        """
        if not record.refresh_token:
            raise UnsupportedGrantError("No refresh token available")

        metadata = self.provider(config)
        data = {
            "grant_type": "refresh_token",
            "refresh_token": record.refresh_token,
            "client_id": config.client_id,
        }
        if config.client_secret:
            data["client_secret"] = config.client_secret

        token_data = self.request_token(metadata.token_endpoint, data, "Token refresh")
        id_token = token_data.get("id_token")
        if id_token:
            self.verify_id_token(config, metadata, id_token)
        return TokenRecord.from_token_response(
            token_data, previous_refresh_token=record.refresh_token
        )
