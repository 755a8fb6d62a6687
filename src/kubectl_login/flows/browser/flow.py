"""Interactive Authorization Code flow with PKCE (:rfc:`7636`).

1. Discover the provider and generate fresh :class:`PKCEMaterial`.
2. Start a :class:`RedirectListener` on ``localhost:<callback_port>``.
3. Open the authorization URL in the user's browser (also printed to stderr).
4. Wait up to five minutes for the callback.
5. Exchange the code at the token endpoint and verify the ID token.
"""

from __future__ import annotations

import logging
import threading
import webbrowser
from typing import Any, Callable, Optional
from urllib.parse import urlencode

from kubectl_login.auth.discovery import ProviderDiscovery
from kubectl_login.exceptions import IDTokenVerificationError
from kubectl_login.flows.base import INTERACTIVE_SCOPES, FlowDriver
from kubectl_login.flows.browser.listener import RedirectListener
from kubectl_login.models import FlowConfig, PKCEMaterial, ProviderMetadata, TokenRecord
from kubectl_login.output import info

logger = logging.getLogger(__name__)

CALLBACK_TIMEOUT_SECONDS = 300.0


def _open_in_browser(url: str) -> None:
    try:
        if not webbrowser.open(url):
            logger.debug("No browser available to open the login URL")
    except webbrowser.Error as exc:
        logger.warning("Could not open a browser: %s", exc)


class BrowserFlow(FlowDriver):
    """Log in through the system browser.

    Args:
        discovery: Shared discovery cache.
        open_browser: Callable that opens a URL. Runs in a daemon thread so a
            slow or missing browser never blocks the listener.
        callback_timeout: Seconds to wait for the redirect.
    """

    def __init__(
        self,
        discovery: Optional[ProviderDiscovery] = None,
        open_browser: Callable[[str], None] = _open_in_browser,
        callback_timeout: float = CALLBACK_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(discovery)
        self._open_browser = open_browser
        self._callback_timeout = callback_timeout

    @property
    def name(self) -> str:
        return "browser"

    def run(self, config: FlowConfig) -> TokenRecord:
        metadata = self.provider(config)
        pkce = PKCEMaterial.generate()
        auth_url = self.authorization_url(config, metadata, pkce)

        with RedirectListener(config.callback_port, pkce.state) as listener:
            info("Opening browser for login. If it does not open, visit:")
            info(auth_url)
            threading.Thread(
                target=self._open_browser, args=(auth_url,), daemon=True
            ).start()
            code = listener.wait(self._callback_timeout)

        token_data = self._exchange_code(config, metadata, code, pkce)
        id_token = token_data.get("id_token")
        if not id_token:
            raise IDTokenVerificationError("Token response did not include an ID token")
        self.verify_id_token(config, metadata, id_token)
        return TokenRecord.from_token_response(token_data)

    def authorization_url(
        self, config: FlowConfig, metadata: ProviderMetadata, pkce: PKCEMaterial
    ) -> str:
        """Build the authorization request URL."""
        params = {
            "response_type": "code",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "scope": INTERACTIVE_SCOPES,
            "state": pkce.state,
            "code_challenge": pkce.code_challenge,
            "code_challenge_method": pkce.code_challenge_method,
            "access_type": "offline",
        }
        separator = "&" if "?" in metadata.authorization_endpoint else "?"
        return f"{metadata.authorization_endpoint}{separator}{urlencode(params)}"

    def _exchange_code(
        self,
        config: FlowConfig,
        metadata: ProviderMetadata,
        code: str,
        pkce: PKCEMaterial,
    ) -> dict[str, Any]:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": config.redirect_uri,
            "client_id": config.client_id,
            "code_verifier": pkce.code_verifier,
        }
        if config.client_secret:
            data["client_secret"] = config.client_secret
        return self.request_token(metadata.token_endpoint, data, "Token exchange")
