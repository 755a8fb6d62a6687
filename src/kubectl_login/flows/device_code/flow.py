"""OAuth2 Device Authorization Grant (:rfc:`8628`) for headless terminals.

Flow:
    1. POST ``client_id`` + scopes to the first device authorization
       endpoint that answers with a ``device_code`` and ``user_code``.
       Candidates are the discovered ``device_authorization_endpoint``
       followed by the common ``/device``, ``/oauth2/device`` and
       ``/v1/device`` paths under the issuer.
    2. Print "Go to {verification_uri} and enter code: {user_code}" to stderr.
    3. Poll the token endpoint every ``interval`` seconds until a token is
       issued or ``expires_in`` elapses.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from kubectl_login.auth.discovery import ProviderDiscovery
from kubectl_login.exceptions import AuthTimeoutError, UnsupportedGrantError
from kubectl_login.flows.base import INTERACTIVE_SCOPES, FlowDriver
from kubectl_login.models import FlowConfig, ProviderMetadata, TokenRecord
from kubectl_login.output import info, success

logger = logging.getLogger(__name__)

DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"

DEVICE_ENDPOINT_SUFFIXES = ("/device", "/oauth2/device", "/v1/device")

DEFAULT_INTERVAL = 5
DEFAULT_EXPIRES_IN = 1800
SLOW_DOWN_INCREMENT = 5


def device_endpoint_candidates(issuer_url: str, metadata: Optional[ProviderMetadata] = None) -> list[str]:
    """Return the ordered, de-duplicated device authorization endpoints to try."""
    base = issuer_url.rstrip("/")
    candidates: list[str] = []
    if metadata is not None and metadata.device_authorization_endpoint:
        candidates.append(metadata.device_authorization_endpoint)
    for suffix in DEVICE_ENDPOINT_SUFFIXES:
        url = base + suffix
        if url not in candidates:
            candidates.append(url)
    return candidates


def _seconds(device_data: dict[str, Any], field: str, default: int) -> int:
    """Read a whole number of seconds from the device authorization response.

    Raises:
        UnsupportedGrantError: If the field is present but not a number.
    """
    value = device_data.get(field) or default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise UnsupportedGrantError(
            f"Device authorization response has an invalid {field}: {value!r}"
        ) from exc


class DeviceCodeFlow(FlowDriver):
    """Log in by entering a short code on another device."""

    def __init__(self, discovery: Optional[ProviderDiscovery] = None) -> None:
        super().__init__(discovery)

    @property
    def name(self) -> str:
        return "device_code"

    def run(self, config: FlowConfig) -> TokenRecord:
        metadata = self.provider(config)
        device_data = self._request_device_code(config, metadata)

        verification_uri = (
            device_data.get("verification_uri_complete")
            or device_data.get("verification_uri")
            or device_data.get("verification_url", "")
        )
        self._display_user_code(verification_uri, device_data["user_code"])

        token_data = self._poll_for_token(
            config,
            metadata,
            device_data["device_code"],
            _seconds(device_data, "interval", DEFAULT_INTERVAL),
            _seconds(device_data, "expires_in", DEFAULT_EXPIRES_IN),
        )

        id_token = token_data.get("id_token")
        if id_token:
            claims = self.verify_id_token(config, metadata, id_token)
            if claims.get("email"):
                success(f"Successfully authenticated as: {claims['email']}")
        return TokenRecord.from_token_response(token_data)

    def _request_device_code(
        self, config: FlowConfig, metadata: ProviderMetadata
    ) -> dict[str, Any]:
        """Try each candidate endpoint in order; the first usable answer wins.

        Raises:
            UnsupportedGrantError: If every candidate fails.
        """
        data = {"client_id": config.client_id, "scope": INTERACTIVE_SCOPES}
        failures: list[str] = []

        for url in device_endpoint_candidates(config.issuer_url, metadata):
            try:
                response = httpx.post(
                    url,
                    data=data,
                    headers={"Accept": "application/json"},
                    timeout=self._timeout,
                )
            except httpx.HTTPError as exc:
                failures.append(f"{url}: {exc}")
                continue

            if response.status_code != 200:
                failures.append(f"{url}: status {response.status_code}")
                continue
            try:
                result: dict[str, Any] = response.json()
            except ValueError:
                failures.append(f"{url}: invalid JSON")
                continue
            if not isinstance(result, dict) or not result.get("device_code") or not result.get("user_code"):
                failures.append(f"{url}: missing device_code or user_code")
                continue

            logger.debug("Using device authorization endpoint %s", url)
            return result

        for failure in failures:
            logger.debug("Device authorization candidate failed: %s", failure)
        raise UnsupportedGrantError(
            "Device authorization is not supported by the provider "
            f"(tried {len(failures)} endpoint(s): {'; '.join(failures)})"
        )

    def _display_user_code(self, verification_uri: str, user_code: str) -> None:
        info("")
        info(f"Go to: {verification_uri}")
        info(f"Enter code: {user_code}")
        info("")
        info("Waiting for authorization...")

    def _poll_for_token(
        self,
        config: FlowConfig,
        metadata: ProviderMetadata,
        device_code: str,
        interval: int,
        expires_in: int,
    ) -> dict[str, Any]:
        """Poll until the user authorizes or the device code expires.

        Every unsuccessful answer (``authorization_pending``, other errors,
        transport failures) is retried on the next tick; ``slow_down`` also
        lengthens the interval. No request is sent once the deadline passed.

        Raises:
            AuthTimeoutError: When ``expires_in`` elapses without a token.
        """
        deadline = time.monotonic() + expires_in
        poll_interval = max(interval, 1)
        data = {
            "grant_type": DEVICE_CODE_GRANT,
            "device_code": device_code,
            "client_id": config.client_id,
        }
        if config.client_secret:
            data["client_secret"] = config.client_secret

        while True:
            time.sleep(poll_interval)
            if time.monotonic() >= deadline:
                break

            try:
                response = httpx.post(
                    metadata.token_endpoint,
                    data=data,
                    headers={"Accept": "application/json"},
                    timeout=self._timeout,
                )
                token_data: Any = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.debug("Device token poll failed: %s", exc)
                continue

            if not isinstance(token_data, dict):
                continue
            if response.status_code == 200 and token_data.get("access_token"):
                return token_data

            error = token_data.get("error", "")
            if error == "slow_down":
                poll_interval += SLOW_DOWN_INCREMENT
            logger.debug("Device token poll returned %s %s", response.status_code, error)

        raise AuthTimeoutError("Device code flow timed out -- please try again")
