"""Authenticator -- decides which flow runs and keeps the cache current.

Decision sequence for :meth:`Authenticator.authenticate`::

    cached record, more than 5 minutes left   -> return it (no network)
    cached record with a refresh token        -> RefreshFlow
        refresh failed                        -> log, fall through
    headless == False                         -> BrowserFlow
    headless == True, client secret set       -> ClientCredentialsFlow
        failed                                -> DeviceCodeFlow
    headless == True, no client secret        -> DeviceCodeFlow

Any token obtained by a flow is written to the
:class:`~kubectl_login.auth.token_store.TokenStore` before it is returned.
A failing final flow raises and nothing is stored.

See Also:
    :mod:`kubectl_login.flows` -- the drivers this class coordinates.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

from kubectl_login.auth.discovery import ProviderDiscovery
from kubectl_login.auth.token_store import TokenStore
from kubectl_login.exceptions import AuthError
from kubectl_login.flows.browser import BrowserFlow
from kubectl_login.flows.client_credentials import ClientCredentialsFlow
from kubectl_login.flows.device_code import DeviceCodeFlow
from kubectl_login.flows.refresh import RefreshFlow
from kubectl_login.models import FlowConfig, TokenRecord, utcnow
from kubectl_login.output import warning

logger = logging.getLogger(__name__)

FRESHNESS_THRESHOLD = timedelta(minutes=5)
"""Cached tokens with less time left than this are renewed."""


class TokenSource(str, Enum):
    """Where the token returned by the last :meth:`Authenticator.authenticate` came from."""

    CACHE = "cache"
    REFRESH = "refresh"
    BROWSER = "browser"
    DEVICE_CODE = "device_code"
    CLIENT_CREDENTIALS = "client_credentials"


class Authenticator:
    """Obtain a valid token for one ``(issuer, client)`` identity.

    Args:
        config: Resolved flow configuration.
        store: Token cache. Defaults to the cache file in the user cache dir.
        browser: Browser/PKCE driver.
        device_code: Device-code driver.
        client_credentials: Client-credentials driver.
        refresh: Refresh driver.
        clock: Returns the current UTC time.

    Drivers not given are created sharing one
    :class:`~kubectl_login.auth.discovery.ProviderDiscovery`.

    Example::

        authenticator = Authenticator(resolve_flow_config(...))
        record = authenticator.authenticate()
        print(record.access_token, authenticator.last_source)
    """

    def __init__(
        self,
        config: FlowConfig,
        store: Optional[TokenStore] = None,
        *,
        browser: Optional[BrowserFlow] = None,
        device_code: Optional[DeviceCodeFlow] = None,
        client_credentials: Optional[ClientCredentialsFlow] = None,
        refresh: Optional[RefreshFlow] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        discovery = ProviderDiscovery()
        self._config = config
        self._store = store if store is not None else TokenStore()
        self._browser = browser or BrowserFlow(discovery)
        self._device_code = device_code or DeviceCodeFlow(discovery)
        self._client_credentials = client_credentials or ClientCredentialsFlow(discovery)
        self._refresh = refresh or RefreshFlow(discovery)
        self._clock = clock
        self.last_source: Optional[TokenSource] = None

    @property
    def config(self) -> FlowConfig:
        return self._config

    @property
    def store(self) -> TokenStore:
        return self._store

    def cached(self) -> Optional[TokenRecord]:
        """Return the cached record for this identity, fresh or not."""
        return self._store.get(self._config.issuer_url, self._config.client_id)

    def authenticate(self, force: bool = False) -> TokenRecord:
        """Return a token with more than five minutes of validity left.

        Args:
            force: Skip the cache and refresh steps and run a full flow.

        Raises:
            AuthError: If the selected flow fails.
        """
        if not force:
            record = self.cached()
            if record is not None:
                remaining = record.time_remaining(self._clock())
                if remaining > FRESHNESS_THRESHOLD:
                    logger.debug("Using cached token (%s left)", remaining)
                    self.last_source = TokenSource.CACHE
                    return record

                if record.refresh_token:
                    refreshed = self._try_refresh(record)
                    if refreshed is not None:
                        self._persist(refreshed)
                        self.last_source = TokenSource.REFRESH
                        return refreshed

        record, source = self._run_flow()
        self._persist(record)
        self.last_source = source
        return record

    def logout(self) -> bool:
        """Forget the cached token for this identity.

        Returns:
            ``True`` if a record was removed.
        """
        return self._store.clear(self._config.issuer_url, self._config.client_id)

    def _try_refresh(self, record: TokenRecord) -> Optional[TokenRecord]:
        try:
            return self._refresh.refresh(self._config, record)
        except AuthError as exc:
            logger.info("Token refresh failed, starting a new login: %s", exc)
            return None

    def _run_flow(self) -> tuple[TokenRecord, TokenSource]:
        if not self._config.headless:
            return self._browser.run(self._config), TokenSource.BROWSER

        if self._config.client_secret:
            try:
                return (
                    self._client_credentials.run(self._config),
                    TokenSource.CLIENT_CREDENTIALS,
                )
            except AuthError as exc:
                logger.debug("Client credentials flow failed: %s", exc)
                warning("Client credentials flow failed, trying device flow...")

        return self._device_code.run(self._config), TokenSource.DEVICE_CODE

    def _persist(self, record: TokenRecord) -> None:
        self._store.set(self._config.issuer_url, self._config.client_id, record)
