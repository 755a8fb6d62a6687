"""OpenID Connect provider discovery.

Fetches ``<issuer>/.well-known/openid-configuration`` and returns the subset
of it the flows need as a :class:`~kubectl_login.models.ProviderMetadata`.
:class:`ProviderDiscovery` memoises documents per issuer so a single
invocation (refresh, then maybe a browser flow) fetches at most once.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from kubectl_login.exceptions import DiscoveryError
from kubectl_login.models import ProviderMetadata

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"

HTTP_TIMEOUT = 30.0


def discovery_url(issuer_url: str) -> str:
    """Return the discovery document URL for *issuer_url*."""
    return issuer_url.rstrip("/") + WELL_KNOWN_PATH


def discover(issuer_url: str, timeout: float = HTTP_TIMEOUT) -> ProviderMetadata:
    """Fetch and validate the discovery document of *issuer_url*.

    Args:
        issuer_url: The configured issuer. A trailing slash is ignored.
        timeout: HTTP timeout in seconds.

    Returns:
        The provider's endpoints.

    Raises:
        DiscoveryError: If the document cannot be fetched, is not JSON, lacks
            the authorization or token endpoint, or names a different issuer.
    """
    url = discovery_url(issuer_url)
    logger.debug("Fetching provider configuration from %s", url)
    try:
        response = httpx.get(
            url,
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
        response.raise_for_status()
        doc: dict[str, Any] = response.json()
    except httpx.HTTPStatusError as exc:
        raise DiscoveryError(
            f"OpenID discovery failed with status {exc.response.status_code}: "
            f"{exc.response.text}"
        ) from exc
    except httpx.HTTPError as exc:
        raise DiscoveryError(f"OpenID discovery failed: {exc}") from exc
    except ValueError as exc:
        raise DiscoveryError(f"OpenID discovery returned invalid JSON: {exc}") from exc

    if not isinstance(doc, dict):
        raise DiscoveryError("OpenID discovery document is not a JSON object")
    for field in ("authorization_endpoint", "token_endpoint"):
        if not doc.get(field):
            raise DiscoveryError(f"OpenID discovery document missing '{field}'")

    try:
        metadata = ProviderMetadata.model_validate(doc)
    except ValidationError as exc:
        raise DiscoveryError(f"Invalid OpenID discovery document: {exc}") from exc

    if metadata.issuer.rstrip("/") != issuer_url.rstrip("/"):
        raise DiscoveryError(
            f"Issuer mismatch: configured {issuer_url!r}, "
            f"provider reports {metadata.issuer!r}"
        )
    return metadata


class ProviderDiscovery:
    """Per-issuer cache in front of :func:`discover`."""

    def __init__(self, timeout: float = HTTP_TIMEOUT) -> None:
        self._timeout = timeout
        self._documents: dict[str, ProviderMetadata] = {}

    def get(self, issuer_url: str) -> ProviderMetadata:
        key = issuer_url.rstrip("/")
        if key not in self._documents:
            self._documents[key] = discover(issuer_url, timeout=self._timeout)
        return self._documents[key]
