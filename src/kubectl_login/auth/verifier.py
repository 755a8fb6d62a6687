"""ID token verification.

Signature checking is delegated to PyJWT: the signing key is looked up in the
provider's JWKS (``jwks_uri`` from discovery) by the token's ``kid``, then
``jwt.decode`` checks the signature, ``exp``, ``iss`` and ``aud``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import jwt

from kubectl_login.exceptions import IDTokenVerificationError
from kubectl_login.models import ProviderMetadata

logger = logging.getLogger(__name__)

CLOCK_SKEW_SECONDS = 30
"""Leeway applied to ``exp``/``iat``/``nbf`` checks."""

REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


class IDTokenVerifier:
    """Verify ID tokens issued to *client_id* by the provider in *metadata*.

    Args:
        metadata: Discovered provider endpoints. ``jwks_uri`` is required.
        client_id: Expected ``aud`` claim.
        jwks_client: Pre-built :class:`jwt.PyJWKClient`; created from
            ``metadata.jwks_uri`` when omitted.
    """

    def __init__(
        self,
        metadata: ProviderMetadata,
        client_id: str,
        jwks_client: Optional[jwt.PyJWKClient] = None,
    ) -> None:
        self._metadata = metadata
        self._client_id = client_id
        if jwks_client is None:
            if not metadata.jwks_uri:
                raise IDTokenVerificationError(
                    "Provider does not publish 'jwks_uri'; cannot verify ID token"
                )
            jwks_client = jwt.PyJWKClient(metadata.jwks_uri)
        self._jwks_client = jwks_client

    def verify(self, raw_id_token: str) -> dict[str, Any]:
        """Verify *raw_id_token* and return its claims.

        Raises:
            IDTokenVerificationError: If the key cannot be found, the
                signature is invalid, or a claim check fails.
        """
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(raw_id_token)
            claims: dict[str, Any] = jwt.decode(
                raw_id_token,
                signing_key.key,
                algorithms=self._algorithms(),
                audience=self._client_id,
                issuer=self._metadata.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.PyJWTError as exc:
            raise IDTokenVerificationError(f"ID token verification failed: {exc}") from exc

        logger.debug("Verified ID token for subject %s", claims.get("sub"))
        return claims

    def _algorithms(self) -> list[str]:
        algorithms = [
            alg
            for alg in self._metadata.id_token_signing_alg_values_supported
            if alg != "none"
        ]
        return algorithms or ["RS256"]
