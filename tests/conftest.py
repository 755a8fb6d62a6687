"""Shared test fixtures for kubectl-login.

Provides isolated config/cache directories, a canonical flow configuration,
canned provider metadata, mock HTTP responses, and real RS256-signed ID
tokens verified through a stubbed JWKS client. These fixtures are
automatically discovered by pytest and available to all test modules.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Iterator
from unittest.mock import MagicMock, patch

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from kubectl_login.auth.discovery import ProviderDiscovery
from kubectl_login.auth.verifier import IDTokenVerifier
from kubectl_login.models import FlowConfig, ProviderMetadata
from kubectl_login.output import OutputFormat, OutputManager, reset_output, set_output


ISSUER = "https://issuer.example"
CLIENT_ID = "client-a"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> Iterator[None]:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner or capsys swap those streams,
    the cached references become stale, so a fresh manager is created on
    next use. Logging configured by the CLI callback is undone as well so
    ``caplog`` keeps seeing records.
    """
    yield
    reset_output()
    logger = logging.getLogger("kubectl_login")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration and token cache to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch the real token
    cache, and clears environment variables the CLI reads.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("kubectl_login.config._is_xdg_platform", lambda: True)

    for var in ["CLIENT_SECRET", "KUBERNETES_EXEC_INFO"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> Iterator[OutputManager]:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def plain_output() -> Iterator[OutputManager]:
    """Install an uncoloured PLAIN OutputManager so stderr text is easy to assert on."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Flow configuration and provider
# ---------------------------------------------------------------------------


@pytest.fixture
def flow_config() -> FlowConfig:
    return FlowConfig(issuer_url=ISSUER, client_id=CLIENT_ID)


@pytest.fixture
def provider_metadata() -> ProviderMetadata:
    return ProviderMetadata(
        issuer=ISSUER,
        authorization_endpoint=f"{ISSUER}/authorize",
        token_endpoint=f"{ISSUER}/token",
        jwks_uri=f"{ISSUER}/jwks",
    )


@pytest.fixture
def stub_discovery(provider_metadata: ProviderMetadata) -> MagicMock:
    """A ProviderDiscovery that answers without network access."""
    discovery = MagicMock(spec=ProviderDiscovery)
    discovery.get.return_value = provider_metadata
    return discovery


# ---------------------------------------------------------------------------
# HTTP responses
# ---------------------------------------------------------------------------


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for ``httpx.Response`` mocks.

    ``make_response({"access_token": "x"}, status_code=200)``
    """

    def _make(data: Any = None, status_code: int = 200) -> MagicMock:
        if data is None:
            data = {"access_token": "test-token", "expires_in": 3600}
        response = MagicMock(spec=httpx.Response)
        response.status_code = status_code
        response.json.return_value = data
        response.text = str(data)
        if status_code >= 400:
            response.raise_for_status.side_effect = httpx.HTTPStatusError(
                message=f"HTTP {status_code}",
                request=MagicMock(),
                response=response,
            )
        else:
            response.raise_for_status.return_value = None
        return response

    return _make


# ---------------------------------------------------------------------------
# ID tokens
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def signing_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def make_id_token(signing_key: rsa.RSAPrivateKey) -> Callable[..., str]:
    """Factory for RS256 ID tokens; keyword arguments override claims."""

    def _make(key: Any = None, **overrides: Any) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            "iss": ISSUER,
            "aud": CLIENT_ID,
            "sub": "user-1",
            "email": "user@example.com",
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        return jwt.encode(
            claims,
            key or signing_key,
            algorithm="RS256",
            headers={"kid": "test-key"},
        )

    return _make


@pytest.fixture
def jwks_client(signing_key: rsa.RSAPrivateKey) -> MagicMock:
    """A JWKS client that always returns the test public key."""
    client = MagicMock(spec=jwt.PyJWKClient)
    client.get_signing_key_from_jwt.return_value = MagicMock(key=signing_key.public_key())
    return client


@pytest.fixture
def patched_verifier(jwks_client: MagicMock) -> Iterator[MagicMock]:
    """Make flow drivers verify ID tokens against the test key."""

    def _build(metadata: ProviderMetadata, client_id: str) -> IDTokenVerifier:
        return IDTokenVerifier(metadata, client_id, jwks_client=jwks_client)

    with patch("kubectl_login.flows.base.IDTokenVerifier", side_effect=_build) as mock_cls:
        yield mock_cls
