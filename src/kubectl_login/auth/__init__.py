"""Token cache, provider discovery, and flow orchestration.

The main entry points are:

- :class:`~kubectl_login.auth.orchestrator.Authenticator` -- picks and runs a
  flow, keeps the cache current. Import it from
  :mod:`kubectl_login.auth.orchestrator`; it depends on
  :mod:`kubectl_login.flows`, which in turn uses the modules below.
- :class:`TokenStore` -- persistent, thread-safe token cache keyed by
  ``(issuer, client)``.
- :class:`ProviderDiscovery` -- cached OpenID configuration lookup.
- :class:`IDTokenVerifier` -- ID token signature and claim checks.

Typical usage::

    from kubectl_login.auth.orchestrator import Authenticator

    record = Authenticator(flow_config).authenticate()
"""

from kubectl_login.auth.discovery import ProviderDiscovery, discover
from kubectl_login.auth.token_store import TokenStore, cache_key, parse_cache_key
from kubectl_login.auth.verifier import IDTokenVerifier

__all__ = [
    "IDTokenVerifier",
    "ProviderDiscovery",
    "TokenStore",
    "cache_key",
    "discover",
    "parse_cache_key",
]
