"""Exception hierarchy for kubectl-login.

All exceptions inherit from :class:`KubectlLoginError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`kubectl_login.exit_codes`. The command layer catches
``KubectlLoginError``, prints the message to stderr, and exits with the
matching code.

Subclass hierarchy::

    KubectlLoginError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- ConfigError                (exit 1)
    +-- ExecCredentialError        (exit 1)
    +-- AuthError                  (exit 3)
    |   +-- DiscoveryError
    |   +-- ListenerBindError
    |   +-- StateMismatchError
    |   +-- ProviderError
    |   +-- MissingCodeError
    |   +-- TokenExchangeError
    |   +-- IDTokenVerificationError
    |   +-- AuthTimeoutError
    |   +-- UnsupportedGrantError
    +-- CacheError                 (never leaves the token store)
        +-- CacheIOError
        +-- CacheDecodeError
"""

from __future__ import annotations

from kubectl_login.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)


class KubectlLoginError(Exception):
    """Base exception for all kubectl-login errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(KubectlLoginError):
    """Raised for invalid CLI arguments or missing required flags."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(KubectlLoginError):
    """Raised when the configuration file is missing, unreadable, or invalid."""

    exit_code = EXIT_GENERIC_FAILURE


class ExecCredentialError(KubectlLoginError):
    """Raised when the exec-credential request from kubectl cannot be decoded."""

    exit_code = EXIT_GENERIC_FAILURE


# --- Authentication ---


class AuthError(KubectlLoginError):
    """Base class for every failure of an authentication flow."""

    exit_code = EXIT_AUTH_FAILURE


class DiscoveryError(AuthError):
    """The issuer's OpenID configuration could not be fetched or is incomplete."""


class ListenerBindError(AuthError):
    """The local redirect listener could not bind its port."""


class StateMismatchError(AuthError):
    """The ``state`` returned on the callback differs from the one sent."""


class ProviderError(AuthError):
    """The identity provider reported an OAuth error on the callback.

    Args:
        error: The OAuth ``error`` code (e.g. ``access_denied``).
        description: Optional ``error_description`` sent by the provider.
    """

    def __init__(self, error: str, description: str | None = None):
        message = f"OAuth error: {error}"
        if description:
            message += f" - {description}"
        super().__init__(message)
        self.error = error
        self.description = description


class MissingCodeError(AuthError):
    """The callback carried neither an error nor an authorization code."""


class TokenExchangeError(AuthError):
    """A request to the token endpoint failed or returned an unusable response."""


class IDTokenVerificationError(AuthError):
    """The ID token signature or claims could not be verified."""


class AuthTimeoutError(AuthError):
    """The flow did not complete before its deadline."""


class UnsupportedGrantError(AuthError):
    """The provider (or configuration) does not support the requested grant."""


# --- Token cache ---


class CacheError(KubectlLoginError):
    """Base class for token cache failures. Always handled inside the store."""


class CacheIOError(CacheError):
    """The cache file could not be read or written."""


class CacheDecodeError(CacheError):
    """The cache file exists but does not contain a valid token mapping."""
