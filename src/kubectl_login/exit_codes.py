"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~kubectl_login.exceptions.KubectlLoginError` subclass.
kubectl only distinguishes success from failure, but wrapper scripts can
inspect the exit code to tell a rejected login from a broken configuration.

Example::

    $ kubectl-login --issuer-url https://sso.example.com --client-id k8s login
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the provider rejected the login
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required flags."""

EXIT_AUTH_FAILURE = 3
"""Authentication against the identity provider failed."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
