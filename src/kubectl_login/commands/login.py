"""Interactive commands -- log in, log out, and inspect the token cache.

Typical workflow::

    kubectl-login --issuer-url https://sso.example.com --client-id kubectl login
    kubectl-login status
    kubectl-login --issuer-url https://sso.example.com --client-id kubectl logout
"""

from __future__ import annotations

import typer

from kubectl_login.auth.orchestrator import TokenSource
from kubectl_login.auth.token_store import TokenStore, parse_cache_key
from kubectl_login.commands.common import build_authenticator, fail, format_remaining
from kubectl_login.exceptions import KubectlLoginError
from kubectl_login.models import utcnow
from kubectl_login.output import info, print_table, success, suggest


def run_login(ctx: typer.Context, force: bool = False) -> None:
    """Authenticate and report how long the token stays valid."""
    try:
        authenticator = build_authenticator(ctx)
        record = authenticator.authenticate(force=force)
    except KubectlLoginError as exc:
        fail(exc)

    remaining = format_remaining(record.time_remaining())
    if authenticator.last_source == TokenSource.CACHE:
        info(f"Using cached token (expires in {remaining})")
    elif authenticator.last_source == TokenSource.REFRESH:
        success(f"Token refreshed! Expires in {remaining}")
    else:
        success(f"Successfully authenticated! Token expires in {remaining}")
        suggest("You can now use kubectl commands.")


def login_command(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", "-f", help="Ignore the cached token and log in again."
    ),
) -> None:
    """Log in to the identity provider and cache the token.

    Uses the cached token while it has more than five minutes left,
    otherwise refreshes it or runs the configured login flow.

    Example::

        kubectl-login --issuer-url https://sso.example.com --client-id kubectl login
        kubectl-login --config ~/.kube/sso.json --headless login --force
    """
    run_login(ctx, force=force)


def logout_command(
    ctx: typer.Context,
    all_identities: bool = typer.Option(
        False, "--all", help="Remove every cached token."
    ),
) -> None:
    """Remove the cached token for the configured issuer and client.

    Example::

        kubectl-login --issuer-url https://sso.example.com --client-id kubectl logout
        kubectl-login logout --all
    """
    if all_identities:
        store = TokenStore()
        removed = 0
        for key in store.all():
            removed += store.clear_key(key)
        success(f"Removed {removed} cached token(s).")
        return

    try:
        authenticator = build_authenticator(ctx)
    except KubectlLoginError as exc:
        fail(exc)

    if authenticator.logout():
        success(
            f"Logged out of {authenticator.config.issuer_url} "
            f"({authenticator.config.client_id})."
        )
    else:
        info("No cached token for this issuer and client.")


def status_command() -> None:
    """List cached tokens and their remaining lifetime.

    Example::

        kubectl-login status
        kubectl-login --json status
    """
    store = TokenStore()
    records = store.all()
    if not records:
        info(f"No cached tokens in {store.path}")
        return

    now = utcnow()
    rows: list[list[str]] = []
    for key, record in sorted(records.items()):
        try:
            issuer_url, client_id = parse_cache_key(key)
        except ValueError:
            issuer_url, client_id = key, ""
        rows.append(
            [
                issuer_url,
                client_id,
                record.expiry.strftime("%Y-%m-%dT%H:%M:%SZ"),
                format_remaining(record.time_remaining(now)),
                "yes" if record.refresh_token else "no",
            ]
        )
    print_table(
        ["Issuer", "Client", "Expires", "Remaining", "Refresh token"],
        rows,
        title="Cached tokens",
    )
