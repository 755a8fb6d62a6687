"""Helpers shared by the command modules."""

from __future__ import annotations

from datetime import timedelta
from typing import NoReturn

import typer

from kubectl_login.auth.orchestrator import Authenticator
from kubectl_login.config import resolve_flow_config
from kubectl_login.exceptions import InvalidUsageError, KubectlLoginError
from kubectl_login.models import DEFAULT_CALLBACK_PORT, FlowConfig
from kubectl_login.output import error, suggest


def flow_config_from_context(ctx: typer.Context) -> FlowConfig:
    """Resolve the flow configuration from the root callback's options."""
    obj = ctx.obj or {}
    return resolve_flow_config(
        issuer_url=obj.get("issuer_url"),
        client_id=obj.get("client_id"),
        client_secret=obj.get("client_secret"),
        headless=obj.get("headless", False),
        port=obj.get("port", DEFAULT_CALLBACK_PORT),
        config_path=obj.get("config_path"),
    )


def build_authenticator(ctx: typer.Context) -> Authenticator:
    return Authenticator(flow_config_from_context(ctx))


def fail(exc: KubectlLoginError) -> NoReturn:
    """Report *exc* on stderr and exit with its exit code."""
    error(str(exc))
    if isinstance(exc, InvalidUsageError):
        suggest("Pass --issuer-url and --client-id, or --config <file>")
    raise typer.Exit(code=exc.exit_code)


def format_remaining(remaining: timedelta) -> str:
    """Render a duration as ``1h2m3s``; negative durations read ``expired``."""
    total = int(remaining.total_seconds())
    if total <= 0:
        return "expired"
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"
