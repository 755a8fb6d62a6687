"""Typer application and CLI entry point for kubectl-login.

This module wires together the root Typer application and registers the
built-in commands (``login``, ``get-token``, ``logout``, ``status``,
``version``). The identity options (``--issuer-url``, ``--client-id``, ...)
are global so the same argument list works for every command.

Invoked without a command, kubectl-login behaves like ``get-token`` when
stdin is not a terminal (kubectl is calling it as an exec plugin) and like
``login`` otherwise.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`kubectl_login.config`: Flow configuration resolution.
    :mod:`kubectl_login.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from kubectl_login import __version__
from kubectl_login.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from kubectl_login.models import DEFAULT_CALLBACK_PORT


app = typer.Typer(
    name="kubectl-login",
    help="kubectl plugin for OIDC single sign-on.",
    no_args_is_help=False,
    invoke_without_command=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"kubectl-login {__version__}")
        raise typer.Exit()


def _stdin_is_tty() -> bool:
    return hasattr(sys.stdin, "isatty") and sys.stdin.isatty()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    issuer_url: Optional[str] = typer.Option(
        None, "--issuer-url", help="OIDC issuer URL (required if --config not used)."
    ),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", help="OIDC client ID (required if --config not used)."
    ),
    client_secret: Optional[str] = typer.Option(
        None,
        "--client-secret",
        help="OIDC client secret (can also be set via CLIENT_SECRET).",
    ),
    headless: bool = typer.Option(
        False, "--headless", help="Use headless authentication (for CI/CD)."
    ),
    port: int = typer.Option(
        DEFAULT_CALLBACK_PORT, "--port", help="Local port for the OAuth callback."
    ),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Path to a JSON configuration file."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every command.

    Initialises the global :class:`~kubectl_login.output.OutputManager` and
    logging from CLI flags, and stores the identity options in ``ctx.obj``
    for :func:`~kubectl_login.commands.common.flow_config_from_context`.
    Runs the default command when none was given.
    """
    from kubectl_login.output import (
        OutputFormat,
        OutputManager,
        configure_logging,
        set_output,
    )

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    configure_logging(verbose)

    ctx.ensure_object(dict)
    ctx.obj["issuer_url"] = issuer_url
    ctx.obj["client_id"] = client_id
    ctx.obj["client_secret"] = client_secret
    ctx.obj["headless"] = headless
    ctx.obj["port"] = port
    ctx.obj["config_path"] = config_path

    if ctx.invoked_subcommand is None:
        if _stdin_is_tty():
            from kubectl_login.commands.login import run_login

            run_login(ctx)
        else:
            from kubectl_login.commands.exec_credential import run_get_token

            run_get_token(ctx)


def version_command() -> None:
    """Print the kubectl-login version."""
    from kubectl_login.output import print_data

    print_data(f"kubectl-login {__version__}")


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from kubectl_login.commands.exec_credential import get_token_command  # noqa: E402
from kubectl_login.commands.login import (  # noqa: E402
    login_command,
    logout_command,
    status_command,
)

app.command("login")(login_command)
app.command("get-token")(get_token_command)
app.command("logout")(logout_command)
app.command("status")(status_command)
app.command("version")(version_command)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from kubectl_login.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``kubectl-login`` console script.

    Unhandled :class:`~kubectl_login.exceptions.KubectlLoginError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from kubectl_login.exceptions import KubectlLoginError
        from kubectl_login.output import error

        if isinstance(exc, KubectlLoginError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)


if __name__ == "__main__":
    main()
