"""``get-token`` -- answer kubectl's exec-credential request.

kubectl runs this command and reads one ``ExecCredential`` JSON document from
stdout. Anything else the login flows print goes to stderr.
"""

from __future__ import annotations

import typer

from kubectl_login.commands.common import build_authenticator, fail
from kubectl_login.exceptions import KubectlLoginError
from kubectl_login.exec_credential import build_response, read_request, render
from kubectl_login.output import debug, print_data


def run_get_token(ctx: typer.Context) -> None:
    try:
        request = read_request()
        authenticator = build_authenticator(ctx)
        record = authenticator.authenticate()
    except KubectlLoginError as exc:
        fail(exc)

    if authenticator.last_source is not None:
        debug(f"Returning token from {authenticator.last_source.value}")
    print_data(render(build_response(request, record)))


def get_token_command(ctx: typer.Context) -> None:
    """Print an ExecCredential for kubectl, logging in if needed.

    Example kubeconfig ``exec`` arguments::

        args: ["--issuer-url=https://sso.example.com", "--client-id=kubectl", "get-token"]
    """
    run_get_token(ctx)
