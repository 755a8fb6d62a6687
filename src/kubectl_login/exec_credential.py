"""kubectl exec-credential envelope.

kubectl describes the request in the ``KUBERNETES_EXEC_INFO`` environment
variable (older clients pipe it on stdin) and expects a single JSON document on
stdout::

    {
      "apiVersion": "client.authentication.k8s.io/v1beta1",
      "kind": "ExecCredential",
      "status": {
        "token": "<access token>",
        "expirationTimestamp": "2026-01-01T12:00:00Z"
      }
    }

The response echoes the request's ``apiVersion``.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Mapping, Optional, TextIO

from pydantic import ValidationError

from kubectl_login.exceptions import ExecCredentialError
from kubectl_login.models import ExecCredential, ExecCredentialStatus, TokenRecord

EXEC_INFO_ENV = "KUBERNETES_EXEC_INFO"


def parse_request(text: str) -> ExecCredential:
    """Decode an exec-credential request. Blank input yields a default request.

    Raises:
        ExecCredentialError: If *text* is not a JSON ``ExecCredential`` object.
    """
    if not text.strip():
        return ExecCredential()
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExecCredentialError(f"Failed to decode exec credential request: {exc}") from exc
    if not isinstance(data, dict):
        raise ExecCredentialError("Exec credential request is not a JSON object")

    try:
        request = ExecCredential.model_validate(data)
    except ValidationError as exc:
        raise ExecCredentialError(f"Invalid exec credential request: {exc}") from exc
    if request.kind != "ExecCredential":
        raise ExecCredentialError(
            f"Unexpected kind {request.kind!r} in exec credential request"
        )
    return request


def read_request(
    stdin: Optional[TextIO] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ExecCredential:
    """Read the request from ``KUBERNETES_EXEC_INFO`` or, failing that, stdin.

    stdin is only consumed when it is not a terminal.
    """
    environ = os.environ if environ is None else environ
    exec_info = environ.get(EXEC_INFO_ENV)
    if exec_info:
        return parse_request(exec_info)

    stdin = sys.stdin if stdin is None else stdin
    if stdin is not None and not stdin.isatty():
        return parse_request(stdin.read())
    return ExecCredential()


def build_response(request: ExecCredential, record: TokenRecord) -> ExecCredential:
    """Wrap *record* in a response matching the request's ``apiVersion``."""
    return ExecCredential(
        api_version=request.api_version,
        status=ExecCredentialStatus(
            token=record.access_token,
            expiration_timestamp=record.expiry,
        ),
    )


def render(credential: ExecCredential) -> str:
    """Serialise a response for stdout."""
    data = credential.model_dump(
        mode="json",
        by_alias=True,
        include={"api_version", "kind", "status"},
        exclude_none=True,
    )
    return json.dumps(data)
