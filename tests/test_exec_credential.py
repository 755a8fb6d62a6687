"""Tests for the exec-credential envelope."""

from __future__ import annotations

import io
import json
from datetime import datetime, timezone

import pytest

from kubectl_login.exceptions import ExecCredentialError
from kubectl_login.exec_credential import (
    build_response,
    parse_request,
    read_request,
    render,
)
from kubectl_login.models import ExecCredential, TokenRecord

V1 = "client.authentication.k8s.io/v1"
V1BETA1 = "client.authentication.k8s.io/v1beta1"


class _TTY(io.StringIO):
    def isatty(self) -> bool:
        return True


def _request(api_version: str = V1) -> str:
    return json.dumps(
        {"apiVersion": api_version, "kind": "ExecCredential", "spec": {"interactive": False}}
    )


class TestParseRequest:
    def test_valid(self) -> None:
        assert parse_request(_request()).api_version == V1

    @pytest.mark.parametrize("text", ["", "   \n"])
    def test_blank_is_default(self, text: str) -> None:
        assert parse_request(text).api_version == V1BETA1

    def test_not_json(self) -> None:
        with pytest.raises(ExecCredentialError, match="decode"):
            parse_request("{nope")

    def test_not_an_object(self) -> None:
        with pytest.raises(ExecCredentialError, match="not a JSON object"):
            parse_request("[1]")

    def test_wrong_kind(self) -> None:
        with pytest.raises(ExecCredentialError, match="Unexpected kind"):
            parse_request(json.dumps({"apiVersion": V1, "kind": "Pod"}))


class TestReadRequest:
    def test_environment_wins(self) -> None:
        stdin = io.StringIO(_request(V1BETA1))
        request = read_request(stdin=stdin, environ={"KUBERNETES_EXEC_INFO": _request(V1)})
        assert request.api_version == V1
        assert stdin.tell() == 0

    def test_piped_stdin(self) -> None:
        request = read_request(stdin=io.StringIO(_request(V1)), environ={})
        assert request.api_version == V1

    def test_terminal_stdin_not_read(self) -> None:
        request = read_request(stdin=_TTY("should not be read"), environ={})
        assert request.api_version == V1BETA1

    def test_empty_pipe(self) -> None:
        assert read_request(stdin=io.StringIO(""), environ={}).api_version == V1BETA1


class TestResponse:
    def test_echoes_api_version(self) -> None:
        record = TokenRecord(
            access_token="tok",
            refresh_token="never-shown",
            expiry=datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc),
        )
        request = ExecCredential(api_version=V1, spec={"interactive": True})

        data = json.loads(render(build_response(request, record)))

        assert data == {
            "apiVersion": V1,
            "kind": "ExecCredential",
            "status": {"token": "tok", "expirationTimestamp": "2030-01-01T12:00:00Z"},
        }
