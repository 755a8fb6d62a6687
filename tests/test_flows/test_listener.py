"""Tests for the redirect listener, using real sockets on 127.0.0.1."""

from __future__ import annotations

import socket
from typing import Iterator

import httpx
import pytest

from kubectl_login.exceptions import (
    AuthTimeoutError,
    ListenerBindError,
    MissingCodeError,
    ProviderError,
    StateMismatchError,
)
from kubectl_login.flows.browser.listener import RedirectListener

STATE = "s" * 32


def _get(listener: RedirectListener, path: str) -> httpx.Response:
    return httpx.get(f"http://127.0.0.1:{listener.port}{path}", timeout=5.0, trust_env=False)


@pytest.fixture()
def listener() -> Iterator[RedirectListener]:
    listener = RedirectListener(0, STATE)
    listener.start()
    yield listener
    listener.close()


class TestRedirectListener:
    def test_valid_callback_returns_code(self, listener: RedirectListener) -> None:
        response = _get(listener, f"/callback?code=abc123&state={STATE}")

        assert response.status_code == 200
        assert "Login successful" in response.text
        assert listener.wait(timeout=5) == "abc123"

    def test_state_mismatch(self, listener: RedirectListener) -> None:
        response = _get(listener, "/callback?code=abc123&state=forged")

        assert response.status_code == 400
        with pytest.raises(StateMismatchError):
            listener.wait(timeout=5)

    def test_missing_state(self, listener: RedirectListener) -> None:
        assert _get(listener, "/callback?code=abc123").status_code == 400
        with pytest.raises(StateMismatchError):
            listener.wait(timeout=5)

    def test_provider_error(self, listener: RedirectListener) -> None:
        response = _get(
            listener,
            "/callback?error=access_denied&error_description=User+said+no",
        )

        assert response.status_code == 400
        assert "access_denied" in response.text
        with pytest.raises(ProviderError) as exc_info:
            listener.wait(timeout=5)
        assert exc_info.value.error == "access_denied"
        assert str(exc_info.value) == "OAuth error: access_denied - User said no"

    def test_error_wins_over_code(self, listener: RedirectListener) -> None:
        _get(listener, f"/callback?error=server_error&code=abc&state={STATE}")
        with pytest.raises(ProviderError):
            listener.wait(timeout=5)

    def test_missing_code(self, listener: RedirectListener) -> None:
        assert _get(listener, f"/callback?state={STATE}").status_code == 400
        with pytest.raises(MissingCodeError):
            listener.wait(timeout=5)

    def test_completed_without_code_or_error(self, listener: RedirectListener) -> None:
        listener._done.set()
        with pytest.raises(MissingCodeError):
            listener.wait(timeout=5)

    def test_other_paths_are_ignored(self, listener: RedirectListener) -> None:
        assert _get(listener, "/favicon.ico").status_code == 404
        assert _get(listener, f"/callback?code=late&state={STATE}").status_code == 200
        assert listener.wait(timeout=5) == "late"

    def test_timeout_releases_port(self) -> None:
        listener = RedirectListener(0, STATE)
        listener.start()
        port = listener.port

        with pytest.raises(AuthTimeoutError):
            listener.wait(timeout=0.2)

        again = RedirectListener(port, STATE)
        again.start()
        again.close()

    def test_port_already_in_use(self) -> None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen(1)
            port = sock.getsockname()[1]
            with pytest.raises(ListenerBindError, match=str(port)):
                RedirectListener(port, STATE).start()

    def test_listener_gone_after_wait(self, listener: RedirectListener) -> None:
        port = listener.port
        _get(listener, f"/callback?code=abc&state={STATE}")
        listener.wait(timeout=5)

        with pytest.raises(httpx.ConnectError):
            httpx.get(f"http://127.0.0.1:{port}/callback", timeout=2.0, trust_env=False)

    def test_close_is_idempotent(self, listener: RedirectListener) -> None:
        listener.close()
        listener.close()

    def test_context_manager_closes(self) -> None:
        with RedirectListener(0, STATE) as listener:
            port = listener.port
            assert port != 0
        with pytest.raises(httpx.ConnectError):
            httpx.get(f"http://127.0.0.1:{port}/callback", timeout=2.0, trust_env=False)
