"""Tests for the token store."""

from __future__ import annotations

import json
import os
import stat
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from kubectl_login.auth.token_store import (
    TokenStore,
    cache_key,
    default_cache_path,
    parse_cache_key,
)
from kubectl_login.models import TokenRecord

ISSUER = "https://issuer.example"


def _record(token: str = "access-1", minutes: int = 60, refresh: str | None = "refresh-1") -> TokenRecord:
    return TokenRecord(
        access_token=token,
        refresh_token=refresh,
        id_token="id-1",
        expiry=datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes),
    )


@pytest.fixture()
def cache_file(tmp_path: Path) -> Path:
    return tmp_path / "kubectl-login" / "tokens.json"


@pytest.fixture()
def store(cache_file: Path) -> TokenStore:
    return TokenStore(cache_file)


class TestCacheKey:
    def test_distinct_pairs_with_separator_characters(self) -> None:
        assert cache_key("https://a:b", "c") != cache_key("https://a", "b:c")

    def test_parse_inverts_key(self) -> None:
        key = cache_key(ISSUER, 'weird"client:id')
        assert parse_cache_key(key) == (ISSUER, 'weird"client:id')

    @pytest.mark.parametrize("bad", ["not json", '["only-one"]', '{"a": 1}', "[1, 2]"])
    def test_parse_rejects_foreign_keys(self, bad: str) -> None:
        with pytest.raises(ValueError):
            parse_cache_key(bad)


class TestTokenStore:
    def test_get_missing_returns_none(self, store: TokenStore) -> None:
        assert store.get(ISSUER, "client-a") is None

    def test_set_then_get(self, store: TokenStore) -> None:
        record = _record()
        store.set(ISSUER, "client-a", record)
        assert store.get(ISSUER, "client-a") == record

    def test_set_replaces_existing(self, store: TokenStore) -> None:
        store.set(ISSUER, "client-a", _record("old"))
        store.set(ISSUER, "client-a", _record("new"))
        assert store.get(ISSUER, "client-a").access_token == "new"
        assert len(store.all()) == 1

    def test_clear_then_get(self, store: TokenStore) -> None:
        store.set(ISSUER, "client-a", _record())
        assert store.clear(ISSUER, "client-a") is True
        assert store.get(ISSUER, "client-a") is None

    def test_clear_missing_returns_false(self, store: TokenStore) -> None:
        assert store.clear(ISSUER, "nobody") is False

    def test_clear_is_persisted(self, store: TokenStore, cache_file: Path) -> None:
        store.set(ISSUER, "client-a", _record())
        store.clear(ISSUER, "client-a")
        assert TokenStore(cache_file).get(ISSUER, "client-a") is None

    def test_two_clients_survive_reload(self, store: TokenStore, cache_file: Path) -> None:
        record_a = _record("token-a")
        record_b = _record("token-b", refresh=None)
        store.set(ISSUER, "client-a", record_a)
        store.set(ISSUER, "client-b", record_b)

        reloaded = TokenStore(cache_file)
        assert reloaded.get(ISSUER, "client-a") == record_a
        assert reloaded.get(ISSUER, "client-b") == record_b

    def test_load_rereads_file(self, store: TokenStore, cache_file: Path) -> None:
        other = TokenStore(cache_file)
        other.set(ISSUER, "client-a", _record())
        assert store.get(ISSUER, "client-a") is None
        store.load()
        assert store.get(ISSUER, "client-a") is not None

    def test_file_format(self, store: TokenStore, cache_file: Path) -> None:
        store.set(ISSUER, "client-a", _record())
        data = json.loads(cache_file.read_text())
        entry = data['["https://issuer.example","client-a"]']
        assert entry["access_token"] == "access-1"
        assert entry["refresh_token"] == "refresh-1"
        assert entry["expiry"].startswith("2030-01-01T13:00:00")

    def test_file_permissions(self, store: TokenStore, cache_file: Path) -> None:
        store.set(ISSUER, "client-a", _record())
        mode = stat.S_IMODE(os.stat(cache_file).st_mode)
        assert mode == 0o600

    def test_no_temp_files_left_behind(self, store: TokenStore, cache_file: Path) -> None:
        store.set(ISSUER, "client-a", _record())
        store.set(ISSUER, "client-b", _record())
        assert [p.name for p in cache_file.parent.iterdir()] == ["tokens.json"]


    def test_clear_key_removes_unparseable_entry(self, cache_file: Path) -> None:
        legacy = f"{ISSUER}:client-a"
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(json.dumps({legacy: _record().model_dump(mode="json")}))
        store = TokenStore(cache_file)

        assert list(store.all()) == [legacy]
        assert store.clear_key(legacy) is True
        assert store.clear_key(legacy) is False
        assert TokenStore(cache_file).all() == {}


class TestCorruptCache:
    def test_not_json_gives_empty_store(self, cache_file: Path) -> None:
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("not json")
        store = TokenStore(cache_file)
        assert store.all() == {}

    def test_non_object_gives_empty_store(self, cache_file: Path) -> None:
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("[1, 2, 3]")
        assert TokenStore(cache_file).all() == {}

    def test_invalid_entry_is_skipped(self, cache_file: Path) -> None:
        cache_file.parent.mkdir(parents=True)
        good = _record().model_dump(mode="json")
        cache_file.write_text(
            json.dumps(
                {
                    cache_key(ISSUER, "good"): good,
                    cache_key(ISSUER, "bad"): {"access_token": "x"},
                }
            )
        )
        store = TokenStore(cache_file)
        assert store.get(ISSUER, "good") is not None
        assert store.get(ISSUER, "bad") is None

    def test_empty_strings_read_as_missing_tokens(self, cache_file: Path) -> None:
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text(
            json.dumps(
                {
                    cache_key(ISSUER, "client-a"): {
                        "access_token": "a",
                        "refresh_token": "",
                        "id_token": "",
                        "expiry": "2030-01-01T00:00:00Z",
                    }
                }
            )
        )
        record = TokenStore(cache_file).get(ISSUER, "client-a")
        assert record.refresh_token is None
        assert record.id_token is None

    def test_unreadable_file_gives_empty_store(self, cache_file: Path) -> None:
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("{}")
        with patch.object(Path, "read_text", side_effect=PermissionError(13, "Permission denied")):
            store = TokenStore(cache_file)
        assert store.all() == {}

    def test_name_too_long_gives_empty_store(self, tmp_path: Path) -> None:
        store = TokenStore(tmp_path / ("x" * 300))
        assert store.all() == {}

    def test_directory_in_place_of_file_gives_empty_store(self, cache_file: Path) -> None:
        cache_file.mkdir(parents=True)
        assert TokenStore(cache_file).all() == {}

    def test_corrupt_file_is_overwritten_on_set(self, cache_file: Path) -> None:
        cache_file.parent.mkdir(parents=True)
        cache_file.write_text("{{{")
        store = TokenStore(cache_file)
        store.set(ISSUER, "client-a", _record())
        assert TokenStore(cache_file).get(ISSUER, "client-a") is not None


class TestWriteFailure:
    def test_write_error_is_not_raised(self, store: TokenStore) -> None:
        with patch(
            "kubectl_login.auth.token_store.atomic_write",
            side_effect=OSError("disk full"),
        ):
            store.set(ISSUER, "client-a", _record())
        assert store.get(ISSUER, "client-a") == _record()

    def test_write_error_is_logged(
        self, store: TokenStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        with patch(
            "kubectl_login.auth.token_store.atomic_write",
            side_effect=OSError("disk full"),
        ), caplog.at_level("WARNING", logger="kubectl_login.auth.token_store"):
            store.set(ISSUER, "client-a", _record())
        assert "disk full" in caplog.text


class TestDefaultPath:
    def test_default_path_under_xdg_cache(self, isolated_config: Path) -> None:
        expected = isolated_config / "cache" / "kubectl-login" / "tokens.json"
        assert default_cache_path() == expected
        assert TokenStore().path == expected


class TestConcurrency:
    def test_parallel_writers_and_readers(self, store: TokenStore, cache_file: Path) -> None:
        errors: list[BaseException] = []

        def writer(n: int) -> None:
            try:
                for i in range(5):
                    store.set(ISSUER, f"client-{n}", _record(f"token-{n}-{i}"))
            except BaseException as exc:  # pragma: no cover - reported below
                errors.append(exc)

        def reader() -> None:
            try:
                for _ in range(50):
                    store.get(ISSUER, "client-0")
                    store.all()
            except BaseException as exc:  # pragma: no cover - reported below
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []
        reloaded = TokenStore(cache_file)
        assert {parse_cache_key(k)[1] for k in reloaded.all()} == {
            "client-0",
            "client-1",
            "client-2",
            "client-3",
        }
        assert reloaded.get(ISSUER, "client-2").access_token == "token-2-4"
