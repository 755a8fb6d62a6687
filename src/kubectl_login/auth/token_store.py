"""Persistent token cache keyed by ``(issuer, client)``.

Tokens are kept in a single JSON document, by default
``$XDG_CACHE_HOME/kubectl-login/tokens.json``, mapping a cache key to a
serialised :class:`~kubectl_login.models.TokenRecord`::

    {
      "[\\"https://sso.example.com\\",\\"kubectl\\"]": {
        "access_token": "...",
        "refresh_token": "...",
        "id_token": "...",
        "expiry": "2026-01-01T12:00:00Z"
      }
    }

Writes go through :func:`~kubectl_login.config.atomic_write` (temp file,
``0o600``, fsync, rename), so another process reading the file sees either the
old or the new document. Within a process a reader/writer lock lets concurrent
:meth:`TokenStore.get` calls proceed in parallel while :meth:`TokenStore.set`
and :meth:`TokenStore.clear` are exclusive until the file has been replaced.

The cache is best effort. A missing, unreadable, or malformed file yields an
empty store, and a failed write leaves the in-memory record in place; both are
logged rather than raised.

See Also:
    :class:`~kubectl_login.auth.orchestrator.Authenticator` -- the only writer
    during normal operation.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from pydantic import ValidationError

from kubectl_login.config import atomic_write, get_cache_dir
from kubectl_login.exceptions import CacheDecodeError, CacheError, CacheIOError
from kubectl_login.models import TokenRecord

logger = logging.getLogger(__name__)

CACHE_FILE_NAME = "tokens.json"


def cache_key(issuer_url: str, client_id: str) -> str:
    """Return the cache key for an ``(issuer, client)`` pair.

    The key is the compact JSON encoding of the two-element array, which keeps
    distinct pairs distinct whatever characters they contain.
    """
    return json.dumps([issuer_url, client_id], separators=(",", ":"))


def parse_cache_key(key: str) -> tuple[str, str]:
    """Invert :func:`cache_key`.

    Raises:
        ValueError: If *key* was not produced by :func:`cache_key`.
    """
    try:
        value = json.loads(key)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Not a cache key: {key!r}") from exc
    if (
        not isinstance(value, list)
        or len(value) != 2
        or not all(isinstance(part, str) for part in value)
    ):
        raise ValueError(f"Not a cache key: {key!r}")
    return value[0], value[1]


def default_cache_path() -> Path:
    """Return the default location of the token cache file."""
    return get_cache_dir() / CACHE_FILE_NAME


class _ReadWriteLock:
    """Many readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class TokenStore:
    """Thread-safe, file-backed mapping of ``(issuer, client)`` to tokens.

    The file is read once at construction. :meth:`get` never touches the disk
    or the network; :meth:`set` and :meth:`clear` rewrite the whole file
    before returning.

    Args:
        path: Cache file location. Defaults to :func:`default_cache_path`.

    Example::

        store = TokenStore(tmp_path / "tokens.json")
        store.set("https://issuer.example", "kubectl", record)
        assert store.get("https://issuer.example", "kubectl") == record
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path is not None else default_cache_path()
        self._lock = _ReadWriteLock()
        self._records: dict[str, TokenRecord] = {}
        self.load()

    @property
    def path(self) -> Path:
        """The filesystem path of the cache file."""
        return self._path

    def get(self, issuer_url: str, client_id: str) -> Optional[TokenRecord]:
        """Return the cached record for the pair, or ``None``."""
        with self._lock.read():
            return self._records.get(cache_key(issuer_url, client_id))

    def set(self, issuer_url: str, client_id: str, record: TokenRecord) -> None:
        """Store *record* for the pair, replacing any previous one, and persist."""
        with self._lock.write():
            self._records[cache_key(issuer_url, client_id)] = record
            self._persist()

    def clear(self, issuer_url: str, client_id: str) -> bool:
        """Remove the record for the pair and persist.

        Returns:
            ``True`` if a record was removed.
        """
        return self.clear_key(cache_key(issuer_url, client_id))

    def clear_key(self, key: str) -> bool:
        """Remove the record stored under the raw cache *key* and persist.

        Also reaches entries whose key :func:`parse_cache_key` rejects.
        """
        with self._lock.write():
            removed = self._records.pop(key, None)
            if removed is not None:
                self._persist()
            return removed is not None

    def all(self) -> dict[str, TokenRecord]:
        """Return a snapshot of every cached record keyed by cache key."""
        with self._lock.read():
            return dict(self._records)

    def load(self) -> None:
        """(Re)read the cache file, replacing the in-memory contents."""
        with self._lock.write():
            try:
                self._records = self._read()
            except CacheError as exc:
                logger.debug("Starting with an empty token cache: %s", exc)
                self._records = {}

    # ------------------------------------------------------------------ #
    # File I/O (called with the write lock held)
    # ------------------------------------------------------------------ #

    def _read(self) -> dict[str, TokenRecord]:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise CacheIOError(f"Cannot read {self._path}: {exc}") from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise CacheDecodeError(f"Malformed token cache {self._path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise CacheDecodeError(f"Token cache {self._path} is not a JSON object")

        records: dict[str, TokenRecord] = {}
        for key, value in raw.items():
            try:
                records[key] = TokenRecord.model_validate(value)
            except ValidationError as exc:
                logger.debug("Skipping invalid cache entry %s: %s", key, exc)
        return records

    def _persist(self) -> None:
        try:
            self._write()
        except CacheIOError as exc:
            logger.warning("Token cache not saved: %s", exc)

    def _write(self) -> None:
        data = {
            key: record.model_dump(mode="json")
            for key, record in self._records.items()
        }
        try:
            atomic_write(self._path, json.dumps(data, indent=2, sort_keys=True) + "\n")
        except OSError as exc:
            raise CacheIOError(f"Cannot write {self._path}: {exc}") from exc
