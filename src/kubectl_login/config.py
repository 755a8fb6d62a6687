"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles everything kubectl-login persists or reads besides tokens:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.kubectl-login/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Atomic writes** -- :func:`atomic_write` writes through a temp file in the
  destination directory and renames it into place, so readers never observe a
  partially written file.
* **Config file** -- :func:`load_config_file` / :func:`save_config_file` for
  the optional JSON file passed with ``--config``.
* **Precedence resolution** -- :func:`resolve_flow_config` merges CLI flags,
  the ``CLIENT_SECRET`` environment variable, and the config file into a single
  immutable :class:`~kubectl_login.models.FlowConfig`.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from kubectl_login.exceptions import ConfigError, InvalidUsageError
from kubectl_login.models import DEFAULT_CALLBACK_PORT, ConfigFile, FlowConfig

_APP_NAME = "kubectl-login"

CLIENT_SECRET_ENV = "CLIENT_SECRET"
"""Environment variable that overrides ``--client-secret``."""


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/kubectl-login/`` (default
    ``~/.config/kubectl-login/``). On macOS/Windows: ``~/.kubectl-login/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the token cache directory, creating it owner-only if necessary.

    On Linux/BSD: ``$XDG_CACHE_HOME/kubectl-login/`` (default
    ``~/.cache/kubectl-login/``). On macOS/Windows: ``~/.kubectl-login/cache/``.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(mode=0o700, parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/kubectl-login/`` (default
    ``~/.local/share/kubectl-login/``). On macOS/Windows: ``~/.kubectl-login/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: int = 0o600) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. Permissions are
    restricted before any content is written. On failure the temp file is
    removed and the previous version of *path* is left intact.

    Args:
        path: Destination file.
        data: Text content to write.
        mode: Permission bits of the resulting file.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def load_config_file(path: str | Path) -> ConfigFile:
    """Load and validate the JSON configuration file.

    Args:
        path: Path given with ``--config``. ``~`` is expanded.

    Returns:
        The parsed :class:`~kubectl_login.models.ConfigFile`.

    Raises:
        ConfigError: If the file is missing, unreadable, not JSON, or fails
            validation.
    """
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        return ConfigFile.model_validate(data)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
    except (json.JSONDecodeError, ValidationError) as exc:
        raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc


def save_config_file(config: ConfigFile, path: str | Path) -> None:
    """Persist a config file atomically with ``0o600`` permissions.

    Args:
        config: The configuration to write.
        path: Destination path. ``~`` is expanded.
    """
    data = config.model_dump(mode="json")
    atomic_write(Path(path).expanduser(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_flow_config(
    issuer_url: Optional[str] = None,
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
    headless: bool = False,
    port: int = DEFAULT_CALLBACK_PORT,
    config_path: Optional[str] = None,
) -> FlowConfig:
    """Merge flags, environment, and config file into a :class:`FlowConfig`.

    Precedence (low to high):
        1. CLI flags
        2. ``CLIENT_SECRET`` environment variable (client secret only)
        3. Non-empty values from the ``--config`` file

    Without a config file, ``issuer_url`` and ``client_id`` are required.

    Returns:
        The resolved, immutable flow configuration.

    Raises:
        InvalidUsageError: If required flags are missing.
        ConfigError: If the config file cannot be loaded, or the merged
            configuration is still incomplete or invalid.
    """
    if config_path is None:
        if not issuer_url:
            raise InvalidUsageError(
                "Missing option '--issuer-url' (or use --config)"
            )
        if not client_id:
            raise InvalidUsageError(
                "Missing option '--client-id' (or use --config)"
            )

    values: dict[str, object] = {
        "issuer_url": issuer_url or "",
        "client_id": client_id or "",
        "client_secret": client_secret,
        "headless": headless,
        "callback_port": port,
    }

    env_secret = os.environ.get(CLIENT_SECRET_ENV)
    if env_secret:
        values["client_secret"] = env_secret

    if config_path is not None:
        file_cfg = load_config_file(config_path)
        if file_cfg.issuer_url:
            values["issuer_url"] = file_cfg.issuer_url
        if file_cfg.client_id:
            values["client_id"] = file_cfg.client_id
        if file_cfg.client_secret:
            values["client_secret"] = file_cfg.client_secret
        if file_cfg.headless:
            values["headless"] = True
        if file_cfg.port:
            values["callback_port"] = file_cfg.port

    if not values["issuer_url"]:
        raise ConfigError("issuer_url is not set in flags or config file")
    if not values["client_id"]:
        raise ConfigError("client_id is not set in flags or config file")

    try:
        return FlowConfig.model_validate(values)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
