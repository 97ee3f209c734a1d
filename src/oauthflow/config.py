"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for oauthflow:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oauthflow/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_data_dir`, :func:`get_profiles_dir`.
* **Global config** -- A single :class:`~oauthflow.models.GlobalConfig`
  JSON file storing defaults (flow timeout, browser command, output format).
* **Profiles** -- One JSON file per authorization server / client pair, each
  deserialised into a :class:`~oauthflow.models.Profile`. Managed via
  :func:`load_profile`, :func:`save_profile`, :func:`delete_profile`.
* **Precedence resolution** -- :func:`resolve_profile_name` picks the active
  profile from the CLI flag, environment, project-local config, and global
  config.
* **Credential resolution** -- :func:`resolve_credential` reads client
  secrets from env vars, files, interactive prompts, or literal values, and
  :func:`build_options` turns a profile into ready-to-run
  :class:`~oauthflow.models.FlowOptions`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from oauthflow.exceptions import ConfigError
from oauthflow.models import FlowOptions, GlobalConfig, Profile

_APP_NAME = "oauthflow"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "oauthflow.json"
_PROFILE_ENV_VAR = "OAUTHFLOW_PROFILE"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/oauthflow/`` (default ``~/.config/oauthflow/``).
    On macOS/Windows: ``~/.oauthflow/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oauthflow/`` (default ``~/.local/share/oauthflow/``).
    On macOS/Windows: ``~/.oauthflow/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_profiles_dir() -> Path:
    """Return the profiles directory (``<config_dir>/profiles/``), creating it if necessary."""
    path = get_config_dir() / "profiles"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

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
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
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


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~oauthflow.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Profiles ---


def _profile_path(name: str) -> Path:
    """Path to a named profile's JSON file."""
    return get_profiles_dir() / f"{name}.json"


def list_profiles() -> list[str]:
    """Return all profile names found in the profiles directory, sorted alphabetically."""
    profiles_dir = get_profiles_dir()
    return sorted(
        p.stem for p in profiles_dir.glob("*.json") if p.is_file()
    )


def load_profile(name: str) -> Profile:
    """Load and validate a profile from disk.

    Args:
        name: Profile name (corresponds to ``<name>.json`` in the profiles
            directory).

    Returns:
        The deserialised :class:`~oauthflow.models.Profile`.

    Raises:
        ConfigError: If the profile file does not exist, contains invalid
            JSON, or fails Pydantic validation.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return Profile.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid profile '{name}' at {path}: {exc}") from exc


def save_profile(profile: Profile) -> None:
    """Persist a profile atomically to the profiles directory.

    Args:
        profile: The profile to save. The file name is derived from
            ``profile.name``.
    """
    data = profile.model_dump(mode="json")
    _atomic_write(_profile_path(profile.name), json.dumps(data, indent=2) + "\n")


def delete_profile(name: str) -> None:
    """Delete a profile's JSON file from disk.

    Raises:
        ConfigError: If the profile does not exist.
    """
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    path.unlink()


def profile_exists(name: str) -> bool:
    """Check whether a profile file exists on disk."""
    return _profile_path(name).is_file()


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./oauthflow.json``.

    Project-local config sits between global config and environment variables
    in the precedence chain. It typically sets ``default_profile`` so that
    a repository can pin which identity provider to log in against.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or is not
            a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_profile_name(
    cli_profile: Optional[str] = None,
    global_cfg: Optional[GlobalConfig] = None,
) -> Optional[str]:
    """Resolve the active profile name with the full precedence chain.

    Precedence (high to low):
        1. CLI flag (``cli_profile``)
        2. Environment variable (``OAUTHFLOW_PROFILE``)
        3. Project config (``./oauthflow.json``)
        4. User config (``default_profile`` in ``config.json``)

    When none of these names a profile and exactly one profile exists on
    disk, that profile is used.

    Returns:
        The profile name, or ``None`` if nothing selects one.
    """
    if cli_profile:
        return cli_profile

    env_profile = os.environ.get(_PROFILE_ENV_VAR)
    if env_profile:
        return env_profile

    project = load_project_config()
    if project is not None and project.get("default_profile"):
        return str(project["default_profile"])

    if global_cfg is None:
        global_cfg = load_global_config()
    if global_cfg.default_profile:
        return global_cfg.default_profile

    profiles = list_profiles()
    if len(profiles) == 1:
        return profiles[0]
    return None


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)
        - ``"value:literal"`` -- the literal text after the prefix (client ids
          of public clients are not secret)

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        file_path = source[5:]
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter credential: ")

    if source.startswith("value:"):
        return source[6:]

    raise ConfigError(f"Unknown credential source format: {source}")


def build_options(profile: Profile) -> FlowOptions:
    """Resolve a profile's credential sources into :class:`~oauthflow.models.FlowOptions`.

    Args:
        profile: The stored profile.

    Returns:
        Options ready to hand to :func:`~oauthflow.flow.run_flows`.

    Raises:
        ConfigError: If a credential source cannot be resolved.
    """
    client_secret = ""
    if profile.client_secret_source:
        client_secret = resolve_credential(profile.client_secret_source)

    return FlowOptions(
        authorization_endpoint=profile.authorization_endpoint,
        token_endpoint=profile.token_endpoint,
        revoke_endpoint=profile.revoke_endpoint,
        client_id=resolve_credential(profile.client_id_source),
        client_secret=client_secret,
        scopes=list(profile.scopes),
        redirect_uri=profile.redirect_uri,
        port_range=profile.port_range.model_copy(),
        authorization_params=dict(profile.authorization_params),
        timeout=profile.timeout,
    )
