"""Per-user path management for egnytectl.

This module provides standardized paths for configuration, state, and cache
storage. On POSIX systems the XDG Base Directory Specification is followed;
on Windows the roaming and local application data folders are used.

Defaults:
- Config: ~/.config/egnytectl/        (%APPDATA%\\egnytectl on Windows)
- State:  ~/.local/state/egnytectl/   (%LOCALAPPDATA%\\egnytectl on Windows)
- Cache:  ~/.cache/egnytectl/         (%LOCALAPPDATA%\\egnytectl\\cache on Windows)
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "egnytectl"


def _is_windows() -> bool:
    return os.name == "nt"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def _get_windows_dir(env_var: str, fallback_subdir: str) -> Path:
    """Get a Windows application data directory.

    Args:
        env_var: Environment variable holding the base folder (APPDATA, LOCALAPPDATA).
        fallback_subdir: Subdirectory under home used when the variable is unset.

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / fallback_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/egnytectl/ (or XDG_CONFIG_HOME/egnytectl/).
    """
    if _is_windows():
        return _get_windows_dir("APPDATA", "AppData/Roaming")
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_state_dir() -> Path:
    """Get the state directory path.

    State data includes the run transcript and the installed-version marker
    of the drive client.

    Returns:
        Path to ~/.local/state/egnytectl/ (or XDG_STATE_HOME/egnytectl/).
    """
    if _is_windows():
        return _get_windows_dir("LOCALAPPDATA", "AppData/Local")
    return _get_xdg_dir("XDG_STATE_HOME", ".local/state")


def get_cache_dir() -> Path:
    """Get the cache directory path.

    Cache data includes downloaded mapping tables and installers.

    Returns:
        Path to ~/.cache/egnytectl/ (or XDG_CACHE_HOME/egnytectl/).
    """
    if _is_windows():
        return get_state_dir() / "cache"
    return _get_xdg_dir("XDG_CACHE_HOME", ".cache")


def get_config_path() -> Path:
    """Get the default configuration file path.

    Returns:
        Path to ~/.config/egnytectl/config.toml.
    """
    return get_config_dir() / "config.toml"


def get_log_dir() -> Path:
    """Get the transcript log directory.

    Returns:
        Path to ~/.local/state/egnytectl/logs/.
    """
    return get_state_dir() / "logs"


def get_client_marker_path() -> Path:
    """Get the installed-version marker path for the drive client.

    Returns:
        Path to ~/.local/state/egnytectl/client.toml.
    """
    return get_state_dir() / "client.toml"


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_cache_dir() -> Path:
    """Create the cache directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_cache_dir(), "cache")


def ensure_log_dir() -> Path:
    """Create the transcript log directory if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_log_dir(), "log")
