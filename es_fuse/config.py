"""
Configuration management for es-fuse.

Single config file, owned by es-fuse:
  ~/.config/es-fuse/fuse.json : store defaults + per-mount settings

Value resolution (highest → lowest):
  1. CLI flags (--connect, --keep-pending)
  2. fuse.json mount section for the mountpoint
  3. Built-in defaults
"""

import fcntl
import json
import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)


# --- Data classes ---

@dataclass
class StoreConfig:
    """How connection names become store requests."""
    default_scheme: str = "http"
    default_port: int = 9200
    timeout: float = 30.0
    search_size: int = 1000  # Match-all listing page; the store defaults to 10

@dataclass
class MountConfig:
    """Configuration for a single FUSE mount point."""
    path: str
    # Opened at mount time, as if mkdir /<name> had been issued
    connections: list[str] = field(default_factory=list)
    # Forget the pending-create entry once a write persists the document.
    # False keeps it until unlink.
    clear_pending_on_write: bool = True

@dataclass
class FuseConfig:
    """Full es-fuse configuration (from fuse.json)."""
    store: StoreConfig = field(default_factory=StoreConfig)
    mounts: dict[str, MountConfig] = field(default_factory=dict)


# --- Path helpers ---

def get_config_dir() -> Path:
    """Get es-fuse config directory (~/.config/es-fuse/)."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(xdg_config) / "es-fuse"

def get_fuse_config_path() -> Path:
    """Get path to es-fuse's config file."""
    return get_config_dir() / "fuse.json"


# --- Read/write fuse.json ---

def read_fuse_config() -> Optional[dict]:
    """Read fuse.json. Returns None if not found."""
    path = get_fuse_config_path()
    if not path.exists():
        return None
    try:
        with open(path, "r") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            try:
                return json.load(f)
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)
    except (json.JSONDecodeError, OSError) as e:
        log.warning(f"Could not read fuse config at {path}: {e}")
        return None

def write_fuse_config(data: dict) -> None:
    """Atomic write to fuse.json with file locking.

    Writes to a temp file and renames it over the target while holding an
    exclusive lock. Enforces 600 permissions.
    """
    path = get_fuse_config_path()
    tmp_path = path.with_suffix(".tmp")

    path.parent.mkdir(parents=True, exist_ok=True)

    content = json.dumps(data, indent=2) + "\n"

    with open(tmp_path, "w") as f:
        fcntl.flock(f, fcntl.LOCK_EX)
        try:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
            os.rename(tmp_path, path)
            os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)  # 600
        finally:
            fcntl.flock(f, fcntl.LOCK_UN)


# --- High-level config loading ---

def _store_config_from_dict(data: dict) -> StoreConfig:
    defaults = StoreConfig()
    return StoreConfig(
        default_scheme=data.get("default_scheme", defaults.default_scheme),
        default_port=int(data.get("default_port", defaults.default_port)),
        timeout=float(data.get("timeout", defaults.timeout)),
        search_size=int(data.get("search_size", defaults.search_size)),
    )

def _mount_config_from_dict(mount_path: str, data: dict) -> MountConfig:
    return MountConfig(
        path=mount_path,
        connections=list(data.get("connections", [])),
        clear_pending_on_write=data.get("clear_pending_on_write", True),
    )

def _mount_config_to_dict(mc: MountConfig) -> dict:
    """Serialize a MountConfig to a JSON-safe dict."""
    return {
        "connections": list(mc.connections),
        "clear_pending_on_write": mc.clear_pending_on_write,
    }

def load_config() -> FuseConfig:
    """Load es-fuse config, falling back to defaults for anything missing."""
    config = FuseConfig()
    fuse_data = read_fuse_config()
    if not fuse_data:
        return config

    try:
        config.store = _store_config_from_dict(fuse_data.get("store", {}))
    except (TypeError, ValueError) as e:
        log.warning(f"Ignoring invalid store section in fuse config: {e}")

    for mount_path, mount_data in fuse_data.get("mounts", {}).items():
        config.mounts[mount_path] = _mount_config_from_dict(mount_path, mount_data)

    return config

def resolve_mount_config(
    config: FuseConfig,
    mountpoint: str,
    cli_connections: Optional[list[str]] = None,
    cli_keep_pending: bool = False,
) -> MountConfig:
    """Mount settings for a mountpoint with CLI flags layered on top."""
    base = config.mounts.get(mountpoint, MountConfig(path=mountpoint))
    connections = list(base.connections)
    for name in cli_connections or []:
        if name not in connections:
            connections.append(name)
    return MountConfig(
        path=mountpoint,
        connections=connections,
        clear_pending_on_write=base.clear_pending_on_write and not cli_keep_pending,
    )

def add_mount_to_config(mountpoint: str, mount_config: Optional[MountConfig] = None) -> None:
    """Add a mount to fuse.json. Creates the file if it doesn't exist."""
    fuse_data = read_fuse_config() or {}

    if "mounts" not in fuse_data:
        fuse_data["mounts"] = {}

    mc = mount_config or MountConfig(path=mountpoint)
    fuse_data["mounts"][mountpoint] = _mount_config_to_dict(mc)
    write_fuse_config(fuse_data)

def remove_mount_from_config(mountpoint: str) -> bool:
    """Remove a mount from fuse.json. Returns True if found and removed."""
    fuse_data = read_fuse_config()
    if not fuse_data or mountpoint not in fuse_data.get("mounts", {}):
        return False

    del fuse_data["mounts"][mountpoint]
    write_fuse_config(fuse_data)
    return True
