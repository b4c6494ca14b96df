"""
Safety fences for es-fuse.

Mountpoint validation, mountpoint creation, orphaned mount detection and
clean unmount via fusermount.
"""

import errno
import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

log = logging.getLogger(__name__)

FSNAME = "es-fuse"

# System paths that must never be used as mountpoints
BLOCKED_PATHS = frozenset({
    "/", "/home", "/etc", "/usr", "/var", "/tmp", "/boot",
    "/bin", "/sbin", "/lib", "/lib64", "/dev", "/proc", "/sys",
    "/root", "/opt", "/srv", "/run", "/mnt",
})


# --- Mountpoint validation ---

def validate_mountpoint(path: str) -> Optional[str]:
    """Validate a mountpoint path. Returns error message or None if OK."""
    resolved = os.path.realpath(path)

    # Block system paths
    if resolved in BLOCKED_PATHS:
        return (
            f"Refusing to mount at {resolved}: this is a system directory.\n"
            f"\n"
            f"Use a dedicated empty directory instead:\n"
            f"  es-fuse mount ~/elasticsearch"
        )

    for m in find_mounted_fuse():
        if os.path.realpath(m["mountpoint"]) != resolved:
            continue
        if is_mount_orphaned(resolved):
            return (
                f"{resolved} has a stale es-fuse mount (the process serving it is gone).\n"
                f"Clean it up first: es-fuse unmount {resolved}"
            )
        return (
            f"{resolved} already has an es-fuse mount active.\n"
            f"Unmount first: es-fuse unmount {resolved}"
        )

    # Check for non-empty existing directory
    if os.path.isdir(resolved):
        try:
            contents = os.listdir(resolved)
        except PermissionError:
            return f"Cannot read {resolved}: permission denied."

        if contents:
            count = len(contents)
            return (
                f"{resolved} is not empty (contains {count} item{'s' if count != 1 else ''}).\n"
                f"\n"
                f"FUSE mounts shadow existing directory contents: your files would be\n"
                f"hidden (not deleted) until unmount.\n"
                f"\n"
                f"Use an empty or new directory instead."
            )

    return None


def ensure_mountpoint(path: str) -> Optional[str]:
    """Create mountpoint directory if needed. Returns error message or None."""
    if os.path.isdir(path):
        return None

    try:
        os.makedirs(path, exist_ok=True)
        return None
    except PermissionError:
        return (
            f"Cannot create {path}: permission denied.\n"
            f"\n"
            f"Try:\n"
            f"  sudo mkdir -p {path}\n"
            f"  sudo chown $USER {path}"
        )
    except OSError as e:
        return f"Cannot create {path}: {e}"


# --- Mount detection ---

def find_mounted_fuse() -> list[dict]:
    """Find all es-fuse entries in /proc/mounts.

    Returns list of {"mountpoint": str, "fstype": str}.
    """
    mounts = []
    try:
        for line in Path("/proc/mounts").read_text().splitlines():
            parts = line.split()
            if len(parts) >= 3 and parts[0] == FSNAME:
                mounts.append({
                    "mountpoint": parts[1],
                    "fstype": parts[2],
                })
    except OSError:
        pass
    return mounts


def is_mount_orphaned(mountpoint: str) -> bool:
    """True when the mount is still listed but its FUSE process has exited.

    The kernel answers any access to such a mount with ENOTCONN.
    """
    try:
        os.statvfs(mountpoint)
    except OSError as e:
        return e.errno == errno.ENOTCONN
    return False


def fusermount_unmount(mountpoint: str) -> tuple[bool, str]:
    """Run fusermount -u to clean-unmount a FUSE mount. Returns (success, message)."""
    try:
        result = subprocess.run(
            ["fusermount", "-u", mountpoint],
            capture_output=True, text=True, timeout=10,
        )
        if result.returncode == 0:
            return True, f"Unmounted {mountpoint}"
        return False, f"fusermount failed: {result.stderr.strip()}"
    except FileNotFoundError:
        # Try fusermount3 as fallback
        try:
            result = subprocess.run(
                ["fusermount3", "-u", mountpoint],
                capture_output=True, text=True, timeout=10,
            )
            if result.returncode == 0:
                return True, f"Unmounted {mountpoint}"
            return False, f"fusermount3 failed: {result.stderr.strip()}"
        except FileNotFoundError:
            return False, "Neither fusermount nor fusermount3 found"
    except subprocess.TimeoutExpired:
        return False, f"fusermount timed out on {mountpoint}"
