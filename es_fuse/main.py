#!/usr/bin/env python3
"""
Elasticsearch FUSE Driver

Mounts Elasticsearch hosts as a filesystem: one directory per connection,
one subdirectory per index, one <id>.json file per document.

Usage:
    es-fuse mount ~/elasticsearch --connect localhost
    mkdir ~/elasticsearch/es1          # open a connection to es1:9200
    mkdir ~/elasticsearch/es1/logs     # create an index
    echo '{"msg": "hi"}' > ~/elasticsearch/es1/logs/doc1.json
    es-fuse unmount ~/elasticsearch

    es-fuse config add ~/elasticsearch --connect https+search.local:443
    es-fuse config remove ~/elasticsearch
"""

import argparse
import json
import logging
import os
import signal
import sys
from dataclasses import asdict
from typing import Optional

from .config import (
    FuseConfig, MountConfig,
    add_mount_to_config, get_fuse_config_path, load_config,
    remove_mount_from_config, resolve_mount_config,
)
from .safety import FSNAME, ensure_mountpoint, fusermount_unmount, validate_mountpoint

log = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="es-fuse",
        description="Mount Elasticsearch as a FUSE filesystem",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    mount = subparsers.add_parser("mount", help="Mount the filesystem (foreground)")
    mount.add_argument(
        "mountpoint",
        help="Directory to mount the filesystem (created if missing)",
    )
    mount.add_argument(
        "--connect",
        action="append",
        default=[],
        metavar="HOST",
        help="Open a connection at mount time (repeatable)",
    )
    mount.add_argument(
        "--keep-pending",
        action="store_true",
        help="Keep created files reported as pending until unlink, even after a write",
    )
    mount.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    unmount = subparsers.add_parser("unmount", help="Unmount the filesystem")
    unmount.add_argument("mountpoint", help="Mounted directory")

    config_parser = subparsers.add_parser("config", help="Show or edit the configuration")
    config_sub = config_parser.add_subparsers(dest="config_command")

    add = config_sub.add_parser("add", help="Save connections for a mountpoint")
    add.add_argument("mountpoint", help="Mountpoint the settings apply to")
    add.add_argument(
        "--connect",
        action="append",
        default=[],
        metavar="HOST",
        help="Connection to open whenever this mountpoint is mounted (repeatable)",
    )
    add.add_argument(
        "--keep-pending",
        action="store_true",
        help="Keep created files reported as pending until unlink",
    )

    remove = config_sub.add_parser("remove", help="Forget a mountpoint's saved settings")
    remove.add_argument("mountpoint", help="Mountpoint to forget")

    return parser.parse_args(argv)


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_mount(mountpoint: str, config: FuseConfig, mount_cfg: MountConfig, debug: bool = False) -> None:
    """Blocking function that runs the FUSE mount until unmount or interrupt."""
    # Late import to avoid pulling in pyfuse3 for non-mount commands
    import pyfuse3
    import trio

    from .dispatcher import OperationDispatcher
    from .filesystem import ElasticFS
    from .registry import ConnectionRegistry

    dispatcher = OperationDispatcher(
        registry=ConnectionRegistry(store_config=config.store),
        clear_pending_on_write=mount_cfg.clear_pending_on_write,
    )
    fs = ElasticFS(dispatcher)

    fuse_options = set(pyfuse3.default_options)
    fuse_options.add(f"fsname={FSNAME}")
    if debug:
        fuse_options.add("debug")

    log.info(f"Mounting Elasticsearch at {mountpoint}")
    if mount_cfg.connections:
        log.info(f"Connections: {', '.join(mount_cfg.connections)}")

    # Raise KeyboardInterrupt on SIGTERM so the event loop can close
    # connections and unmount rather than dying mid-request
    def _handle_term(signum, frame):
        log.info(f"Received signal {signum}, requesting shutdown for {mountpoint}")
        raise KeyboardInterrupt

    signal.signal(signal.SIGTERM, _handle_term)

    pyfuse3.init(fs, mountpoint, fuse_options)

    async def _run():
        try:
            await fs.open_connections(mount_cfg.connections)
            await pyfuse3.main()
        finally:
            await fs.shutdown()

    try:
        trio.run(_run)
    except KeyboardInterrupt:
        log.info("Interrupted, unmounting...")
    finally:
        pyfuse3.close(unmount=True)
        log.info("Unmounted")


def cmd_mount(args: argparse.Namespace) -> int:
    """Validate the mountpoint and mount in the foreground."""
    mountpoint = os.path.realpath(args.mountpoint)

    err = validate_mountpoint(mountpoint)
    if err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    # Create the mountpoint if needed
    err = ensure_mountpoint(mountpoint)
    if err:
        print(f"Error: {err}", file=sys.stderr)
        return 1

    config = load_config()
    mount_cfg = resolve_mount_config(
        config, mountpoint,
        cli_connections=args.connect,
        cli_keep_pending=args.keep_pending,
    )
    run_mount(mountpoint, config, mount_cfg, debug=args.debug)
    return 0


def cmd_unmount(args: argparse.Namespace) -> int:
    """Unmount via fusermount."""
    mountpoint = os.path.realpath(args.mountpoint)
    ok, msg = fusermount_unmount(mountpoint)
    if not ok:
        print(f"Error: {msg}", file=sys.stderr)
        return 1
    print(msg)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Print the resolved configuration, or add/remove a mount entry."""
    action = getattr(args, "config_command", None)
    if action == "add":
        return _config_add(args)
    if action == "remove":
        return _config_remove(args)

    config = load_config()
    print(f"# {get_fuse_config_path()}")
    print(json.dumps(asdict(config), indent=2))
    return 0


def _config_add(args: argparse.Namespace) -> int:
    mountpoint = os.path.realpath(args.mountpoint)
    for name in args.connect:
        if "/" in name:
            print(f"Error: invalid connection name {name!r} (write a scheme as https+host:port)",
                  file=sys.stderr)
            return 1

    mount_cfg = resolve_mount_config(
        load_config(), mountpoint,
        cli_connections=args.connect,
        cli_keep_pending=args.keep_pending,
    )
    add_mount_to_config(mountpoint, mount_cfg)
    print(f"Saved {mountpoint} to {get_fuse_config_path()}")
    return 0


def _config_remove(args: argparse.Namespace) -> int:
    mountpoint = os.path.realpath(args.mountpoint)
    if not remove_mount_from_config(mountpoint):
        print(f"Error: {mountpoint} is not in {get_fuse_config_path()}", file=sys.stderr)
        return 1
    print(f"Removed {mountpoint} from {get_fuse_config_path()}")
    return 0


COMMANDS = {
    "mount": cmd_mount,
    "unmount": cmd_unmount,
    "config": cmd_config,
}


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    _setup_logging(getattr(args, "debug", False))
    sys.exit(COMMANDS[args.command](args))


if __name__ == "__main__":
    main()
