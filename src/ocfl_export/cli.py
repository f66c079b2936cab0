"""
📄 cli.py

Purpose:
    Command line entry point for exporting and inspecting Moab objects.

Key Features:
    - export: write an OCFL inventory.json (plus sidecar) for an object.
    - manifest / state: print manifest or state blocks as JSON.
    - deltas: show what changed in each version.
    - verify: recompute digests on disk and report anomalies.

Usage:
    ocfl-export export druid:bb123cd4567 --output /tmp/out
    ocfl-export deltas /services-disk01/sdr2objects/bb/123/cd/4567/bb123cd4567
    ocfl-export verify bb123cd4567 --storage-root /services-disk01 --digest md5
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from . import __version__, config
from .delta import build_history, compute_delta, initial_delta
from .errors import OcflExportError
from .export import InventoryExport
from .log_utils import setup_logging
from .manifest import build_manifest, build_state
from .models import Delta
from .rehash import build_manifest_from_disk, verify_manifest
from .store import MoabStore

logger = logging.getLogger(__name__)

console = Console()


# ------------------------------
# Helpers
# ------------------------------
def open_store(args) -> tuple[MoabStore, str]:
    """A druid is looked up in the storage roots; a directory is opened as-is."""
    candidate = Path(args.object)
    if candidate.is_dir():
        return MoabStore.from_object_root(candidate)
    roots = args.storage_root if args.storage_root else config.STORAGE_ROOTS
    return MoabStore(storage_roots=roots, trunk=args.trunk), args.object


def print_json(data) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def render_delta(tree: Tree, delta: Delta, digest: str) -> None:
    for change in delta:
        branch = tree.add(f"[bold]{change}[/bold]")
        for record in delta[change]:
            if len(record.checksums) > 1:
                # Last checksum is the most recent
                branch.add(
                    f"{record.path} new {digest}: {record.checksums[1]} "
                    f"previous {digest}: {record.checksums[0]}"
                )
            else:
                branch.add(f"{record.path} new {digest}: {record.checksums[0]}")


# ------------------------------
# Handlers
# ------------------------------
def handle_export(args) -> int:
    store, object_id = open_store(args)
    exporter = InventoryExport(store, object_id, digest=args.digest, fixity_digest=args.fixity_digest)
    console.print(f"📦 Building inventory for {object_id}...")
    path = exporter.write_inventory(Path(args.output) if args.output else None)
    console.print(f"✅ Inventory written: {path}")
    return 0


def handle_manifest(args) -> int:
    store, object_id = open_store(args)
    if args.from_disk:
        manifest = build_manifest_from_disk(store, object_id, algorithm=args.digest, progress=args.progress)
    else:
        manifest = build_manifest(
            store, object_id, args.version, algorithm=args.digest, max_workers=args.workers
        )
    print_json(manifest)
    return 0


def handle_state(args) -> int:
    store, object_id = open_store(args)
    print_json(build_state(store, object_id, args.version, algorithm=args.digest))
    return 0


def handle_deltas(args) -> int:
    store, object_id = open_store(args)
    if args.version is None:
        history = build_history(store, object_id, algorithm=args.digest, max_workers=args.workers)
    elif args.version == 1:
        history = {1: initial_delta(store, object_id, algorithm=args.digest)}
    else:
        history = {args.version: compute_delta(store, object_id, args.version, algorithm=args.digest)}

    if args.json:
        print_json({str(version): delta.to_dict() for version, delta in history.items()})
        return 0

    for version, delta in history.items():
        tree = Tree(f"[bold cyan]{object_id}[/bold cyan], {config.version_name(version)}")
        render_delta(tree, delta, args.digest)
        console.print(tree)
    return 0


def handle_verify(args) -> int:
    store, object_id = open_store(args)
    console.print(f"🔍 Verifying {object_id} ({args.digest})...")
    anomalies = verify_manifest(store, object_id, algorithm=args.digest, progress=args.progress)
    if not anomalies:
        console.print("✅ All stored digests match the files on disk")
        return 0

    table = Table(show_header=True, header_style="bold red")
    table.add_column("Path")
    table.add_column("Problem")
    table.add_column("Recorded")
    table.add_column("On disk")
    for anomaly in anomalies:
        table.add_row(anomaly.path, anomaly.kind, anomaly.expected or "-", anomaly.actual or "-")
    console.print(table)
    console.print(f"⚠️ {len(anomalies)} integrity anomalies found")
    return 2


# ------------------------------
# Parser
# ------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ocfl-export",
        description="Export Moab objects as OCFL inventories and inspect their versions.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--storage-root",
        action="append",
        default=[],
        help="Storage root holding druid trees (repeatable)",
    )
    parser.add_argument("--trunk", default=config.STORAGE_TRUNK, help="Directory below each storage root")
    parser.add_argument("--log-level", default="WARNING", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-dir", default=config.LOG_DIR, help="Also write logs to this directory")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("object", help="Druid (e.g. druid:bb123cd4567) or path to an object root")
    common.add_argument(
        "--digest",
        choices=config.SUPPORTED_DIGESTS,
        default=config.DEFAULT_DIGEST,
        help="Checksum algorithm",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("export", parents=[common], help="Write inventory.json for an object")
    p.add_argument("--output", help="Directory to write to (default: the object root)")
    p.add_argument(
        "--fixity-digest",
        choices=config.SUPPORTED_DIGESTS,
        default=config.FIXITY_DIGEST,
        help="Algorithm of the fixity block",
    )
    p.set_defaults(func=handle_export)

    p = sub.add_parser("manifest", parents=[common], help="Print the manifest block")
    p.add_argument("--version", dest="version", type=int, help="Last version to include")
    p.add_argument("--from-disk", action="store_true", help="Hash files of every version on disk instead")
    p.add_argument("--progress", action="store_true", help="Show a progress bar while hashing")
    p.add_argument("--workers", type=int, default=1, help="Read versions in parallel")
    p.set_defaults(func=handle_manifest)

    p = sub.add_parser("state", parents=[common], help="Print the state block of a version")
    p.add_argument("version", type=int)
    p.set_defaults(func=handle_state)

    p = sub.add_parser("deltas", parents=[common], help="Show changes made in each version")
    p.add_argument("--version", dest="version", type=int, help="Only this version")
    p.add_argument("--json", action="store_true", help="Print JSON instead of a tree")
    p.add_argument("--workers", type=int, default=1, help="Compare versions in parallel")
    p.set_defaults(func=handle_deltas)

    p = sub.add_parser("verify", parents=[common], help="Compare stored digests with files on disk")
    p.add_argument("--progress", action="store_true", help="Show a progress bar while hashing")
    p.set_defaults(func=handle_verify)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if getattr(args, "from_disk", False) and args.version is not None:
        parser.error("--version cannot be combined with --from-disk, which hashes every version")
    setup_logging(args.log_level, Path(args.log_dir) if args.log_dir else None)

    try:
        return args.func(args)
    except OcflExportError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        return 1
    except KeyboardInterrupt:
        print("\n🛑 Operation cancelled by user.")
        return 1
