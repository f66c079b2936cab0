"""
📄 manifest.py

Purpose:
    Builds the checksum-keyed blocks of an OCFL inventory from a versioned store.

Key Features:
    - build_manifest(): every distinct content across versions 1..N, with
      version-prefixed paths ("v0002/data/content/a.txt").
    - build_state(): the live tree of one version, unprefixed paths.
    - build_fixity(): a manifest under a secondary algorithm, keyed by its name.
    - merge_manifests(): single-threaded reducer over partial manifests.

Every builder takes the digest algorithm as an argument; nothing here keeps
algorithm state between calls.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from . import config
from .digests import check_algorithm
from .inventory import check_version, version_additions, version_inventory
from .models import Inventory, Manifest, State
from .store import VersionStore


def add_entry(accumulator: dict[str, set[str]], checksum: str, path: str) -> None:
    accumulator.setdefault(checksum, set()).add(path)


def freeze(accumulator: dict[str, set[str]]) -> Manifest:
    """Sorted keys, sorted and deduplicated paths."""
    return {checksum: sorted(accumulator[checksum]) for checksum in sorted(accumulator)}


def invert(files: Inventory, prefix: str = "") -> Manifest:
    """Flip path -> [checksum] into checksum -> [paths]."""
    accumulator: dict[str, set[str]] = {}
    for path, checksums in files.items():
        # Only merged inventories carry more than one checksum per path
        add_entry(accumulator, checksums[0], f"{prefix}{path}")
    return freeze(accumulator)


def merge_manifests(partials: Iterable[Manifest]) -> Manifest:
    accumulator: dict[str, set[str]] = {}
    for partial in partials:
        for checksum, paths in partial.items():
            for path in paths:
                add_entry(accumulator, checksum, path)
    return freeze(accumulator)


def content_prefix(version: int) -> str:
    return f"{config.version_name(version)}/{config.DATA_DIRECTORY}/"


def version_manifest(store: VersionStore, object_id: str, version: int, algorithm: str) -> Manifest:
    """Manifest entries contributed by one version's additions."""
    additions = version_additions(store, object_id, version, algorithm)
    return invert(additions, prefix=content_prefix(version))


def build_manifest(
    store: VersionStore,
    object_id: str,
    upto_version: int | None = None,
    algorithm: str = config.DEFAULT_DIGEST,
    max_workers: int = 1,
) -> Manifest:
    """
    Manifest of versions 1..upto_version (default: the current version).

    Used for back-filling older versions with valid inventories, and for
    building manifests from the store's own records rather than by re-hashing
    files on disk.
    """
    check_algorithm(algorithm)
    current = store.current_version(object_id)
    upto = current if upto_version is None else upto_version
    check_version(store, object_id, upto)

    versions = range(1, upto + 1)
    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            partials = list(
                executor.map(lambda v: version_manifest(store, object_id, v, algorithm), versions)
            )
    else:
        partials = [version_manifest(store, object_id, v, algorithm) for v in versions]
    return merge_manifests(partials)


def build_state(
    store: VersionStore,
    object_id: str,
    version: int,
    algorithm: str = config.DEFAULT_DIGEST,
) -> State:
    """Checksum -> paths of every file present at version."""
    return invert(version_inventory(store, object_id, version, algorithm))


def build_fixity(
    store: VersionStore,
    object_id: str,
    version: int | None = None,
    algorithm: str = config.FIXITY_DIGEST,
) -> dict[str, Manifest]:
    return {algorithm: build_manifest(store, object_id, version, algorithm=algorithm)}
