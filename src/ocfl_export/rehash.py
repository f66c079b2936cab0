"""
📄 rehash.py

Purpose:
    Rebuilds a manifest from the bytes on disk instead of the store's records,
    and compares the two.

Key Features:
    - list_all_files(): every regular file under each version's data directory.
    - build_manifest_from_disk(): same shape as manifest.build_manifest().
    - verify_manifest(): stored vs recomputed digests as IntegrityAnomaly records.
"""

from __future__ import annotations

from pathlib import Path

from tqdm import tqdm

from . import config
from .digests import check_algorithm, hash_file
from .manifest import add_entry, build_manifest, freeze
from .models import IntegrityAnomaly, Manifest
from .store import VersionStore


def list_all_files(store: VersionStore, object_id: str) -> list[str]:
    """Files relative to the object root, e.g. 'v0001/data/content/a.txt'."""
    root = store.object_path(object_id)
    results = []
    for version in store.version_ids(object_id):
        data_dir = root / config.version_name(version) / config.DATA_DIRECTORY
        if not data_dir.is_dir():
            continue
        results.extend(
            p.relative_to(root).as_posix() for p in sorted(data_dir.rglob("*")) if p.is_file()
        )
    return results


def build_manifest_from_disk(
    store: VersionStore,
    object_id: str,
    algorithm: str = config.DEFAULT_DIGEST,
    progress: bool = False,
) -> Manifest:
    """
    Manifest of every version, computed by hashing the files found on disk.

    Always covers all versions of the object.
    """
    check_algorithm(algorithm)
    root = store.object_path(object_id)
    files = list_all_files(store, object_id)

    accumulator: dict[str, set[str]] = {}
    for rel in tqdm(files, desc="Hashing files", unit="file", disable=not progress):
        add_entry(accumulator, hash_file(root / rel, algorithm), rel)
    return freeze(accumulator)


def _by_path(manifest: Manifest) -> dict[str, str]:
    return {path: checksum for checksum, paths in manifest.items() for path in paths}


def compare_manifests(stored: Manifest, recomputed: Manifest) -> list[IntegrityAnomaly]:
    expected = _by_path(stored)
    actual = _by_path(recomputed)
    anomalies = []
    for path in sorted(expected.keys() | actual.keys()):
        want = expected.get(path)
        got = actual.get(path)
        if want == got:
            continue
        if got is None:
            kind = "missing"
        elif want is None:
            kind = "unrecorded"
        else:
            kind = "mismatch"
        anomalies.append(IntegrityAnomaly(path=path, kind=kind, expected=want, actual=got))
    return anomalies


def verify_manifest(
    store: VersionStore,
    object_id: str,
    algorithm: str = config.DEFAULT_DIGEST,
    progress: bool = False,
) -> list[IntegrityAnomaly]:
    """Anomalies between recorded and recomputed digests; empty when all agree."""
    stored = build_manifest(store, object_id, algorithm=algorithm)
    recomputed = build_manifest_from_disk(store, object_id, algorithm=algorithm, progress=progress)
    return compare_manifests(stored, recomputed)
