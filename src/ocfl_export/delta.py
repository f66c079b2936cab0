"""
📄 delta.py

Purpose:
    Reports what changed in each version of an object.

Key Features:
    - compute_delta(): changes between version - 1 and version, re-keyed by
      change type (added / modified / deleted / renamed).
    - build_history(): deltas of every version, version 1 being all additions.

Paths are group-qualified ("content/a.txt"). When the store reports both a
prior and a new path for a file, the prior path is the one recorded.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from . import config
from .digests import check_algorithm
from .errors import PreconditionError
from .inventory import check_version, recorded_digest, version_inventory
from .models import ChangeRecord, Delta, History, InventoryDifference
from .store import VersionStore


def delta_from_difference(difference: InventoryDifference, algorithm: str) -> Delta:
    """Re-key a structural diff by change type, dropping unchanged groups and files."""
    delta = Delta()
    for group in difference.group_differences:
        if group.difference_count == 0:
            continue
        for subset in group.subsets:
            if subset.change == "identical":
                continue
            for file in subset.files:
                file_path = file.other_path
                if file.basis_path != "":
                    file_path = file.basis_path
                path = f"{group.group_id}/{file_path}"
                checksums = tuple(
                    recorded_digest(signature, algorithm, path, version=difference.other_version)
                    for signature in file.signatures
                )
                delta.add(
                    ChangeRecord(
                        change=subset.change,
                        path=path,
                        checksums=checksums,
                    )
                )
    return delta


def compute_delta(
    store: VersionStore,
    object_id: str,
    version: int,
    algorithm: str = config.DEFAULT_DIGEST,
) -> Delta:
    """Changes made in version relative to the version immediately prior."""
    check_algorithm(algorithm)
    if not isinstance(version, int) or version <= 1:
        raise PreconditionError(f"Provided version must be greater than 1, got {version!r}")
    check_version(store, object_id, version)

    prior = store.file_inventory(object_id, version - 1, "version")
    current = store.file_inventory(object_id, version, "version")
    difference = store.structural_diff(prior, current)
    return delta_from_difference(difference, algorithm)


def initial_delta(
    store: VersionStore,
    object_id: str,
    algorithm: str = config.DEFAULT_DIGEST,
) -> Delta:
    # Version 1 has no predecessor: everything in it was added
    delta = Delta()
    for path, checksums in version_inventory(store, object_id, 1, algorithm).items():
        delta.add(ChangeRecord(change="added", path=path, checksums=tuple(checksums)))
    return delta


def build_history(
    store: VersionStore,
    object_id: str,
    algorithm: str = config.DEFAULT_DIGEST,
    max_workers: int = 1,
) -> History:
    """
    Deltas for every version from 1 to the current one.

    Any failing version aborts the whole history; no partial result is
    returned.
    """
    check_algorithm(algorithm)
    history: History = {1: initial_delta(store, object_id, algorithm)}

    current = store.current_version(object_id)
    later = range(2, current + 1)
    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            deltas = list(
                executor.map(lambda v: compute_delta(store, object_id, v, algorithm), later)
            )
    else:
        deltas = [compute_delta(store, object_id, v, algorithm) for v in later]

    for version, delta in zip(later, deltas):
        history[version] = delta
    return history
