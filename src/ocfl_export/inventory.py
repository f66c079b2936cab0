# src/ocfl_export/inventory.py

from __future__ import annotations

from .digests import check_algorithm
from .errors import PreconditionError, StoreUnavailable
from .models import FileInventory, FileSignature, Inventory
from .store import INVENTORY_MODES, VersionStore


def check_version(store: VersionStore, object_id: str, version: int) -> int:
    """Return the object's current version after checking 1 <= version <= current."""
    current = store.current_version(object_id)
    if not isinstance(version, int) or not 1 <= version <= current:
        raise PreconditionError(
            f"Version {version!r} of {object_id} is outside 1..{current}"
        )
    return current


def recorded_digest(
    signature: FileSignature,
    algorithm: str,
    path: str,
    object_id: str | None = None,
    version: int | None = None,
) -> str:
    """The signature's digest, or StoreUnavailable when the store never recorded it."""
    checksum = signature.digest(algorithm)
    if not checksum:
        raise StoreUnavailable(
            f"No {algorithm} digest recorded for {path} in version {version}",
            object_id=object_id,
            version=version,
        )
    return checksum


def flatten_inventory(file_inventory: FileInventory, algorithm: str) -> Inventory:
    """Map '<group>/<path>' to a one-element list holding the file's digest."""
    files: Inventory = {}
    for group in file_inventory.groups:
        for manifestation in group.files:
            for instance in manifestation.instances:
                path = f"{group.group_id}/{instance.path}"
                files[path] = [
                    recorded_digest(
                        manifestation.signature,
                        algorithm,
                        path,
                        file_inventory.object_id,
                        file_inventory.version_id,
                    )
                ]
    return files


def get_inventory(
    store: VersionStore,
    object_id: str,
    version: int,
    mode: str,
    algorithm: str,
) -> Inventory:
    """
    Files and checksums of one version.

    mode is 'version' for every file present at that version, or 'additions'
    for the files added or changed in exactly that version.
    """
    check_algorithm(algorithm)
    if mode not in INVENTORY_MODES:
        raise PreconditionError(f"Unknown inventory type: {mode!r}")
    check_version(store, object_id, version)
    return flatten_inventory(store.file_inventory(object_id, version, mode), algorithm)


def version_inventory(store: VersionStore, object_id: str, version: int, algorithm: str) -> Inventory:
    return get_inventory(store, object_id, version, "version", algorithm)


def version_additions(store: VersionStore, object_id: str, version: int, algorithm: str) -> Inventory:
    return get_inventory(store, object_id, version, "additions", algorithm)
