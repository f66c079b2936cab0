"""
📄 store.py

Purpose:
    Read access to versioned Moab objects on disk.

Key Features:
    - VersionStore: the query interface every builder is written against.
    - MoabStore: resolves druids to object roots and parses the XML
      inventories, signature catalogs and version metadata of each version.

Usage:
    store = MoabStore([Path("/services-disk01")])
    store.current_version("druid:bb123cd4567")
    store.file_inventory("druid:bb123cd4567", 2, "additions")
"""

from __future__ import annotations

import logging
import re
import threading
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import BinaryIO, Iterable, Protocol

from . import config
from .diff import compare_inventories
from .errors import StoreUnavailable
from .models import (
    FileGroup,
    FileInstance,
    FileInventory,
    FileManifestation,
    FileSignature,
    InventoryDifference,
)

logger = logging.getLogger(__name__)

DRUID_PATTERN = re.compile(
    r"^(?:druid:)?([b-df-hjkmnp-tv-z]{2})([0-9]{3})([b-df-hjkmnp-tv-z]{2})([0-9]{4})$"
)
VERSION_DIR_PATTERN = re.compile(r"^v(\d+)$")
INVENTORY_MODES = tuple(config.INVENTORY_FILES)


class VersionStore(Protocol):
    """Queries the manifest, delta and export builders need from a store."""

    def version_ids(self, object_id: str) -> list[int]: ...

    def current_version(self, object_id: str) -> int: ...

    def file_inventory(self, object_id: str, version: int, mode: str) -> FileInventory: ...

    def structural_diff(self, basis: FileInventory, other: FileInventory) -> InventoryDifference: ...

    def object_path(self, object_id: str) -> Path: ...

    def locate_file(self, category: str, path: str, object_id: str, version: int) -> Path: ...

    def retrieve_file(self, category: str, path: str, object_id: str, version: int) -> BinaryIO: ...

    def version_descriptions(self, object_id: str) -> dict[int, str]: ...


def druid_tree(object_id: str) -> Path:
    """Return the druid tree of an identifier: bb/123/cd/4567/bb123cd4567."""
    match = DRUID_PATTERN.match(object_id)
    if not match:
        raise StoreUnavailable(f"Not a valid druid: {object_id!r}", object_id=object_id)
    bare = "".join(match.groups())
    return Path(*match.groups(), bare)


# ------------------------------
# XML parsing
# ------------------------------
def _local(tag: str) -> str:
    return tag.split("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> Iterable[ET.Element]:
    return (child for child in elem if _local(child.tag) == name)


def _parse_signature(elem: ET.Element) -> FileSignature:
    return FileSignature(
        size=int(elem.get("size", "0")),
        md5=elem.get("md5", ""),
        sha1=elem.get("sha1", ""),
        sha256=elem.get("sha256", ""),
    )


def parse_file_inventory(xml_path: Path) -> FileInventory:
    root = ET.parse(xml_path).getroot()
    if _local(root.tag) != "fileInventory":
        raise ValueError(f"expected <fileInventory>, found <{_local(root.tag)}>")

    groups = []
    for group_elem in _children(root, "fileGroup"):
        files = []
        for file_elem in _children(group_elem, "file"):
            signature_elem = next(_children(file_elem, "fileSignature"), None)
            if signature_elem is None:
                raise ValueError("<file> without <fileSignature>")
            instances = tuple(
                FileInstance(path=inst.get("path", ""), datetime=inst.get("datetime"))
                for inst in _children(file_elem, "fileInstance")
            )
            files.append(FileManifestation(_parse_signature(signature_elem), instances))
        groups.append(FileGroup(group_id=group_elem.get("groupId", ""), files=tuple(files)))

    return FileInventory(
        type=root.get("type", ""),
        object_id=root.get("objectId", ""),
        version_id=int(root.get("versionId", "0")),
        inventory_datetime=root.get("inventoryDatetime"),
        groups=tuple(groups),
    )


def parse_signature_catalog(xml_path: Path) -> list[tuple[int, str, str, FileSignature]]:
    """Return (originalVersion, groupId, storagePath, signature) per catalog entry."""
    root = ET.parse(xml_path).getroot()
    entries = []
    for entry in _children(root, "entry"):
        signature_elem = next(_children(entry, "fileSignature"), None)
        if signature_elem is None:
            raise ValueError("<entry> without <fileSignature>")
        entries.append(
            (
                int(entry.get("originalVersion", "0")),
                entry.get("groupId", ""),
                entry.get("storagePath", ""),
                _parse_signature(signature_elem),
            )
        )
    return entries


def parse_version_metadata(xml_path: Path) -> dict[int, str]:
    root = ET.parse(xml_path).getroot()
    descriptions: dict[int, str] = {}
    for version in _children(root, "version"):
        description = next(_children(version, "description"), None)
        text = (description.text or "").strip() if description is not None else ""
        descriptions[int(version.get("versionId", "0"))] = text
    return descriptions


# ------------------------------
# Moab store
# ------------------------------
class MoabStore:
    """Point-in-time reader over Moab objects kept under druid trees."""

    def __init__(
        self,
        storage_roots: Iterable[Path] | None = None,
        trunk: str | None = None,
        object_roots: dict[str, Path] | None = None,
    ):
        roots = storage_roots if storage_roots is not None else config.STORAGE_ROOTS
        self.storage_roots = [Path(r) for r in roots]
        self.trunk = trunk if trunk is not None else config.STORAGE_TRUNK
        self._object_roots = {k: Path(v) for k, v in (object_roots or {}).items()}
        self._inventories: dict[tuple[str, int, str], FileInventory] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_object_root(cls, path: Path) -> tuple["MoabStore", str]:
        """Open a single object directory; returns the store and the id to query it by."""
        path = Path(path)
        object_id = path.name
        return cls(storage_roots=[], object_roots={object_id: path}), object_id

    # ----------------------------- paths -----------------------------

    def object_path(self, object_id: str) -> Path:
        if object_id in self._object_roots:
            root = self._object_roots[object_id]
            if not root.is_dir():
                raise StoreUnavailable(f"Object root not found: {root}", object_id=object_id)
            return root

        tree = druid_tree(object_id)
        for storage_root in self.storage_roots:
            candidate = storage_root / self.trunk / tree
            if candidate.is_dir():
                return candidate
        raise StoreUnavailable(
            f"Object {object_id} not found in {len(self.storage_roots)} storage root(s)",
            object_id=object_id,
        )

    def version_path(self, object_id: str, version: int) -> Path:
        path = self.object_path(object_id) / config.version_name(version)
        if not path.is_dir():
            raise StoreUnavailable(
                f"Version {version} of {object_id} not found at {path}",
                object_id=object_id,
                version=version,
            )
        return path

    # ----------------------------- versions -----------------------------

    def version_ids(self, object_id: str) -> list[int]:
        root = self.object_path(object_id)
        versions = sorted(
            int(m.group(1))
            for p in root.iterdir()
            if p.is_dir() and (m := VERSION_DIR_PATTERN.match(p.name))
        )
        if not versions:
            raise StoreUnavailable(f"No version directories under {root}", object_id=object_id)
        if versions != list(range(1, len(versions) + 1)):
            raise StoreUnavailable(
                f"Version directories of {object_id} are not contiguous: {versions}",
                object_id=object_id,
            )
        return versions

    def current_version(self, object_id: str) -> int:
        return self.version_ids(object_id)[-1]

    # ----------------------------- inventories -----------------------------

    def file_inventory(self, object_id: str, version: int, mode: str) -> FileInventory:
        if mode not in INVENTORY_MODES:
            raise StoreUnavailable(f"Unknown inventory type: {mode!r}", object_id=object_id)

        key = (object_id, version, mode)
        with self._lock:
            cached = self._inventories.get(key)
        if cached is not None:
            return cached

        xml_path = (
            self.version_path(object_id, version)
            / config.MANIFESTS_DIRECTORY
            / config.INVENTORY_FILES[mode]
        )
        logger.debug(f"Reading {mode} inventory {xml_path}")
        try:
            inventory = parse_file_inventory(xml_path)
        except (OSError, ET.ParseError, ValueError) as e:
            raise StoreUnavailable(
                f"Cannot read {xml_path}: {e}", object_id=object_id, version=version
            ) from e

        with self._lock:
            self._inventories[key] = inventory
        return inventory

    def structural_diff(self, basis: FileInventory, other: FileInventory) -> InventoryDifference:
        return compare_inventories(basis, other)

    # ----------------------------- files -----------------------------

    def locate_file(self, category: str, path: str, object_id: str, version: int) -> Path:
        """Return the physical location of a logical file as of a version."""
        group = self.file_inventory(object_id, version, "version").group(category)
        signature = group.path_signatures().get(path) if group else None
        if signature is None:
            raise StoreUnavailable(
                f"{category}/{path} is not part of version {version} of {object_id}",
                object_id=object_id,
                version=version,
            )

        catalog_path = (
            self.version_path(object_id, version)
            / config.MANIFESTS_DIRECTORY
            / config.SIGNATURE_CATALOG
        )
        try:
            entries = parse_signature_catalog(catalog_path)
        except (OSError, ET.ParseError, ValueError) as e:
            raise StoreUnavailable(
                f"Cannot read {catalog_path}: {e}", object_id=object_id, version=version
            ) from e

        for original_version, group_id, storage_path, entry_signature in entries:
            if group_id == category and entry_signature.matches(signature):
                return (
                    self.object_path(object_id)
                    / config.version_name(original_version)
                    / config.DATA_DIRECTORY
                    / group_id
                    / storage_path
                )
        raise StoreUnavailable(
            f"No signature catalog entry for {category}/{path} in version {version}",
            object_id=object_id,
            version=version,
        )

    def retrieve_file(self, category: str, path: str, object_id: str, version: int) -> BinaryIO:
        location = self.locate_file(category, path, object_id, version)
        try:
            return location.open("rb")
        except OSError as e:
            raise StoreUnavailable(
                f"Cannot open {location}: {e}", object_id=object_id, version=version
            ) from e

    def version_descriptions(self, object_id: str) -> dict[int, str]:
        """Version descriptions from versionMetadata.xml, empty if there is none."""
        current = self.current_version(object_id)
        group = self.file_inventory(object_id, current, "version").group("metadata")
        if group is None or config.VERSION_METADATA not in group.path_signatures():
            return {}

        location = self.locate_file("metadata", config.VERSION_METADATA, object_id, current)
        try:
            return parse_version_metadata(location)
        except (OSError, ET.ParseError, ValueError) as e:
            raise StoreUnavailable(
                f"Cannot read {location}: {e}", object_id=object_id, version=current
            ) from e
