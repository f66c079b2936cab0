# tests/conftest.py
import hashlib
import xml.etree.ElementTree as ET
from dataclasses import replace
from pathlib import Path

import pytest

from ocfl_export import config
from ocfl_export.diff import compare_inventories
from ocfl_export.errors import StoreUnavailable
from ocfl_export.models import (
    FileGroup,
    FileInstance,
    FileInventory,
    FileManifestation,
    FileSignature,
)

INVENTORY_DATETIME = "2019-03-04T10:11:12Z"


# ------------------------------
# In-memory store
# ------------------------------
def tag_signature(tag: str) -> FileSignature:
    """Signature whose sha256 is the tag itself; md5/sha1 are derived from it."""
    return FileSignature(size=len(tag), md5=f"md5:{tag}", sha1=f"sha1:{tag}", sha256=tag)


def build_file_inventory(object_id, version, type_, files: dict[str, FileSignature]) -> FileInventory:
    grouped: dict[str, dict[FileSignature, list[str]]] = {}
    for key in sorted(files):
        group_id, path = key.split("/", 1)
        grouped.setdefault(group_id, {}).setdefault(files[key], []).append(path)
    groups = tuple(
        FileGroup(
            group_id=group_id,
            files=tuple(
                FileManifestation(sig, tuple(FileInstance(p, INVENTORY_DATETIME) for p in paths))
                for sig, paths in by_sig.items()
            ),
        )
        for group_id, by_sig in grouped.items()
    )
    return FileInventory(
        type=type_,
        object_id=object_id,
        version_id=version,
        inventory_datetime=INVENTORY_DATETIME,
        groups=groups,
    )


class MemoryStore:
    """
    VersionStore over {version: {"group/path": tag}} listings.

    Additions of a version are the files whose content was not seen in any
    earlier version. Every query is recorded in `calls`. Digest names in
    `unrecorded` come back empty, as in older Moab manifests.
    """

    def __init__(self, object_id, versions, descriptions=None, root=None, additions=None):
        self.object_id = object_id
        self.versions = versions
        self.explicit_additions = additions or {}
        self.descriptions = descriptions or {}
        self.root = root
        self.fail_versions = set()
        self.unrecorded = set()
        self.calls = []

    def _check(self, object_id):
        if object_id != self.object_id:
            raise StoreUnavailable(f"No such object {object_id}", object_id=object_id)

    def version_ids(self, object_id):
        self.calls.append(("version_ids",))
        self._check(object_id)
        return sorted(self.versions)

    def current_version(self, object_id):
        self.calls.append(("current_version",))
        self._check(object_id)
        return max(self.versions)

    def _additions(self, version):
        if version in self.explicit_additions:
            return self.explicit_additions[version]
        seen = {tag for v in self.versions if v < version for tag in self.versions[v].values()}
        return {path: tag for path, tag in self.versions[version].items() if tag not in seen}

    def file_inventory(self, object_id, version, mode):
        self.calls.append(("file_inventory", version, mode))
        self._check(object_id)
        if version in self.fail_versions or version not in self.versions:
            raise StoreUnavailable(f"Version {version} unreadable", object_id=object_id, version=version)
        listing = self.versions[version] if mode == "version" else self._additions(version)
        blank = {name: "" for name in self.unrecorded}
        files = {path: replace(tag_signature(tag), **blank) for path, tag in listing.items()}
        return build_file_inventory(object_id, version, mode, files)

    def structural_diff(self, basis, other):
        self.calls.append(("structural_diff", basis.version_id, other.version_id))
        return compare_inventories(basis, other)

    def object_path(self, object_id):
        self._check(object_id)
        if self.root is None:
            raise StoreUnavailable("In-memory object has no root", object_id=object_id)
        return self.root

    def locate_file(self, category, path, object_id, version):
        raise StoreUnavailable("In-memory store holds no files", object_id=object_id)

    def retrieve_file(self, category, path, object_id, version):
        raise StoreUnavailable("In-memory store holds no files", object_id=object_id)

    def version_descriptions(self, object_id):
        self._check(object_id)
        return dict(self.descriptions)


@pytest.fixture
def memory_store():
    """Factory: memory_store({1: {...}, 2: {...}}) -> MemoryStore for 'obj'."""

    def _make(versions, descriptions=None, root=None, additions=None):
        return MemoryStore("obj", versions, descriptions=descriptions, root=root, additions=additions)

    return _make


@pytest.fixture
def scenario_store(memory_store):
    # v1: a.txt (H1); v2: adds b.txt (H2), modifies a.txt to H3
    return memory_store(
        {
            1: {"content/a.txt": "H1"},
            2: {"content/a.txt": "H3", "content/b.txt": "H2"},
        }
    )


# ------------------------------
# On-disk Moab objects
# ------------------------------
def _signature_attrs(data: bytes) -> dict[str, str]:
    return {
        "size": str(len(data)),
        "md5": hashlib.md5(data).hexdigest(),
        "sha1": hashlib.sha1(data).hexdigest(),
        "sha256": hashlib.sha256(data).hexdigest(),
    }


def _write_inventory_xml(target: Path, object_id, version, type_, files: dict[str, bytes]):
    root = ET.Element(
        "fileInventory",
        type=type_,
        objectId=object_id,
        versionId=str(version),
        fileCount=str(len(files)),
        inventoryDatetime=INVENTORY_DATETIME,
    )
    grouped: dict[str, dict[bytes, list[str]]] = {}
    for key in sorted(files):
        group_id, path = key.split("/", 1)
        grouped.setdefault(group_id, {}).setdefault(files[key], []).append(path)
    for group_id, by_content in grouped.items():
        group_elem = ET.SubElement(root, "fileGroup", groupId=group_id, dataSource="")
        for data, paths in by_content.items():
            file_elem = ET.SubElement(group_elem, "file")
            ET.SubElement(file_elem, "fileSignature", **_signature_attrs(data))
            for path in paths:
                ET.SubElement(file_elem, "fileInstance", path=path, datetime=INVENTORY_DATETIME)
    ET.ElementTree(root).write(target, encoding="UTF-8", xml_declaration=True)


def _write_catalog_xml(target: Path, object_id, version, entries):
    root = ET.Element("signatureCatalog", objectId=object_id, versionId=str(version))
    for original_version, group_id, storage_path, data in entries:
        entry = ET.SubElement(
            root,
            "entry",
            originalVersion=str(original_version),
            groupId=group_id,
            storagePath=storage_path,
        )
        ET.SubElement(entry, "fileSignature", **_signature_attrs(data))
    ET.ElementTree(root).write(target, encoding="UTF-8", xml_declaration=True)


def version_metadata_xml(object_id, descriptions: dict[int, str]) -> bytes:
    root = ET.Element("versionMetadata", objectId=object_id)
    for version_id in sorted(descriptions):
        version = ET.SubElement(root, "version", versionId=str(version_id))
        ET.SubElement(version, "description").text = descriptions[version_id]
    return ET.tostring(root, encoding="utf-8")


def write_moab(object_root: Path, object_id, versions: dict[int, dict[str, bytes]]):
    """Lay out a Moab object: data for new content only, plus XML manifests."""
    seen: set[bytes] = set()
    catalog = []
    for version in sorted(versions):
        files = versions[version]
        version_dir = object_root / config.version_name(version)
        manifests_dir = version_dir / "manifests"
        manifests_dir.mkdir(parents=True)

        additions = {key: data for key, data in files.items() if data not in seen}
        for key, data in sorted(additions.items()):
            target = version_dir / "data" / key
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
            if data not in seen:
                group_id, path = key.split("/", 1)
                catalog.append((version, group_id, path, data))
                seen.add(data)

        _write_inventory_xml(manifests_dir / "versionInventory.xml", object_id, version, "version", files)
        _write_inventory_xml(manifests_dir / "versionAdditions.xml", object_id, version, "additions", additions)
        _write_catalog_xml(manifests_dir / "signatureCatalog.xml", object_id, version, catalog)
    return object_root


@pytest.fixture
def moab_object(tmp_path):
    """
    Factory writing a Moab object under a druid tree.

    Returns (storage_root, object_root). With descriptions, every version also
    carries metadata/versionMetadata.xml listing the descriptions so far.
    """

    def _make(versions, descriptions=None, druid="bb123cd4567"):
        object_id = f"druid:{druid}"
        storage_root = tmp_path / "storage"
        object_root = storage_root / "sdr2objects" / druid[:2] / druid[2:5] / druid[5:7] / druid[7:] / druid
        if descriptions:
            versions = {
                v: {
                    **files,
                    "metadata/versionMetadata.xml": version_metadata_xml(
                        object_id, {k: d for k, d in descriptions.items() if k <= v}
                    ),
                }
                for v, files in versions.items()
            }
        write_moab(object_root, object_id, versions)
        return storage_root, object_root

    return _make


@pytest.fixture
def sample_moab(moab_object):
    return moab_object(
        {
            1: {"content/a.txt": b"alpha", "content/docs/readme.md": b"# readme"},
            2: {
                "content/a.txt": b"alpha, revised",
                "content/b.txt": b"bravo",
                "content/docs/readme.md": b"# readme",
            },
            3: {
                "content/a.txt": b"alpha, revised",
                "content/b.txt": b"bravo",
                "content/docs/README.md": b"# readme",
            },
        },
        descriptions={1: "Initial version", 2: "Added bravo", 3: "Renamed readme"},
    )
