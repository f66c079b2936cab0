# ------------------------------
# src/ocfl_export/export.py
# ------------------------------
"""
Assembles an OCFL inventory document for a Moab object and writes it out,
together with its digest sidecar.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from . import config
from .digests import hash_bytes
from .manifest import build_fixity, build_manifest, build_state
from .store import VersionStore

logger = logging.getLogger(__name__)


class InventoryExport:
    """Builds the inventory.json of one object from a versioned store."""

    def __init__(
        self,
        store: VersionStore,
        object_id: str,
        digest: str = config.DEFAULT_DIGEST,
        fixity_digest: str | None = config.FIXITY_DIGEST,
        user_name: str = config.USER_NAME,
        user_address: str = config.USER_ADDRESS,
    ):
        self.store = store
        self.object_id = object_id
        self.digest = digest
        self.fixity_digest = fixity_digest
        self.user = {"name": user_name, "address": user_address}

    @property
    def current_version(self) -> int:
        return self.store.current_version(self.object_id)

    def digital_object_id(self) -> str:
        # The id recorded in the Moab's own inventory, e.g. 'druid:bb123cd4567'
        first = self.store.file_inventory(self.object_id, 1, "version")
        return first.object_id or self.object_id

    def build_versions(self) -> dict[str, dict]:
        messages = self.store.version_descriptions(self.object_id)
        versions = {}
        for version in self.store.version_ids(self.object_id):
            inventory = self.store.file_inventory(self.object_id, version, "version")
            versions[config.version_name(version)] = {
                "created": inventory.inventory_datetime,
                "message": messages.get(version, ""),
                "user": dict(self.user),
                "state": build_state(self.store, self.object_id, version, algorithm=self.digest),
            }
        return versions

    def build_inventory(self) -> dict:
        inventory = {
            "id": self.digital_object_id(),
            "type": config.INVENTORY_TYPE,
            "digestAlgorithm": self.digest,
            "head": config.version_name(self.current_version),
            "contentDirectory": config.CONTENT_DIRECTORY,
            "manifest": build_manifest(self.store, self.object_id, algorithm=self.digest),
            "versions": self.build_versions(),
        }
        if self.fixity_digest and self.fixity_digest != self.digest:
            inventory["fixity"] = build_fixity(
                self.store, self.object_id, algorithm=self.fixity_digest
            )
        return inventory

    def write_inventory(self, directory: Path | None = None) -> Path:
        """Write inventory.json and its sidecar; defaults to the object root."""
        directory = Path(directory) if directory else self.store.object_path(self.object_id)
        directory.mkdir(parents=True, exist_ok=True)

        payload = json.dumps(self.build_inventory(), indent=2, sort_keys=True) + "\n"
        inventory_path = directory / config.INVENTORY_FILE
        _write_atomic(inventory_path, payload)

        digest = hash_bytes(payload.encode("utf-8"), self.digest)
        sidecar = directory / f"{config.INVENTORY_FILE}.{self.digest}"
        _write_atomic(sidecar, f"{digest} {config.INVENTORY_FILE}\n")

        logger.info(f"Inventory for {self.object_id} written to {inventory_path}")
        logger.info(f"Sidecar created: {sidecar.name}")
        return inventory_path


def _write_atomic(path: Path, text: str) -> None:
    tmp = path.with_name(f".tmp_{path.name}")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)
