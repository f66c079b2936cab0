"""
📄 config.py

Purpose:
    Central configuration for storage locations, digest algorithms and
    inventory document defaults.

Key Features:
    - STORAGE_ROOTS / STORAGE_TRUNK: where Moab objects live on disk.
    - DEFAULT_DIGEST / FIXITY_DIGEST: primary and secondary checksum algorithms.
    - USER_NAME / USER_ADDRESS: agent recorded in exported version blocks.

Usage:
    Import constants into the store, exporter and CLI modules. Every
    environment-backed value can be overridden on the command line.
"""

import os

SUPPORTED_DIGESTS = ("md5", "sha1", "sha256")
DEFAULT_DIGEST = "sha256"
FIXITY_DIGEST = "md5"

CHUNK_SIZE = 8192

STORAGE_ROOTS = [
    p for p in os.environ.get("OCFL_EXPORT_STORAGE_ROOTS", "").split(os.pathsep) if p
]
STORAGE_TRUNK = os.environ.get("OCFL_EXPORT_STORAGE_TRUNK", "sdr2objects")

# Moab layout
VERSION_PREFIX = "v"
VERSION_PADDING = 4
DATA_DIRECTORY = "data"
MANIFESTS_DIRECTORY = "manifests"
INVENTORY_FILES = {
    "version": "versionInventory.xml",
    "additions": "versionAdditions.xml",
}
SIGNATURE_CATALOG = "signatureCatalog.xml"
VERSION_METADATA = "versionMetadata.xml"

# OCFL inventory document
INVENTORY_TYPE = "https://ocfl.io/1.0/spec/#inventory"
INVENTORY_FILE = "inventory.json"
CONTENT_DIRECTORY = DATA_DIRECTORY
USER_NAME = os.environ.get("OCFL_EXPORT_USER_NAME", "Stanford Digital Repository")
USER_ADDRESS = os.environ.get("OCFL_EXPORT_USER_ADDRESS", "sdr@stanford.edu")

LOG_DIR = os.environ.get("OCFL_EXPORT_LOG_DIR") or None


def version_name(version: int) -> str:
    """Return the directory name of a version, e.g. 1 -> 'v0001'."""
    return f"{VERSION_PREFIX}{version:0{VERSION_PADDING}d}"
