"""Export Moab objects as OCFL inventories: manifests, states, fixity and deltas."""

__version__ = "0.3.0"
__author__ = "Stanford University Libraries"

from .delta import build_history, compute_delta
from .errors import ConfigurationError, OcflExportError, PreconditionError, StoreUnavailable
from .export import InventoryExport
from .manifest import build_fixity, build_manifest, build_state
from .rehash import build_manifest_from_disk, verify_manifest
from .store import MoabStore, VersionStore

__all__ = [
    "ConfigurationError",
    "InventoryExport",
    "MoabStore",
    "OcflExportError",
    "PreconditionError",
    "StoreUnavailable",
    "VersionStore",
    "build_fixity",
    "build_history",
    "build_manifest",
    "build_manifest_from_disk",
    "build_state",
    "compute_delta",
    "verify_manifest",
]
