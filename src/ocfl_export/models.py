"""Typed records for store snapshots, difference reports and change deltas."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ConfigurationError

CHANGE_TYPES = ("added", "modified", "deleted", "renamed")

Inventory = dict[str, list[str]]
Manifest = dict[str, list[str]]
State = dict[str, list[str]]


# ------------------------------
# Store snapshots
# ------------------------------
@dataclass(slots=True, frozen=True)
class FileSignature:
    """Size and digests of one file content."""

    size: int
    md5: str
    sha1: str
    sha256: str

    def digest(self, algorithm: str) -> str:
        if algorithm == "md5":
            return self.md5
        if algorithm == "sha1":
            return self.sha1
        if algorithm == "sha256":
            return self.sha256
        raise ConfigurationError(f"Unknown digest type: {algorithm!r}")

    def matches(self, other: FileSignature) -> bool:
        """Same size, and every digest recorded on both sides agrees."""
        if self.size != other.size:
            return False
        # Older Moab manifests carry no sha256
        shared = [
            (mine, theirs)
            for mine, theirs in (
                (self.md5, other.md5),
                (self.sha1, other.sha1),
                (self.sha256, other.sha256),
            )
            if mine and theirs
        ]
        return bool(shared) and all(mine == theirs for mine, theirs in shared)


@dataclass(slots=True, frozen=True)
class FileInstance:
    path: str
    datetime: str | None = None


@dataclass(slots=True, frozen=True)
class FileManifestation:
    """One content signature and every path it appears under."""

    signature: FileSignature
    instances: tuple[FileInstance, ...]


@dataclass(slots=True, frozen=True)
class FileGroup:
    group_id: str
    files: tuple[FileManifestation, ...] = ()

    def path_signatures(self) -> dict[str, FileSignature]:
        return {
            instance.path: manifestation.signature
            for manifestation in self.files
            for instance in manifestation.instances
        }


@dataclass(slots=True, frozen=True)
class FileInventory:
    """A version's file listing, either the full state or its additions."""

    type: str
    object_id: str
    version_id: int
    inventory_datetime: str | None = None
    groups: tuple[FileGroup, ...] = ()

    def group(self, group_id: str) -> FileGroup | None:
        for group in self.groups:
            if group.group_id == group_id:
                return group
        return None

    @property
    def file_count(self) -> int:
        return sum(len(m.instances) for g in self.groups for m in g.files)


# ------------------------------
# Structural difference reports
# ------------------------------
@dataclass(slots=True, frozen=True)
class FileDifference:
    basis_path: str
    other_path: str
    signatures: tuple[FileSignature, ...]


@dataclass(slots=True, frozen=True)
class SubsetDifference:
    change: str
    files: tuple[FileDifference, ...] = ()


@dataclass(slots=True, frozen=True)
class GroupDifference:
    group_id: str
    difference_count: int
    subsets: tuple[SubsetDifference, ...] = ()


@dataclass(slots=True, frozen=True)
class InventoryDifference:
    basis_version: int
    other_version: int
    group_differences: tuple[GroupDifference, ...] = ()

    @property
    def difference_count(self) -> int:
        return sum(g.difference_count for g in self.group_differences)


# ------------------------------
# Deltas
# ------------------------------
@dataclass(slots=True, frozen=True)
class ChangeRecord:
    """A single changed file: its change type, path and digests.

    ``modified`` records carry the prior digest followed by the current one;
    every other change type carries exactly one digest.
    """

    change: str
    path: str
    checksums: tuple[str, ...]

    def __post_init__(self) -> None:
        if self.change not in CHANGE_TYPES:
            raise ValueError(f"Unknown change type: {self.change!r}")
        expected = 2 if self.change == "modified" else 1
        if len(self.checksums) != expected:
            raise ValueError(
                f"{self.change} change for {self.path!r} needs {expected} checksum(s), "
                f"got {len(self.checksums)}"
            )

    def to_dict(self) -> dict[str, list[str]]:
        return {self.path: list(self.checksums)}


@dataclass(slots=True)
class Delta:
    """Changes of one version, grouped by change type in first-seen order."""

    changes: dict[str, list[ChangeRecord]] = field(default_factory=dict)

    def add(self, record: ChangeRecord) -> None:
        self.changes.setdefault(record.change, []).append(record)

    def __getitem__(self, change: str) -> list[ChangeRecord]:
        return self.changes[change]

    def __contains__(self, change: object) -> bool:
        return change in self.changes

    def __iter__(self):
        return iter(self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def records(self) -> list[ChangeRecord]:
        return [record for records in self.changes.values() for record in records]

    def to_dict(self) -> dict[str, list[dict[str, list[str]]]]:
        return {
            change: [record.to_dict() for record in records]
            for change, records in self.changes.items()
        }


History = dict[int, Delta]


# ------------------------------
# Integrity checks
# ------------------------------
@dataclass(slots=True, frozen=True)
class IntegrityAnomaly:
    """A stored digest that does not agree with the bytes on disk.

    kind is ``mismatch`` (both known, different), ``missing`` (recorded but not
    on disk) or ``unrecorded`` (on disk but not in the stored manifest).
    """

    path: str
    kind: str
    expected: str | None
    actual: str | None
