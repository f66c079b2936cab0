"""
📄 diff.py

Purpose:
    Structural comparison of two file inventories, grouped by file group and
    classified into change subsets.

Key Features:
    - compare_inventories(): the diff a store hands to the delta engine.
    - compare_groups(): signature-first classification of one file group.

Classification (per group):
    - Signatures match when sizes agree and every digest both sides record
      agrees, so a version lacking sha256 still lines up with one that has it.
    - Signatures on both sides: shared paths are identical, unmatched paths
      are paired up as renames, leftovers are copies (added / deleted).
    - Signatures on one side only: a path on both sides is modified, the rest
      are added or deleted.
"""

from __future__ import annotations

from .models import (
    FileDifference,
    FileGroup,
    FileInventory,
    FileSignature,
    GroupDifference,
    InventoryDifference,
    SubsetDifference,
)

SUBSET_ORDER = ("identical", "renamed", "modified", "added", "deleted")


def _paths_by_signature(group: FileGroup) -> dict[FileSignature, list[str]]:
    output: dict[FileSignature, list[str]] = {}
    for manifestation in group.files:
        paths = output.setdefault(manifestation.signature, [])
        paths.extend(instance.path for instance in manifestation.instances)
    return output


def _align_signatures(
    basis_sigs: dict[FileSignature, list[str]],
    other_sigs: dict[FileSignature, list[str]],
) -> dict[FileSignature, list[str]]:
    """Re-key other's signatures onto the basis signature they match, if any."""
    aligned: dict[FileSignature, list[str]] = {}
    for signature, paths in other_sigs.items():
        if signature not in basis_sigs:
            signature = next((s for s in basis_sigs if s.matches(signature)), signature)
        aligned.setdefault(signature, []).extend(paths)
    return aligned


def compare_groups(basis: FileGroup, other: FileGroup) -> GroupDifference:
    basis_sigs = _paths_by_signature(basis)
    other_sigs = _align_signatures(basis_sigs, _paths_by_signature(other))
    found: dict[str, list[FileDifference]] = {name: [] for name in SUBSET_ORDER}

    # Content present in both versions
    for signature in basis_sigs.keys() & other_sigs.keys():
        basis_paths = set(basis_sigs[signature])
        other_paths = set(other_sigs[signature])
        for path in basis_paths & other_paths:
            found["identical"].append(FileDifference(path, path, (signature,)))
        old_paths = sorted(basis_paths - other_paths)
        new_paths = sorted(other_paths - basis_paths)
        for old, new in zip(old_paths, new_paths):
            found["renamed"].append(FileDifference(old, new, (signature,)))
        for new in new_paths[len(old_paths):]:
            found["added"].append(FileDifference("", new, (signature,)))
        for old in old_paths[len(new_paths):]:
            found["deleted"].append(FileDifference(old, "", (signature,)))

    # Content present in one version only, matched up by path
    basis_only = {
        path: signature
        for signature in basis_sigs.keys() - other_sigs.keys()
        for path in basis_sigs[signature]
    }
    other_only = {
        path: signature
        for signature in other_sigs.keys() - basis_sigs.keys()
        for path in other_sigs[signature]
    }
    for path in basis_only.keys() & other_only.keys():
        found["modified"].append(
            FileDifference(path, path, (basis_only[path], other_only[path]))
        )
    for path in other_only.keys() - basis_only.keys():
        found["added"].append(FileDifference("", path, (other_only[path],)))
    for path in basis_only.keys() - other_only.keys():
        found["deleted"].append(FileDifference(path, "", (basis_only[path],)))

    subsets = tuple(
        SubsetDifference(
            change=name,
            files=tuple(sorted(found[name], key=lambda f: (f.basis_path or f.other_path, f.other_path))),
        )
        for name in SUBSET_ORDER
        if found[name]
    )
    difference_count = sum(len(s.files) for s in subsets if s.change != "identical")
    return GroupDifference(
        group_id=basis.group_id or other.group_id,
        difference_count=difference_count,
        subsets=subsets,
    )


def compare_inventories(basis: FileInventory, other: FileInventory) -> InventoryDifference:
    """Compare two full version inventories of the same object."""
    group_ids: list[str] = []
    for inventory in (basis, other):
        for group in inventory.groups:
            if group.group_id not in group_ids:
                group_ids.append(group.group_id)

    differences = []
    for group_id in group_ids:
        basis_group = basis.group(group_id) or FileGroup(group_id)
        other_group = other.group(group_id) or FileGroup(group_id)
        differences.append(compare_groups(basis_group, other_group))

    return InventoryDifference(
        basis_version=basis.version_id,
        other_version=other.version_id,
        group_differences=tuple(differences),
    )
