# tests/test_store.py
import hashlib

import pytest

from ocfl_export.delta import compute_delta
from ocfl_export.errors import StoreUnavailable
from ocfl_export.store import MoabStore, druid_tree

OBJECT_ID = "druid:bb123cd4567"


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def test_druid_tree_accepts_prefixed_and_bare_ids():
    expected = "bb/123/cd/4567/bb123cd4567"
    assert druid_tree("druid:bb123cd4567").as_posix() == expected
    assert druid_tree("bb123cd4567").as_posix() == expected
    with pytest.raises(StoreUnavailable):
        druid_tree("not-a-druid")


def test_resolves_object_in_storage_roots(sample_moab, tmp_path):
    storage_root, object_root = sample_moab
    empty_root = tmp_path / "empty"
    empty_root.mkdir()
    store = MoabStore([empty_root, storage_root])
    assert store.object_path(OBJECT_ID) == object_root
    assert store.object_path("bb123cd4567") == object_root
    with pytest.raises(StoreUnavailable):
        store.object_path("druid:zz999zz9999")


def test_versions(sample_moab):
    storage_root, _ = sample_moab
    store = MoabStore([storage_root])
    assert store.version_ids(OBJECT_ID) == [1, 2, 3]
    assert store.current_version(OBJECT_ID) == 3


def test_version_gaps_are_rejected(sample_moab):
    storage_root, object_root = sample_moab
    (object_root / "v0005").mkdir()
    with pytest.raises(StoreUnavailable):
        MoabStore([storage_root]).version_ids(OBJECT_ID)


def test_parses_version_inventory(sample_moab):
    storage_root, _ = sample_moab
    inventory = MoabStore([storage_root]).file_inventory(OBJECT_ID, 1, "version")
    assert inventory.object_id == OBJECT_ID
    assert inventory.version_id == 1
    assert inventory.type == "version"
    assert inventory.inventory_datetime == "2019-03-04T10:11:12Z"
    assert inventory.file_count == 3
    content = inventory.group("content").path_signatures()
    assert content["a.txt"].sha256 == sha256(b"alpha")
    assert content["a.txt"].md5 == hashlib.md5(b"alpha").hexdigest()
    assert content["a.txt"].size == 5


def test_parses_additions(sample_moab):
    storage_root, _ = sample_moab
    additions = MoabStore([storage_root]).file_inventory(OBJECT_ID, 3, "additions")
    assert [g.group_id for g in additions.groups] == ["metadata"]
    assert list(additions.group("metadata").path_signatures()) == ["versionMetadata.xml"]


def test_corrupt_inventory_is_store_unavailable(sample_moab):
    storage_root, object_root = sample_moab
    (object_root / "v0002" / "manifests" / "versionInventory.xml").write_text("<fileInventory")
    store = MoabStore([storage_root])
    with pytest.raises(StoreUnavailable) as excinfo:
        store.file_inventory(OBJECT_ID, 2, "version")
    assert excinfo.value.version == 2


def test_missing_version_and_mode(sample_moab):
    storage_root, _ = sample_moab
    store = MoabStore([storage_root])
    with pytest.raises(StoreUnavailable):
        store.file_inventory(OBJECT_ID, 9, "version")
    with pytest.raises(StoreUnavailable):
        store.file_inventory(OBJECT_ID, 1, "manifests")


def test_locate_renamed_file_points_at_original_storage(sample_moab):
    storage_root, object_root = sample_moab
    store = MoabStore([storage_root])
    location = store.locate_file("content", "docs/README.md", OBJECT_ID, 3)
    assert location == object_root / "v0001" / "data" / "content" / "docs" / "readme.md"
    with store.retrieve_file("content", "docs/README.md", OBJECT_ID, 3) as handle:
        assert handle.read() == b"# readme"
    with pytest.raises(StoreUnavailable):
        store.locate_file("content", "docs/readme.md", OBJECT_ID, 3)


def test_version_descriptions(sample_moab, moab_object):
    storage_root, _ = sample_moab
    assert MoabStore([storage_root]).version_descriptions(OBJECT_ID) == {
        1: "Initial version",
        2: "Added bravo",
        3: "Renamed readme",
    }

    plain_root, _ = moab_object({1: {"content/a.txt": b"a"}}, druid="cd456gh1234")
    assert MoabStore([plain_root]).version_descriptions("druid:cd456gh1234") == {}


def test_open_object_root_directly(sample_moab):
    _, object_root = sample_moab
    store, object_id = MoabStore.from_object_root(object_root)
    assert object_id == "bb123cd4567"
    assert store.current_version(object_id) == 3


def test_delta_against_moab_store(sample_moab):
    storage_root, _ = sample_moab
    store = MoabStore([storage_root])

    v2 = compute_delta(store, OBJECT_ID, 2).to_dict()
    assert v2["added"] == [{"content/b.txt": [sha256(b"bravo")]}]
    assert v2["modified"][0] == {"content/a.txt": [sha256(b"alpha"), sha256(b"alpha, revised")]}

    v3 = compute_delta(store, OBJECT_ID, 3).to_dict()
    assert v3["renamed"] == [{"content/docs/readme.md": [sha256(b"# readme")]}]
    assert list(v3["modified"][0]) == ["metadata/versionMetadata.xml"]
    assert len(v3["modified"][0]["metadata/versionMetadata.xml"]) == 2
