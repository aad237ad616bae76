import json

import pytest

from mcprovision.exceptions import InstanceMetadataError
from mcprovision.hashing import HashAlgorithm, HashWithAlgorithm
from mcprovision.instance import INSTANCE_METADATA_FILE, load_instance_metadata, save_instance_metadata
from mcprovision.models import InstanceMetadata, ModMetadata


def _mod(mod_id: str, file_name: str) -> ModMetadata:
    return ModMetadata(
        id=mod_id,
        name=file_name.split("-")[0],
        file_name=file_name,
        hash=HashWithAlgorithm.from_hex(HashAlgorithm.SHA1, "ab" * 20),
        provider="modrinth",
    )


def test_metadata_without_mods_omits_the_key(tmp_path):
    save_instance_metadata(tmp_path, InstanceMetadata(loader="vanilla", minecraft_version="1.20.1"))

    data = json.loads((tmp_path / INSTANCE_METADATA_FILE).read_text(encoding="utf-8"))

    assert data == {"loader": "vanilla", "minecraft_version": "1.20.1"}


def test_metadata_with_mods_keeps_field_names(tmp_path):
    metadata = InstanceMetadata(loader="fabric", minecraft_version="1.20.1", mods=[_mod("P7dR8mSH", "fabric-api-0.90.jar")])
    path = save_instance_metadata(tmp_path, metadata)

    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["mods"] == [
        {
            "id": "P7dR8mSH",
            "name": "fabric",
            "file_name": "fabric-api-0.90.jar",
            "hash": {"algorithm": "sha1", "hash": "ab" * 20},
            "provider": "modrinth",
        }
    ]
    assert load_instance_metadata(tmp_path) == metadata


def test_put_mod_replaces_entry_with_same_id():
    metadata = InstanceMetadata(loader="fabric", minecraft_version="1.20.1", mods=[_mod("a", "a-1.jar"), _mod("b", "b-1.jar")])

    metadata.put_mod(_mod("a", "a-2.jar"))

    assert [(mod.id, mod.file_name) for mod in metadata.mods] == [("b", "b-1.jar"), ("a", "a-2.jar")]
    assert metadata.find_mod("a").file_name == "a-2.jar"
    assert metadata.find_mod("c") is None


def test_load_missing_metadata_fails(tmp_path):
    with pytest.raises(InstanceMetadataError):
        load_instance_metadata(tmp_path)


def test_load_invalid_metadata_fails(tmp_path):
    (tmp_path / INSTANCE_METADATA_FILE).write_text('{"loader": "fabric"}', encoding="utf-8")
    with pytest.raises(InstanceMetadataError):
        load_instance_metadata(tmp_path)
