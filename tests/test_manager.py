import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from mcprovision.exceptions import (
    IncompatibleJava,
    InstallError,
    InstanceMetadataError,
    ModConflict,
    ProviderUnsupportedError,
)
from mcprovision.hashing import HashAlgorithm, HashWithAlgorithm
from mcprovision.instance import INSTANCE_METADATA_FILE, load_instance_metadata, save_instance_metadata
from mcprovision.java import JavaCandidate, ParsedJavaVersion
from mcprovision.manager import ServerManager
from mcprovision.minecraft import MOJANG_MANIFEST_URL, ManifestVersion, Version
from mcprovision.models import AddModRequest, AddModResult, InstanceMetadata, ModMetadata, NewInstanceRequest
from mcprovision.utils import IS_WINDOWS, RUN_SCRIPT_NAME

VERSION_URL = "https://piston-meta.mojang.com/v1/packages/abc/1.20.1.json"
SERVER_URL = "https://piston-data.mojang.com/v1/objects/abc/server.jar"
VERSION_JSON = json.dumps(
    {
        "javaVersion": {"majorVersion": 17},
        "downloads": {"server": {"url": SERVER_URL, "sha1": "ef" * 20, "size": 6}},
    }
).encode("utf-8")


class _FakeHttp:
    def __init__(self) -> None:
        self.version_fetches = 0

    def fetch_with_etag(self, url, cache_file, parse=None):
        assert url == MOJANG_MANIFEST_URL
        return {
            "latest": {"release": "1.20.1", "snapshot": "23w31a"},
            "versions": [
                {
                    "id": "1.20.1",
                    "type": "release",
                    "url": VERSION_URL,
                    "releaseTime": "2023-06-12T13:25:51+00:00",
                    "sha1": hashlib.sha1(VERSION_JSON).hexdigest(),
                }
            ],
        }

    def get_bytes(self, url):
        assert url == VERSION_URL
        self.version_fetches += 1
        return VERSION_JSON

    def download_verified(self, url, destination, expected, progress=None):
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"server")
        return destination


class _FakeProvider:
    provider_id = "modrinth"

    def __init__(self, result: AddModResult) -> None:
        self.result = result
        self.calls = []

    def add_mod(self, args):
        self.calls.append(args)
        return self.result


def _java(version: str) -> JavaCandidate:
    return JavaCandidate(Path(f"/jvm/{version}/bin/java"), ParsedJavaVersion.parse(version))


def _manager(tmp_path, javas=None, http=None) -> ServerManager:
    javas = [_java("17.0.8")] if javas is None else javas
    return ServerManager(tmp_path / "cache", http_client=http or _FakeHttp(), java_finder=lambda probe: javas)


def _mod(mod_id="AANobbMI", file_name="sodium-0.5.jar") -> ModMetadata:
    return ModMetadata(
        id=mod_id,
        name="sodium",
        file_name=file_name,
        hash=HashWithAlgorithm.from_hex(HashAlgorithm.SHA512, "ab" * 64),
        provider="modrinth",
    )


def test_required_java_version_names_the_stricter_source():
    registry = ServerManager(Path("cache"))._loaders
    manifest_version = ManifestVersion(
        id="1.20.1",
        type="release",
        url=VERSION_URL,
        release_time=datetime(2023, 6, 12, tzinfo=timezone.utc),
        sha1=HashWithAlgorithm(HashAlgorithm.SHA1, bytes(20)),
    )
    version = Version(java_major_version=17)

    assert ServerManager.required_java_version(registry["vanilla"], manifest_version, version) == (
        17,
        "minecraft 1.20.1",
    )
    assert ServerManager.required_java_version(registry["paper"], manifest_version, version) == (
        21,
        "loader paper",
    )


def test_new_instance_creates_vanilla_server(tmp_path):
    http = _FakeHttp()
    manager = _manager(tmp_path, javas=[_java("1.8.0_372"), _java("17.0.8")], http=http)
    instance_dir = tmp_path / "survival"

    result = manager.new_instance(NewInstanceRequest(name=str(instance_dir), eula=True))

    assert result.java.version.major == 17
    assert (instance_dir / RUN_SCRIPT_NAME).read_text(encoding="utf-8").startswith(
        str(Path("/jvm/17.0.8/bin/java")) + " -jar server.jar nogui"
    )
    assert json.loads((instance_dir / INSTANCE_METADATA_FILE).read_text(encoding="utf-8")) == {
        "loader": "vanilla",
        "minecraft_version": "1.20.1",
    }
    assert (instance_dir / "eula.txt").exists()
    assert (tmp_path / "cache" / "version_metadata" / "1.20.1.json").read_bytes() == VERSION_JSON
    properties = (instance_dir / "server.properties").read_text(encoding="utf-8")
    assert "motd=A Minecraft Server" in properties
    assert properties.startswith("sync-chunk-writes=false") == (not IS_WINDOWS)


def test_new_instance_reuses_cached_version_metadata(tmp_path):
    http = _FakeHttp()
    manager = _manager(tmp_path, http=http)

    manager.new_instance(NewInstanceRequest(name=str(tmp_path / "one"), eula=True))
    manager.new_instance(NewInstanceRequest(name=str(tmp_path / "two"), eula=True))

    assert http.version_fetches == 1


def test_new_instance_copies_config_template(tmp_path):
    template = tmp_path / "template"
    template.mkdir()
    (template / "ops.json").write_text("[]", encoding="utf-8")

    _manager(tmp_path).new_instance(
        NewInstanceRequest(name=str(tmp_path / "server"), eula=True, config_template=template)
    )

    assert (tmp_path / "server" / "ops.json").read_text(encoding="utf-8") == "[]"
    assert not (tmp_path / "server" / "server.properties").exists()


def test_new_instance_refuses_existing_directory(tmp_path):
    (tmp_path / "server").mkdir()
    with pytest.raises(InstallError, match="already exists"):
        _manager(tmp_path).new_instance(NewInstanceRequest(name=str(tmp_path / "server")))


def test_new_instance_without_compatible_java(tmp_path):
    manager = _manager(tmp_path, javas=[_java("1.8.0_372")])
    with pytest.raises(IncompatibleJava, match="minecraft 1.20.1, need at least java 17"):
        manager.new_instance(NewInstanceRequest(name=str(tmp_path / "server")))
    assert not (tmp_path / "server").exists()


def test_new_instance_rejects_old_explicit_java(tmp_path):
    java = tmp_path / "jdk8" / "bin" / "java"
    java.parent.mkdir(parents=True)
    java.write_text("", encoding="utf-8")
    (tmp_path / "jdk8" / "release").write_text('JAVA_VERSION="1.8.0_372"\n', encoding="utf-8")

    with pytest.raises(IncompatibleJava, match="specified java is not compatible"):
        _manager(tmp_path).new_instance(NewInstanceRequest(name=str(tmp_path / "server"), java_path=java))


def test_new_instance_rejects_unknown_loader(tmp_path):
    with pytest.raises(InstallError, match="Unsupported loader 'forge'"):
        _manager(tmp_path).new_instance(NewInstanceRequest(name=str(tmp_path / "server"), loader="forge"))


def test_add_mod_saves_installed_mod(tmp_path):
    save_instance_metadata(tmp_path, InstanceMetadata(loader="fabric", minecraft_version="1.20.1"))
    manager = _manager(tmp_path)
    provider = _FakeProvider(AddModResult(mod=_mod()))
    manager._mod_providers["modrinth"] = provider

    result = manager.add_mod(AddModRequest(name="sodium", instance_dir=tmp_path))

    assert result.mod == _mod()
    assert provider.calls[0].mods_folder == "mods"
    assert load_instance_metadata(tmp_path).mods == [_mod()]


def test_add_mod_up_to_date_leaves_metadata_alone(tmp_path):
    save_instance_metadata(tmp_path, InstanceMetadata(loader="fabric", minecraft_version="1.20.1"))
    before = (tmp_path / INSTANCE_METADATA_FILE).read_text(encoding="utf-8")
    manager = _manager(tmp_path)
    manager._mod_providers["modrinth"] = _FakeProvider(AddModResult(mod=_mod(), up_to_date=True))

    assert manager.add_mod(AddModRequest(name="sodium", instance_dir=tmp_path)).up_to_date
    assert (tmp_path / INSTANCE_METADATA_FILE).read_text(encoding="utf-8") == before


def test_add_mod_conflict_does_not_touch_metadata(tmp_path):
    api = "https://api.modrinth.com/v2/project/sodium"

    class _ModrinthHttp:
        documents = {
            api: {"id": "AANobbMI", "slug": "sodium", "title": "Sodium", "game_versions": ["1.20.1"]},
            f"{api}/members": [],
            f"{api}/version": [
                {
                    "name": "0.5",
                    "date_published": "2023-06-01T00:00:00Z",
                    "files": [
                        {
                            "url": "https://cdn.modrinth.com/sodium-0.5.jar",
                            "filename": "sodium-0.5.jar",
                            "hashes": {"sha512": "cd" * 64},
                        }
                    ],
                }
            ],
        }

        def get_json(self, url, params=None):
            return self.documents[url]

        def get_json_or_none(self, url, params=None):
            return self.documents.get(url)

        def download_verified(self, *args, **kwargs):
            raise AssertionError("nothing should be downloaded")

    save_instance_metadata(
        tmp_path,
        InstanceMetadata(loader="fabric", minecraft_version="1.20.1", mods=[_mod(mod_id="other")]),
    )
    before = (tmp_path / INSTANCE_METADATA_FILE).read_text(encoding="utf-8")

    with pytest.raises(ModConflict):
        _manager(tmp_path, http=_ModrinthHttp()).add_mod(AddModRequest(name="sodium", instance_dir=tmp_path))

    assert (tmp_path / INSTANCE_METADATA_FILE).read_text(encoding="utf-8") == before


def test_add_mod_on_vanilla_is_unsupported(tmp_path):
    save_instance_metadata(tmp_path, InstanceMetadata(loader="vanilla", minecraft_version="1.20.1"))
    with pytest.raises(ProviderUnsupportedError, match="cannot install mods on loader 'vanilla'"):
        _manager(tmp_path).add_mod(AddModRequest(name="sodium", instance_dir=tmp_path))


def test_add_mod_with_hangar_is_unsupported(tmp_path):
    save_instance_metadata(tmp_path, InstanceMetadata(loader="paper", minecraft_version="1.20.1"))
    with pytest.raises(ProviderUnsupportedError, match="hangar"):
        _manager(tmp_path).add_mod(AddModRequest(name="worldedit", instance_dir=tmp_path))


def test_add_mod_with_unknown_loader_in_metadata(tmp_path):
    save_instance_metadata(tmp_path, InstanceMetadata(loader="forge", minecraft_version="1.20.1"))
    with pytest.raises(InstanceMetadataError, match="forge"):
        _manager(tmp_path).add_mod(AddModRequest(name="sodium", instance_dir=tmp_path))
