from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, ContextManager, Iterator, Mapping, Sequence, TypeVar

from .hashing import HashWithAlgorithm
from .http import HttpClient, ProgressCallback
from .java.locator import JavaCandidate
from .minecraft import ManifestVersion, Version
from .utils import Selector, escape_executable_name

T = TypeVar("T")

EulaPrompt = Callable[[], bool]
ProgressFactory = Callable[[str, "int | None"], ContextManager[ProgressCallback]]


def first_item(items: Sequence[T], prompt: str) -> T | None:
    return items[0] if items else None


def _ignore_progress(downloaded: int, total: int | None) -> None:
    return None


@contextmanager
def silent_progress(description: str, total: int | None) -> Iterator[ProgressCallback]:
    yield _ignore_progress


@dataclass(slots=True)
class ModMetadata:
    id: str
    name: str
    file_name: str
    hash: HashWithAlgorithm
    provider: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "file_name": self.file_name,
            "hash": self.hash.to_dict(),
            "provider": self.provider,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ModMetadata:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            file_name=str(data["file_name"]),
            hash=HashWithAlgorithm.from_dict(data["hash"]),
            provider=str(data["provider"]),
        )


@dataclass(slots=True)
class InstanceMetadata:
    loader: str
    minecraft_version: str
    mods: list[ModMetadata] = field(default_factory=list)

    def find_mod(self, mod_id: str) -> ModMetadata | None:
        for mod in self.mods:
            if mod.id == mod_id:
                return mod
        return None

    def put_mod(self, mod: ModMetadata) -> None:
        self.mods = [existing for existing in self.mods if existing.id != mod.id]
        self.mods.append(mod)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "loader": self.loader,
            "minecraft_version": self.minecraft_version,
        }
        if self.mods:
            payload["mods"] = [mod.to_dict() for mod in self.mods]
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InstanceMetadata:
        return cls(
            loader=str(data["loader"]),
            minecraft_version=str(data["minecraft_version"]),
            mods=[ModMetadata.from_dict(mod) for mod in data.get("mods", [])],
        )


@dataclass(slots=True)
class NewInstanceRequest:
    name: str
    version: str | None = None
    loader: str = "vanilla"
    skip_java_check: bool = False
    java_path: Path | None = None
    eula: bool = False
    paper_build: int | None = None
    fabric_loader_version: str | None = None
    config_template: Path | None = None
    selector: Selector = first_item
    eula_prompt: EulaPrompt | None = None
    progress: ProgressFactory = silent_progress


@dataclass(slots=True)
class NewInstanceResult:
    instance_dir: Path
    metadata: InstanceMetadata
    java: JavaCandidate


@dataclass(slots=True)
class AddModRequest:
    name: str
    instance_dir: Path = Path(".")
    provider: str | None = None
    force_search: bool = False
    skip_version_check: bool = False
    selector: Selector = first_item
    progress: ProgressFactory = silent_progress


@dataclass(slots=True)
class AddModResult:
    mod: ModMetadata
    up_to_date: bool = False


@dataclass(slots=True)
class ServerInstallArgs:
    http_client: HttpClient
    cache_dir: Path
    instance_dir: Path
    version_name: str
    manifest_version: ManifestVersion
    full_version: Version
    java_candidate: JavaCandidate
    eula: bool = False
    paper_build: int | None = None
    fabric_loader_version: str | None = None
    eula_prompt: EulaPrompt | None = None
    progress: ProgressFactory = silent_progress

    @property
    def escaped_java_exe_name(self) -> str:
        return escape_executable_name(str(self.java_candidate.path))


@dataclass(slots=True)
class AddModArgs:
    http_client: HttpClient
    cache_dir: Path
    instance_dir: Path
    instance_metadata: InstanceMetadata
    name: str
    mods_folder: str | None = None
    force_search: bool = False
    skip_version_check: bool = False
    selector: Selector = first_item
    progress: ProgressFactory = silent_progress
