from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping
import logging

from .exceptions import HashMismatch, InstallError, VersionResolutionError
from .hashing import HashAlgorithm, HashWithAlgorithm, hash_bytes
from .http import HttpClient, invalid_response, parse_json
from .utils import parse_timestamp

if TYPE_CHECKING:
    from .models import ServerInstallArgs

logger = logging.getLogger(__name__)

MOJANG_MANIFEST_URL = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"
DEFAULT_JAVA_MAJOR = 8


@dataclass(slots=True)
class ManifestVersion:
    id: str
    type: str
    url: str
    release_time: datetime
    sha1: HashWithAlgorithm

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ManifestVersion:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            url=str(data["url"]),
            release_time=parse_timestamp(str(data["releaseTime"])),
            sha1=HashWithAlgorithm.from_hex(HashAlgorithm.SHA1, str(data["sha1"])),
        )


@dataclass(slots=True)
class Manifest:
    latest_release: str
    latest_snapshot: str
    versions: list[ManifestVersion] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Manifest:
        latest = data.get("latest") or {}
        return cls(
            latest_release=str(latest.get("release", "")),
            latest_snapshot=str(latest.get("snapshot", "")),
            versions=[ManifestVersion.from_dict(entry) for entry in data.get("versions", [])],
        )

    def find(self, version_id: str) -> ManifestVersion:
        for version in self.versions:
            if version.id == version_id:
                return version
        raise VersionResolutionError(f"no such version: {version_id}")


@dataclass(slots=True)
class VersionDownload:
    url: str
    sha1: HashWithAlgorithm
    size: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VersionDownload:
        return cls(
            url=str(data["url"]),
            sha1=HashWithAlgorithm.from_hex(HashAlgorithm.SHA1, str(data["sha1"])),
            size=int(data["size"]) if data.get("size") is not None else None,
        )


@dataclass(slots=True)
class Version:
    java_major_version: int
    server: VersionDownload | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Version:
        server = (data.get("downloads") or {}).get("server")
        java = data.get("javaVersion") or {}
        return cls(
            java_major_version=int(java.get("majorVersion", DEFAULT_JAVA_MAJOR)),
            server=VersionDownload.from_dict(server) if server else None,
        )


def fetch_manifest(http_client: HttpClient, cache_dir: Path) -> Manifest:
    logger.info("fetching minecraft versions")
    data = http_client.fetch_with_etag(MOJANG_MANIFEST_URL, cache_dir / "version_manifest.json")
    with invalid_response(MOJANG_MANIFEST_URL):
        return Manifest.from_dict(data)


def fetch_version(
    http_client: HttpClient, cache_dir: Path, manifest_version: ManifestVersion
) -> Version:
    """Load the per-version metadata, reusing the cached copy while its SHA-1 still matches."""
    logger.info("fetching metadata for version %s", manifest_version.id)
    cache_file = cache_dir / "version_metadata" / f"{manifest_version.id}.json"
    if manifest_version.sha1.matches_file(cache_file):
        with invalid_response(manifest_version.url):
            return Version.from_dict(parse_json(cache_file.read_bytes()))

    payload = http_client.get_bytes(manifest_version.url)
    if hash_bytes(payload, HashAlgorithm.SHA1) != manifest_version.sha1.hash:
        raise HashMismatch(
            f"file downloaded from {manifest_version.url} did not match the expected sha1 hash"
        )
    cache_file.parent.mkdir(parents=True, exist_ok=True)
    cache_file.write_bytes(payload)
    with invalid_response(manifest_version.url):
        return Version.from_dict(parse_json(payload))


def download_server_jar(args: ServerInstallArgs) -> Path:
    server = args.full_version.server
    if server is None:
        raise InstallError(f"version {args.version_name} does not have a server download")
    server_jar = args.cache_dir / "jars" / f"{args.version_name}.jar"
    logger.info("downloading server jar")
    with args.progress("downloading server jar", server.size) as progress:
        args.http_client.download_verified(server.url, server_jar, server.sha1, progress=progress)
    return server_jar
