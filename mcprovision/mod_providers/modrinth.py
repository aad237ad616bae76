from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping
import logging
import urllib.parse

from ..exceptions import (
    ModConflict,
    ModNotFoundError,
    ProviderUnsupportedError,
    VersionResolutionError,
)
from ..hashing import HashAlgorithm, HashWithAlgorithm, hash_file
from ..http import HttpClient, invalid_response
from ..models import AddModArgs, AddModResult, ModMetadata
from ..utils import LINE_ENDING, is_not_found, parse_timestamp, select_from_list
from .base import ModProvider

logger = logging.getLogger(__name__)

MODRINTH_API = "https://api.modrinth.com/v2"
SEARCH_URL = f"{MODRINTH_API}/search"

SLUG_PUNCTUATION = frozenset("!@$()`.+,\"\\-'")
CLIENT_ONLY = "unsupported"


def is_valid_slug(slug: str) -> bool:
    if not 3 <= len(slug) <= 64:
        return False
    return all(char.isascii() and (char.isalnum() or char in SLUG_PUNCTUATION) for char in slug)


def _project_url(slug: str) -> str:
    return f"{MODRINTH_API}/project/{urllib.parse.quote(slug, safe='')}"


@dataclass(slots=True)
class Project:
    id: str
    slug: str
    title: str
    game_versions: list[str] = field(default_factory=list)
    loaders: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Project:
        return cls(
            id=str(data["id"]),
            slug=str(data["slug"]),
            title=str(data.get("title", "")),
            game_versions=[str(v) for v in data.get("game_versions") or []],
            loaders=[str(v) for v in data.get("loaders") or []],
        )


@dataclass(slots=True)
class SearchHit:
    slug: str
    title: str
    author: str
    description: str = ""
    server_side: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchHit:
        return cls(
            slug=str(data["slug"]),
            title=str(data.get("title", "")),
            author=str(data.get("author", "")),
            description=str(data.get("description") or ""),
            server_side=str(data.get("server_side") or ""),
        )

    @property
    def client_only(self) -> bool:
        return self.server_side == CLIENT_ONLY

    def __str__(self) -> str:
        text = f"{self.slug} ({self.title}) by {self.author}"
        if self.description:
            text += f"{LINE_ENDING}   {self.description}"
        if self.client_only:
            text += f"{LINE_ENDING}   warning: client-side only"
        return text


@dataclass(slots=True)
class ProjectFile:
    url: str
    filename: str
    size: int | None = None
    file_type: str | None = None
    hashes: dict[HashAlgorithm, HashWithAlgorithm] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProjectFile:
        raw_hashes = data.get("hashes") or {}
        hashes = {
            algorithm: HashWithAlgorithm.from_hex(algorithm, str(raw_hashes[algorithm.value]))
            for algorithm in (HashAlgorithm.SHA1, HashAlgorithm.SHA512)
            if raw_hashes.get(algorithm.value) is not None
        }
        return cls(
            url=str(data["url"]),
            filename=str(data["filename"]),
            size=int(data["size"]) if data.get("size") is not None else None,
            file_type=data.get("file_type"),
            hashes=hashes,
        )

    @property
    def is_regular(self) -> bool:
        return self.file_type is None

    def hash_for(self, algorithm: HashAlgorithm) -> HashWithAlgorithm | None:
        return self.hashes.get(algorithm)

    def preferred_hash(self) -> HashWithAlgorithm | None:
        return self.hash_for(HashAlgorithm.SHA512) or self.hash_for(HashAlgorithm.SHA1)


@dataclass(slots=True)
class ProjectVersion:
    name: str
    date_published: datetime
    files: list[ProjectFile] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProjectVersion:
        return cls(
            name=str(data.get("name", "")),
            date_published=parse_timestamp(str(data["date_published"])),
            files=[ProjectFile.from_dict(entry) for entry in data.get("files", [])],
        )


def find_project(http_client: HttpClient, slug: str) -> Project | None:
    url = _project_url(slug)
    data = http_client.get_json_or_none(url)
    if data is None:
        return None
    with invalid_response(url):
        return Project.from_dict(data)


def get_team_members(http_client: HttpClient, slug: str) -> list[tuple[str, str]]:
    url = f"{_project_url(slug)}/members"
    members = http_client.get_json(url)
    with invalid_response(url):
        return [(str(member["user"]["username"]), str(member.get("role", ""))) for member in members]


def search_for_mods(http_client: HttpClient, query: str, loader: str) -> list[SearchHit]:
    results = http_client.get_json(
        SEARCH_URL,
        params={
            "query": query,
            "facets": f'[["categories:{loader}"],["project_type:mod"]]',
        },
    )
    with invalid_response(SEARCH_URL):
        return [SearchHit.from_dict(hit) for hit in results.get("hits", [])]


def get_project_versions(
    http_client: HttpClient,
    slug: str,
    loader: str,
    minecraft_version: str,
    skip_version_check: bool = False,
) -> list[ProjectVersion]:
    params = {"loaders": f'["{loader}"]'}
    if not skip_version_check:
        escaped = minecraft_version.replace("\\", "\\\\").replace('"', '\\"')
        params["game_versions"] = f'["{escaped}"]'
    url = f"{_project_url(slug)}/version"
    versions = http_client.get_json(url, params=params)
    with invalid_response(url):
        return [ProjectVersion.from_dict(entry) for entry in versions]


def _log_installing(project: Project, members: list[tuple[str, str]], performed_search: bool) -> None:
    logger.info("installing %s (%s, %s)", project.slug, project.id, project.title)
    if members:
        logger.info("by:")
        for username, role in members:
            logger.info("- %s (%s)", username, role)
    if project.game_versions:
        logger.info("supported minecraft versions:")
        for version in project.game_versions:
            logger.info("- %s", version)
    else:
        logger.info("no supported minecraft versions")
    if project.loaders:
        logger.info("supported loaders:")
        for loader in project.loaders:
            logger.info("- %s", loader)
    if not performed_search:
        logger.info("if this is not the right mod, force a search with -s")


def _hash_matches(existing: ModMetadata, project_file: ProjectFile) -> bool:
    remote = project_file.hash_for(existing.hash.algorithm)
    return remote is not None and remote.hash == existing.hash.hash


class ModrinthProvider(ModProvider):
    provider_id = "modrinth"

    def _resolve_project(self, args: AddModArgs) -> tuple[Project, bool]:
        project = None
        if not args.force_search and is_valid_slug(args.name):
            project = find_project(args.http_client, args.name)
        if project is not None:
            return project, False

        hits = search_for_mods(args.http_client, args.name, args.instance_metadata.loader)
        hits.sort(key=lambda hit: hit.client_only)
        chosen = select_from_list(
            hits,
            f"mod {args.name} was not found, but similar results were found. Did you mean:",
            args.selector,
        )
        if chosen is None:
            raise ModNotFoundError(
                f"mod {args.name} was not found, and no similar results were found."
            )
        project = find_project(args.http_client, chosen.slug)
        if project is None:
            raise ModNotFoundError(f"mod {args.name} was not found")
        return project, True

    def add_mod(self, args: AddModArgs) -> AddModResult:
        metadata = args.instance_metadata
        project, performed_search = self._resolve_project(args)
        _log_installing(project, get_team_members(args.http_client, project.slug), performed_search)

        if project.game_versions and metadata.minecraft_version not in project.game_versions:
            if not args.skip_version_check:
                raise VersionResolutionError(
                    f"mod does not support minecraft version {metadata.minecraft_version}"
                )
            logger.warning("mod does not support minecraft version %s", metadata.minecraft_version)

        versions = get_project_versions(
            args.http_client,
            project.slug,
            metadata.loader,
            metadata.minecraft_version,
            args.skip_version_check,
        )
        if not versions:
            raise ModNotFoundError("mod does not have any matching versions")
        versions.sort(key=lambda version: version.date_published, reverse=True)
        picked = next(
            ((version, file) for version in versions for file in version.files if file.is_regular),
            None,
        )
        if picked is None:
            raise ModNotFoundError("mod does not have any matching files")
        version, project_file = picked

        if args.mods_folder is None:
            raise ProviderUnsupportedError(f"cannot install mods on loader '{metadata.loader}'")
        mods_dir = args.instance_dir / args.mods_folder

        existing = next(
            (
                mod
                for mod in metadata.mods
                if mod.provider == self.provider_id and mod.id == project.id
            ),
            None,
        )
        if (
            existing is not None
            and existing.file_name == project_file.filename
            and _hash_matches(existing, project_file)
        ):
            logger.info("mod is already up-to-date")
            return AddModResult(mod=existing, up_to_date=True)

        for mod in metadata.mods:
            if mod.id != project.id and mod.file_name == project_file.filename:
                raise ModConflict(
                    f"mod conflicts with existing mod {mod.id} ({mod.name}), "
                    f"which also has the filename '{mod.file_name}'"
                )

        mods_dir.mkdir(parents=True, exist_ok=True)
        mod_path = mods_dir / project_file.filename
        expected = project_file.preferred_hash()
        with args.progress(f"downloading {project.slug} {version.name}", project_file.size) as progress:
            if expected is not None:
                args.http_client.download_verified(
                    project_file.url, mod_path, expected, progress=progress
                )
            else:
                args.http_client.download(project_file.url, mod_path, progress=progress)
                expected = HashWithAlgorithm(
                    HashAlgorithm.SHA512, hash_file(mod_path, HashAlgorithm.SHA512)
                )

        if existing is not None and existing.file_name != project_file.filename:
            try:
                (mods_dir / existing.file_name).unlink()
            except OSError as exc:
                if not is_not_found(exc):
                    raise

        return AddModResult(
            mod=ModMetadata(
                id=project.id,
                name=project.slug,
                file_name=project_file.filename,
                hash=expected,
                provider=self.provider_id,
            )
        )
