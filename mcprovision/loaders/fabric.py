from __future__ import annotations

from typing import Any, Callable, Iterable
import logging
import urllib.parse

from ..exceptions import VersionResolutionError
from ..http import invalid_response
from ..minecraft import ManifestVersion, Version, download_server_jar
from ..models import ServerInstallArgs
from ..utils import link_or_copy
from .base import LoaderInstallResult, ModLoader, finish_install
from .vanilla import link_server_jar

logger = logging.getLogger(__name__)

FABRIC_META = "https://meta.fabricmc.net/v2/versions"


def first_stable(
    entries: Iterable[Any],
    version_of: Callable[[Any], str],
    stable_of: Callable[[Any], bool],
    what: str,
) -> str:
    """The first entry flagged stable, else the first entry."""
    first: str | None = None
    for entry in entries:
        if stable_of(entry):
            return str(version_of(entry))
        if first is None:
            first = str(version_of(entry))
    if first is None:
        raise VersionResolutionError(
            f"could not find any {what} version for this Minecraft version"
        )
    return first


class FabricLoader(ModLoader):
    loader_id = "fabric"
    default_mod_provider = "modrinth"
    mods_folder = "mods"

    def minimum_java_version(self, manifest_version: ManifestVersion, full_version: Version) -> int:
        return max(full_version.java_major_version, 8)

    def _resolve_installer_version(self, args: ServerInstallArgs) -> str:
        logger.info("fetching fabric installer versions")
        url = f"{FABRIC_META}/installer"
        installers = args.http_client.fetch_with_etag(
            url,
            args.cache_dir / "fabric" / "installer_versions.json",
        )
        with invalid_response(url):
            return first_stable(
                installers,
                version_of=lambda entry: entry["version"],
                stable_of=lambda entry: bool(entry.get("stable")),
                what="installer",
            )

    def _resolve_loader_version(self, args: ServerInstallArgs) -> str:
        if args.fabric_loader_version:
            return args.fabric_loader_version
        logger.info("fetching fabric loader versions")
        mc_version = urllib.parse.quote(args.version_name, safe="")
        url = f"{FABRIC_META}/loader/{mc_version}"
        loaders = args.http_client.fetch_with_etag(
            url,
            args.cache_dir / "fabric" / f"loader_versions_{args.version_name}.json",
        )
        with invalid_response(url):
            return first_stable(
                loaders,
                version_of=lambda entry: entry["loader"]["version"],
                stable_of=lambda entry: bool(entry["loader"].get("stable")),
                what="loader",
            )

    def install(self, args: ServerInstallArgs) -> LoaderInstallResult:
        installer_version = self._resolve_installer_version(args)
        loader_version = self._resolve_loader_version(args)

        logger.info("downloading fabric server launcher")
        mc_version = urllib.parse.quote(args.version_name, safe="")
        launcher_jar = args.cache_dir / "fabric" / (
            f"fabric-server-launch-{args.version_name}-{loader_version}-{installer_version}.jar"
        )
        args.http_client.fetch_with_etag(
            f"{FABRIC_META}/loader/{mc_version}/{loader_version}/{installer_version}/server/jar",
            launcher_jar,
            parse=None,
        )

        server_jar = download_server_jar(args)
        link_server_jar(args, server_jar)
        link_or_copy(launcher_jar, args.instance_dir / "fabric-server-launch.jar")

        command = (
            f"{args.escaped_java_exe_name} -Dfabric.installer.server.gameJar=server.jar "
            "-jar fabric-server-launch.jar nogui"
        )
        return finish_install(args, command)
