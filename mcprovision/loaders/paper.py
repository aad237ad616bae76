from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import logging
import urllib.parse
import zipfile

from ..exceptions import InstallError, VersionResolutionError
from ..hashing import HashAlgorithm, HashWithAlgorithm
from ..http import invalid_response
from ..minecraft import ManifestVersion, Version, download_server_jar
from ..models import ServerInstallArgs
from ..subprocess_utils import run_checked
from ..utils import link_or_copy
from .base import LoaderInstallResult, ModLoader, finish_install

logger = logging.getLogger(__name__)

PAPER_API_BASE = "https://api.papermc.io/v2/projects/paper/versions"
DOWNLOAD_CONTEXT_ENTRY = "META-INF/download-context"

# Recommended Java changes at the releases of 1.12, 1.16.5 and 1.17.
TIME_JAVA_11 = datetime(2017, 6, 2, 13, 50, 27, tzinfo=timezone.utc)
TIME_JAVA_16 = datetime(2021, 1, 14, 16, 5, 32, tzinfo=timezone.utc)
TIME_JAVA_21 = datetime(2021, 6, 8, 11, 0, 40, tzinfo=timezone.utc)


def find_mojang_jar_name(paperclip_jar: Path) -> str | None:
    """Read the jar name paperclip expects in its cache from ``META-INF/download-context``."""
    with zipfile.ZipFile(paperclip_jar) as archive:
        try:
            raw = archive.read(DOWNLOAD_CONTEXT_ENTRY)
        except KeyError:
            return None
    fields = raw.decode("utf-8").split("\t", 2)
    if len(fields) < 3:
        raise InstallError(f"failed to read download context in {paperclip_jar}")
    return fields[2].strip()


class PaperLoader(ModLoader):
    loader_id = "paper"
    default_mod_provider = "hangar"
    mods_folder = "plugins"

    def minimum_java_version(self, manifest_version: ManifestVersion, full_version: Version) -> int:
        release_time = manifest_version.release_time
        if release_time < TIME_JAVA_11:
            return 8
        if release_time < TIME_JAVA_16:
            return 11
        if release_time < TIME_JAVA_21:
            return 16
        return max(full_version.java_major_version, 21)

    def _version_url(self, args: ServerInstallArgs) -> str:
        return f"{PAPER_API_BASE}/{urllib.parse.quote(args.version_name, safe='')}"

    def _resolve_build(self, args: ServerInstallArgs) -> int:
        if args.paper_build is not None:
            return args.paper_build
        logger.info("fetching paper builds")
        version_url = self._version_url(args)
        version_info = args.http_client.fetch_with_etag(
            version_url,
            args.cache_dir / "paper" / f"version-info-{args.version_name}.json",
        )
        with invalid_response(version_url):
            builds = [int(build) for build in version_info.get("builds", [])]
        if not builds:
            raise VersionResolutionError("no paper builds for this minecraft version")
        return max(builds)

    def install(self, args: ServerInstallArgs) -> LoaderInstallResult:
        paper_cache = args.cache_dir / "paper"
        build = self._resolve_build(args)

        logger.info("fetching paper build metadata")
        build_url = f"{self._version_url(args)}/builds/{build}"
        metadata = args.http_client.fetch_with_etag(
            build_url,
            paper_cache / f"build-metadata-{args.version_name}-{build}.json",
        )
        with invalid_response(build_url):
            application = (metadata.get("downloads") or {}).get("application") or {}
            if not application.get("name") or not application.get("sha256"):
                raise InstallError(f"paper build {build} metadata did not include an application download")
            expected = HashWithAlgorithm.from_hex(HashAlgorithm.SHA256, str(application["sha256"]))

        paperclip_jar = paper_cache / f"paperclip-{args.version_name}-{build}.jar"
        logger.info("downloading paperclip")
        with args.progress("downloading paperclip", None) as progress:
            args.http_client.download_verified(
                f"{build_url}/downloads/{application['name']}",
                paperclip_jar,
                expected,
                progress=progress,
            )

        server_jar = download_server_jar(args)
        mojang_jar_name = find_mojang_jar_name(paperclip_jar) or f"mojang_{args.version_name}.jar"

        args.instance_dir.mkdir(parents=True, exist_ok=True)
        link_or_copy(paperclip_jar, args.instance_dir / "paperclip.jar")
        paperclip_cache = args.instance_dir / "cache"
        paperclip_cache.mkdir()
        link_or_copy(server_jar, paperclip_cache / mojang_jar_name)

        logger.info("running paperclip")
        run_checked(
            [str(args.java_candidate.path), "-Dpaperclip.patchonly=true", "-jar", "paperclip.jar"],
            cwd=args.instance_dir,
            capture_output=False,
        )

        return finish_install(args, f"{args.escaped_java_exe_name} -jar paperclip.jar")
