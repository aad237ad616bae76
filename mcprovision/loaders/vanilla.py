from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import logging

from ..minecraft import ManifestVersion, Version, download_server_jar
from ..models import ServerInstallArgs
from ..utils import RESOURCES_DIR, link_or_copy
from .base import LoaderInstallResult, ModLoader, finish_install

logger = logging.getLogger(__name__)

TIME_13W39A = datetime(2013, 9, 26, 15, 11, 19, tzinfo=timezone.utc)
TIME_17W15A = datetime(2017, 4, 12, 9, 30, 50, tzinfo=timezone.utc)
TIME_1_17_PRE1 = datetime(2021, 5, 27, 9, 39, 21, tzinfo=timezone.utc)
TIME_1_18_1_RC3 = datetime(2021, 12, 10, 3, 36, 38, tzinfo=timezone.utc)

LOG4J_CONFIG_17_111 = "log4j2_17-111.xml"
LOG4J_CONFIG_112_116 = "log4j2_112-116.xml"


def log4j_mitigation(release_time: datetime) -> tuple[str, str | None]:
    """Return the JVM flag (with a trailing space) and the config file it needs.

    Versions released outside the vulnerable window get an empty flag.
    """
    if not TIME_13W39A <= release_time < TIME_1_18_1_RC3:
        return "", None
    if release_time < TIME_17W15A:
        return f"-Dlog4j.configurationFile={LOG4J_CONFIG_17_111} ", LOG4J_CONFIG_17_111
    if release_time < TIME_1_17_PRE1:
        return f"-Dlog4j.configurationFile={LOG4J_CONFIG_112_116} ", LOG4J_CONFIG_112_116
    return "-Dlog4j2.formatMsgNoLookups=true ", None


def apply_log4j_fix(args: ServerInstallArgs) -> str:
    flag, config_name = log4j_mitigation(args.manifest_version.release_time)
    if config_name is not None:
        (args.instance_dir / config_name).write_bytes((RESOURCES_DIR / config_name).read_bytes())
    if flag:
        logger.debug("Applying log4j mitigation: %s", flag.strip())
    return flag


def link_server_jar(args: ServerInstallArgs, server_jar: Path) -> None:
    args.instance_dir.mkdir(parents=True, exist_ok=True)
    link_or_copy(server_jar, args.instance_dir / "server.jar")


class VanillaLoader(ModLoader):
    loader_id = "vanilla"

    def minimum_java_version(self, manifest_version: ManifestVersion, full_version: Version) -> int:
        return full_version.java_major_version

    def install(self, args: ServerInstallArgs) -> LoaderInstallResult:
        server_jar = download_server_jar(args)
        link_server_jar(args, server_jar)
        command = f"{args.escaped_java_exe_name} {apply_log4j_fix(args)}-jar server.jar nogui"
        return finish_install(args, command)
