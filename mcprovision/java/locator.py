from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping
import logging
import os
import sys

from ..exceptions import McProvisionError
from ..utils import is_not_found
from .probe import VersionProbe
from .registry import windows_registry_candidates
from .version import ParsedJavaVersion

logger = logging.getLogger(__name__)

JAVA_EXE_NAME = "javaw.exe" if os.name == "nt" else "java"

UNIX_JVM_DIRS = (
    "/usr/java",
    "/usr/lib/jvm",
    "/usr/lib64/jvm",
    "/usr/lib32/jvm",
    "/opt/jdk",
    "/opt/jdks",
    "/app/jdk",
)
# Relative to the user's home directory.
USER_JVM_DIRS = (".jdks", ".sdkman/candidates/java", ".gradle/jdks")

MACOS_FIXED_CANDIDATES = (
    "/Applications/Xcode.app/Contents/Applications/Application Loader.app/Contents/MacOS/itms/java/bin/java",
    "/Library/Internet Plug-Ins/JavaAppletPlugin.plugin/Contents/Home/bin/java",
    "/System/Library/Frameworks/JavaVM.framework/Versions/Current/Commands/java",
)
MACOS_JVMS_DIR = "/System/Library/Java/JavaVirtualMachines"

MINECRAFT_STORE_PACKAGE = "Microsoft.4297127D64EC6_8wekyb3d8bbwe"

RELEASE_VERSION_PREFIX = 'JAVA_VERSION="'


@dataclass(slots=True)
class JavaCandidate:
    path: Path
    version: ParsedJavaVersion

    def __str__(self) -> str:
        return f"{self.path} ({self.version})"


def _list_dir(directory: Path) -> list[Path]:
    try:
        return sorted(directory.iterdir())
    except OSError as exc:
        if is_not_found(exc):
            return []
        raise


def scan_jvm_dir(directory: Path) -> list[Path]:
    candidates: list[Path] = []
    for entry in _list_dir(directory):
        candidates.append(entry / "jre" / "bin" / "java")
        candidates.append(entry / "bin" / "java")
    return candidates


def _unix_candidates(home: Path, environ: Mapping[str, str]) -> list[Path]:
    snap = environ.get("SNAP")
    directories = [Path(path) for path in UNIX_JVM_DIRS]
    directories.extend(home / path for path in USER_JVM_DIRS)

    candidates: list[Path] = []
    for directory in directories:
        candidates.extend(scan_jvm_dir(directory))
        if snap:
            # snaps install under $SNAP with the usual layout
            candidates.extend(scan_jvm_dir(Path(snap) / directory.relative_to(directory.anchor)))
    return candidates


def _macos_candidates(home: Path) -> list[Path]:
    candidates = [Path(path) for path in MACOS_FIXED_CANDIDATES]
    for entry in _list_dir(Path(MACOS_JVMS_DIR)):
        candidates.append(entry / "Contents" / "Home" / "bin" / "java")
        candidates.append(entry / "Contents" / "Commands" / "java")
    candidates.extend(scan_jvm_dir(home / ".sdkman" / "candidates" / "java"))
    return candidates


def platform_candidates(platform: str, home: Path, environ: Mapping[str, str]) -> list[Path]:
    if platform == "win32":
        return windows_registry_candidates()
    if platform == "darwin":
        return _macos_candidates(home)
    return _unix_candidates(home, environ)


def launcher_runtime_dirs(platform: str, home: Path, environ: Mapping[str, str]) -> list[Path]:
    if platform == "win32":
        return [
            Path(environ.get("APPDATA", "")) / ".minecraft" / "runtime",
            Path(environ.get("LOCALAPPDATA", ""))
            / "Packages"
            / MINECRAFT_STORE_PACKAGE
            / "LocalCache"
            / "Local"
            / "runtime",
        ]
    if platform == "darwin":
        return [home / "Library" / "Application Support" / "minecraft" / "runtime"]
    return [home / ".minecraft" / "runtime"]


def scan_launcher_runtimes(roots: Iterable[Path]) -> list[Path]:
    """Breadth-first search for ``bin`` directories below the launcher runtime roots.

    A branch stops at the first directory that has a ``bin`` child.
    """
    pending = deque(roots)
    javas: list[Path] = []
    while pending:
        directory = pending.popleft()
        entries = _list_dir(directory)
        bin_dir = next((entry for entry in entries if entry.name == "bin"), None)
        if bin_dir is not None:
            javas.append(bin_dir / JAVA_EXE_NAME)
        else:
            pending.extend(entries)
    return javas


def environment_candidates(environ: Mapping[str, str]) -> list[Path]:
    candidates: list[Path] = []
    for entry in environ.get("PATH", "").split(os.pathsep):
        if entry:
            candidates.append(Path(entry) / JAVA_EXE_NAME)
    java_home = environ.get("JAVA_HOME")
    if java_home:
        candidates.append(Path(java_home) / "bin" / JAVA_EXE_NAME)
    return candidates


def canonicalize_candidates(candidates: Iterable[Path]) -> list[Path]:
    """Resolve candidates, dropping missing paths and later duplicates."""
    seen: set[Path] = set()
    paths: list[Path] = []
    for candidate in candidates:
        try:
            canonical = candidate.resolve(strict=True)
        except OSError as exc:
            if is_not_found(exc):
                continue
            raise
        if canonical in seen:
            continue
        seen.add(canonical)
        paths.append(canonical)
    return paths


def find_java_paths(
    platform: str | None = None,
    home: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> list[Path]:
    platform = platform or sys.platform
    home = home or Path.home()
    environ = os.environ if environ is None else environ

    candidates = platform_candidates(platform, home, environ)
    candidates.extend(scan_launcher_runtimes(launcher_runtime_dirs(platform, home, environ)))
    candidates.extend(environment_candidates(environ))
    return canonicalize_candidates(candidates)


def read_release_version(java_path: Path) -> str | None:
    release_path = java_path.parent.parent / "release"
    try:
        handle = release_path.open("r", encoding="utf-8", errors="replace")
    except OSError as exc:
        if is_not_found(exc):
            return None
        raise
    with handle:
        for line in handle:
            line = line.rstrip("\r\n")
            if (
                line.startswith(RELEASE_VERSION_PREFIX)
                and line.endswith('"')
                and len(line) > len(RELEASE_VERSION_PREFIX)
            ):
                return line[len(RELEASE_VERSION_PREFIX) : -1]
    return None


def java_version_string(java_path: Path, probe: VersionProbe) -> str:
    version = read_release_version(java_path)
    if version is not None:
        return version
    logger.debug("No release file for %s, running version check", java_path)
    return probe.java_version(java_path)


def create_java_candidate_for_path(path: Path, probe: VersionProbe | None = None) -> JavaCandidate:
    if probe is None:
        with VersionProbe() as owned_probe:
            return create_java_candidate_for_path(path, owned_probe)
    version = ParsedJavaVersion.parse(java_version_string(path, probe))
    return JavaCandidate(path=path, version=version)


def find_java_candidates(
    probe: VersionProbe | None = None,
    paths: Iterable[Path] | None = None,
) -> list[JavaCandidate]:
    """Discover Java installs and read their versions.

    A candidate whose version cannot be determined is logged and skipped.
    """
    if probe is None:
        with VersionProbe() as owned_probe:
            return find_java_candidates(owned_probe, paths)

    if paths is None:
        paths = find_java_paths()
    candidates: list[JavaCandidate] = []
    for path in paths:
        try:
            candidates.append(create_java_candidate_for_path(path, probe))
        except (OSError, McProvisionError) as exc:
            logger.warning("Skipping Java candidate %s: %s", path, exc)
            continue
        logger.debug("Found %s", candidates[-1])
    return candidates
