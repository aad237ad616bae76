from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
import logging
import sys

logger = logging.getLogger(__name__)

WINDOWS_JAVA_EXE = "javaw.exe"


class RegistryView(Enum):
    X64 = 0x0100  # KEY_WOW64_64KEY
    X86 = 0x0200  # KEY_WOW64_32KEY


@dataclass(frozen=True, slots=True)
class VendorKey:
    """Where one vendor records its Java installs under HKEY_LOCAL_MACHINE.

    Every direct sub key of ``key`` (with ``sub_key_suffix`` appended) is an
    install whose home directory is stored in the ``value_name`` value.
    """

    name: str
    key: str
    value_name: str
    sub_key_suffix: str = ""
    x64_only: bool = False


_ADOPTIUM_VALUE = "Path"
_ADOPTIUM_SUFFIX = "\\hotspot\\MSI"

ORACLE_LEGACY_JRE = VendorKey("oracle-legacy-jre", "SOFTWARE\\JavaSoft\\Java Runtime Environment", "JavaHome")
ORACLE_LEGACY_JDK = VendorKey("oracle-legacy-jdk", "SOFTWARE\\JavaSoft\\Java Development Kit", "JavaHome")
ORACLE_JRE = VendorKey("oracle-jre", "SOFTWARE\\JavaSoft\\JRE", "JavaHome")
ORACLE_JDK = VendorKey("oracle-jdk", "SOFTWARE\\JavaSoft\\JDK", "JavaHome")
ADOPTOPENJDK_JRE = VendorKey("adoptopenjdk-jre", "SOFTWARE\\AdoptOpenJDK\\JRE", _ADOPTIUM_VALUE, _ADOPTIUM_SUFFIX)
ADOPTOPENJDK_JDK = VendorKey("adoptopenjdk-jdk", "SOFTWARE\\AdoptOpenJDK\\JDK", _ADOPTIUM_VALUE, _ADOPTIUM_SUFFIX)
ECLIPSE_FOUNDATION_JDK = VendorKey("eclipse-foundation-jdk", "SOFTWARE\\Eclipse Foundation\\JDK", _ADOPTIUM_VALUE, _ADOPTIUM_SUFFIX)
ADOPTIUM_JRE = VendorKey("adoptium-jre", "SOFTWARE\\Eclipse Adoptium\\JRE", _ADOPTIUM_VALUE, _ADOPTIUM_SUFFIX)
ADOPTIUM_JDK = VendorKey("adoptium-jdk", "SOFTWARE\\Eclipse Adoptium\\JDK", _ADOPTIUM_VALUE, _ADOPTIUM_SUFFIX)
MICROSOFT_JDK = VendorKey("microsoft-jdk", "SOFTWARE\\Microsoft\\JDK", _ADOPTIUM_VALUE, _ADOPTIUM_SUFFIX, x64_only=True)
ZULU_JDK = VendorKey("zulu", "SOFTWARE\\Azul Systems\\Zulu", "InstallationPath")
LIBERICA_JDK = VendorKey("liberica", "SOFTWARE\\BellSoft\\Liberica", "InstallationPath")

JRE_KEYS = (ORACLE_LEGACY_JRE, ORACLE_JRE, ADOPTOPENJDK_JRE, ADOPTIUM_JRE)
JDK_KEYS = (
    ORACLE_LEGACY_JDK,
    ORACLE_JDK,
    ADOPTOPENJDK_JDK,
    ECLIPSE_FOUNDATION_JDK,
    ADOPTIUM_JDK,
    MICROSOFT_JDK,
    ZULU_JDK,
    LIBERICA_JDK,
)
LEGACY_JRE_DIRS = ("jre8", "jre7", "jre6")


def enumerate_vendor_installs(vendor: VendorKey, view: RegistryView) -> list[Path]:
    """Return the ``javaw.exe`` paths a vendor key lists in the given registry view."""
    if sys.platform != "win32":
        return []
    if vendor.x64_only and view is not RegistryView.X64:
        return []
    return _read_vendor_installs(vendor, view)


def _read_vendor_installs(vendor: VendorKey, view: RegistryView) -> list[Path]:
    import winreg

    try:
        root = winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE,
            vendor.key,
            0,
            winreg.KEY_READ | winreg.KEY_ENUMERATE_SUB_KEYS | view.value,
        )
    except OSError:
        return []

    installs: list[Path] = []
    with root:
        sub_key_count = winreg.QueryInfoKey(root)[0]
        for index in range(sub_key_count):
            try:
                sub_key_name = winreg.EnumKey(root, index)
            except OSError:
                continue
            install_key = f"{vendor.key}\\{sub_key_name}{vendor.sub_key_suffix}"
            try:
                with winreg.OpenKey(
                    winreg.HKEY_LOCAL_MACHINE,
                    install_key,
                    0,
                    winreg.KEY_READ | RegistryView.X64.value,
                ) as key:
                    java_home, _ = winreg.QueryValueEx(key, vendor.value_name)
            except OSError:
                continue
            logger.debug("Registry %s lists %s", install_key, java_home)
            installs.append(Path(java_home) / "bin" / WINDOWS_JAVA_EXE)
    return installs


def windows_registry_candidates() -> list[Path]:
    """All registry and hardcoded Windows candidates, 64-bit before 32-bit."""
    candidates: list[Path] = []
    for view, program_files in (
        (RegistryView.X64, "C:\\Program Files"),
        (RegistryView.X86, "C:\\Program Files (x86)"),
    ):
        for vendor in JRE_KEYS:
            candidates.extend(enumerate_vendor_installs(vendor, view))
        for jre_dir in LEGACY_JRE_DIRS:
            candidates.append(Path(program_files) / "Java" / jre_dir / "bin" / WINDOWS_JAVA_EXE)
        for vendor in JDK_KEYS:
            candidates.extend(enumerate_vendor_installs(vendor, view))
    return candidates
