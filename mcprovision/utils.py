from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Sequence, TypeVar
import errno
import logging
import os
import shutil

logger = logging.getLogger(__name__)

T = TypeVar("T")

Selector = Callable[[Sequence[Any], str], Any]

IS_WINDOWS = os.name == "nt"
LINE_ENDING = "\r\n" if IS_WINDOWS else "\n"
RUN_SCRIPT_NAME = "run_server.bat" if IS_WINDOWS else "run_server.sh"
EULA_URL = "https://aka.ms/MinecraftEULA"
RESOURCES_DIR = Path(__file__).resolve().parent / "resources"

_WINDOWS_ERROR_INVALID_FUNCTION = 1
_WINDOWS_ERROR_DIRECTORY = 267
_WINDOWS_ERROR_PRIVILEGE_NOT_HELD = 1314

_POSIX_SPECIAL_CHARS = frozenset("!\"#$&'()*;<=>?[\\]^`{|}")
_CMD_SPECIAL_CHARS = frozenset("%^&<>|'\"()")


def is_not_found(error: OSError) -> bool:
    """True for "no such file" and "not a directory" errors on every platform."""
    if isinstance(error, (FileNotFoundError, NotADirectoryError)):
        return True
    if error.errno in (errno.ENOENT, errno.ENOTDIR):
        return True
    return getattr(error, "winerror", None) == _WINDOWS_ERROR_DIRECTORY


def _symlinks_unsupported(error: OSError) -> bool:
    if IS_WINDOWS:
        return getattr(error, "winerror", None) in (
            _WINDOWS_ERROR_INVALID_FUNCTION,
            _WINDOWS_ERROR_PRIVILEGE_NOT_HELD,
        )
    return error.errno == errno.EPERM


def link_or_copy(target: Path, link_name: Path) -> None:
    """Symlink ``link_name`` to the canonical ``target``, copying where symlinks are refused."""
    target = Path(target).resolve(strict=True)
    try:
        os.symlink(target, link_name)
    except OSError as exc:
        if not _symlinks_unsupported(exc):
            raise
        logger.debug("Symlinks unavailable (%s), copying %s to %s", exc, target, link_name)
        shutil.copyfile(target, link_name)


def copy_directory(source: Path, destination: Path) -> None:
    destination.mkdir(parents=True, exist_ok=True)
    for entry in source.iterdir():
        if entry.is_dir():
            copy_directory(entry, destination / entry.name)
        else:
            shutil.copyfile(entry, destination / entry.name)


def escape_executable_name(name: str, windows: bool = IS_WINDOWS) -> str:
    """Quote an executable path for a POSIX shell script or a cmd.exe batch file."""
    if windows:
        if not any(char.isspace() or char in _CMD_SPECIAL_CHARS for char in name):
            return name
        return '"' + name.replace('"', '""').replace("%", "%%") + '"'

    def needs_escape(index: int, char: str) -> bool:
        if char.isspace() or char in _POSIX_SPECIAL_CHARS:
            return True
        return char == "~" and index != 0

    if not any(needs_escape(index, char) for index, char in enumerate(name)):
        return name
    return "'" + name.replace("'", "'\\''") + "'"


def write_run_script(instance_dir: Path, command: str) -> Path:
    script_path = instance_dir / RUN_SCRIPT_NAME
    fd = os.open(script_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o744)
    with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
        handle.write(command)
    return script_path


def agree_to_eula(
    instance_dir: Path,
    pre_agreed: bool,
    prompt: Callable[[], bool] | None = None,
) -> bool:
    agreed = pre_agreed
    if not agreed and prompt is not None:
        agreed = prompt()
    if agreed:
        (instance_dir / "eula.txt").write_text(
            f"eula=true{LINE_ENDING}", encoding="utf-8", newline=""
        )
    else:
        logger.warning("EULA not accepted; the server will refuse to start until eula.txt is edited")
    return agreed


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def select_from_list(items: Sequence[T], prompt: str, selector: Selector) -> T | None:
    """Ask ``selector`` to choose among ``items``; a single item is chosen without asking."""
    if not items:
        return None
    if len(items) == 1:
        return items[0]
    return selector(items, prompt)
