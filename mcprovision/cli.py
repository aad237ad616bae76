from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence
import argparse
import logging
import os
import sys

from tqdm import tqdm

from .exceptions import McProvisionError
from .http import ProgressCallback
from .loaders import create_loader_registry
from .manager import ServerManager
from .mod_providers import create_mod_provider_registry
from .models import AddModRequest, NewInstanceRequest
from .utils import EULA_URL, IS_WINDOWS

logger = logging.getLogger(__name__)

CACHE_DIR_ENV = "MCPROVISION_CACHE_DIR"


def default_cache_dir(environ: Mapping[str, str] | None = None) -> Path:
    environ = os.environ if environ is None else environ
    override = environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)
    if IS_WINDOWS and environ.get("LOCALAPPDATA"):
        return Path(environ["LOCALAPPDATA"]) / "mcprovision" / "cache"
    return Path.home() / ".cache" / "mcprovision"


class _CliFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname.lower()}: {message}"
        return message


def configure_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_CliFormatter("%(message)s"))
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=[handler], force=True)


@contextmanager
def tqdm_progress(description: str, total: int | None) -> Iterator[ProgressCallback]:
    with tqdm(
        total=total,
        desc=description,
        unit="B",
        unit_scale=True,
        unit_divisor=1024,
        file=sys.stderr,
        leave=False,
    ) as bar:

        def update(downloaded: int, reported_total: int | None) -> None:
            if bar.total is None and reported_total is not None:
                bar.total = reported_total
                bar.refresh()
            bar.update(downloaded - bar.n)

        yield update


def prompt_selector(items: Sequence[Any], prompt: str) -> Any:
    """Print a numbered list to stderr and read the user's choice; 0 cancels."""
    if not items:
        return None
    print(prompt, file=sys.stderr)
    for index, item in enumerate(items, start=1):
        print(f"{index}: {item}", file=sys.stderr)
    while True:
        sys.stderr.write(f"choice [1-{len(items)}, 0 to cancel] (default 1): ")
        sys.stderr.flush()
        try:
            answer = input().strip()
        except EOFError:
            return None
        if not answer:
            return items[0]
        if answer.isdigit():
            choice = int(answer)
            if choice == 0:
                return None
            if choice <= len(items):
                return items[choice - 1]
        print(f"invalid choice '{answer}'", file=sys.stderr)


def prompt_eula() -> bool:
    sys.stderr.write(f"Do you agree to the Minecraft EULA (y/N)? You can read the EULA at {EULA_URL} ")
    sys.stderr.flush()
    try:
        answer = input().strip()
    except EOFError:
        return False
    return answer[:1] in ("y", "Y")


def format_error_chain(error: BaseException) -> list[str]:
    lines = [f"mcprovision error: {error}"]
    cause = error.__cause__
    while cause is not None:
        lines.append(f"caused by: {cause}")
        cause = cause.__cause__
    return lines


def _cmd_new(args: argparse.Namespace, manager: ServerManager) -> int:
    request = NewInstanceRequest(
        name=args.name,
        version=args.version,
        loader=args.loader,
        skip_java_check=args.skip_java_check,
        java_path=Path(args.java) if args.java else None,
        eula=args.eula,
        paper_build=args.paper_build,
        fabric_loader_version=args.fabric_loader_version,
        config_template=Path(args.config_template) if args.config_template else None,
        selector=prompt_selector,
        eula_prompt=prompt_eula,
        progress=tqdm_progress,
    )
    result = manager.new_instance(request)
    logger.info(
        "created %s %s instance in %s",
        result.metadata.loader,
        result.metadata.minecraft_version,
        result.instance_dir,
    )
    return 0


def _cmd_add(args: argparse.Namespace, manager: ServerManager) -> int:
    request = AddModRequest(
        name=args.name,
        instance_dir=Path(args.instance),
        provider=args.provider,
        force_search=args.search,
        skip_version_check=args.skip_version_check,
        selector=prompt_selector,
        progress=tqdm_progress,
    )
    result = manager.add_mod(request)
    if not result.up_to_date:
        logger.info("installed %s as %s", result.mod.name, result.mod.file_name)
    return 0


def _cmd_java(manager: ServerManager) -> int:
    candidates = manager.find_java()
    if not candidates:
        logger.warning("no java installations found")
        return 1
    for candidate in candidates:
        print(candidate)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcprovision",
        description="Provision Minecraft server instances and install mods into them.",
    )
    parser.add_argument(
        "--cache-dir",
        default=None,
        help=f"Download cache directory (default: ${CACHE_DIR_ENV} or the user cache dir).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    new = sub.add_parser("new", help="Create a new server instance.")
    new.add_argument("name", help="Name of the instance directory to create.")
    new.add_argument(
        "-m",
        "--version",
        default=None,
        help="Minecraft version (default: latest release).",
    )
    new.add_argument(
        "-l",
        "--loader",
        default="vanilla",
        choices=sorted(create_loader_registry()),
        help="Mod loader (default: vanilla).",
    )
    new.add_argument(
        "-j",
        "--skip-java-check",
        action="store_true",
        help="Do not check that the selected java is recent enough.",
    )
    new.add_argument("--java", default=None, help="Path of the java executable to use.")
    new.add_argument(
        "--eula",
        action="store_true",
        help="Agree to the Minecraft EULA without prompting.",
    )
    new.add_argument("--paper-build", type=int, default=None, help="Paper build number.")
    new.add_argument("--fabric-loader-version", default=None, help="Fabric loader version.")
    new.add_argument(
        "--config-template",
        default=None,
        help="Directory copied into the new instance (default: cached default template).",
    )

    add = sub.add_parser("add", help="Install or update a mod in an instance.")
    add.add_argument("name", help="Mod slug or search query.")
    add.add_argument(
        "-i",
        "--instance",
        default=".",
        help="Instance directory (default: current directory).",
    )
    add.add_argument(
        "-p",
        "--provider",
        default=None,
        choices=sorted(create_mod_provider_registry()),
        help="Mod provider (default: the loader's provider).",
    )
    add.add_argument("-s", "--search", action="store_true", help="Always search by name.")
    add.add_argument(
        "--skip-version-check",
        action="store_true",
        help="Install even if the mod does not list this Minecraft version.",
    )

    sub.add_parser("java", help="List discovered java installations.")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    cache_dir = Path(args.cache_dir) if args.cache_dir else default_cache_dir()
    manager = ServerManager(cache_dir)

    try:
        if args.command == "new":
            return _cmd_new(args, manager)
        if args.command == "add":
            return _cmd_add(args, manager)
        if args.command == "java":
            return _cmd_java(manager)
    except (McProvisionError, OSError) as exc:
        logger.debug("command failed", exc_info=True)
        for line in format_error_chain(exc):
            print(line, file=sys.stderr)
        return 1
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
