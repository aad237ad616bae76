from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
import logging

from ..minecraft import ManifestVersion, Version
from ..models import ServerInstallArgs
from ..utils import LINE_ENDING, agree_to_eula, write_run_script

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LoaderInstallResult:
    run_script: Path
    eula_accepted: bool


class ModLoader(ABC):
    loader_id: str
    default_mod_provider: str | None = None
    mods_folder: str | None = None

    @abstractmethod
    def minimum_java_version(self, manifest_version: ManifestVersion, full_version: Version) -> int:
        raise NotImplementedError

    @abstractmethod
    def install(self, args: ServerInstallArgs) -> LoaderInstallResult:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.loader_id


def finish_install(args: ServerInstallArgs, command: str) -> LoaderInstallResult:
    """Write the run script for ``command`` and settle the EULA."""
    run_script = write_run_script(args.instance_dir, command + LINE_ENDING)
    logger.debug("Wrote %s", run_script)
    accepted = agree_to_eula(args.instance_dir, args.eula, args.eula_prompt)
    return LoaderInstallResult(run_script=run_script, eula_accepted=accepted)
