from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .exceptions import SubprocessError

logger = logging.getLogger(__name__)


def run_checked(
    command: list[str],
    cwd: Path,
    capture_output: bool = True,
) -> subprocess.CompletedProcess[str]:
    logger.debug("Running %s in %s", " ".join(command), cwd)
    process = subprocess.run(
        command,
        cwd=str(cwd),
        capture_output=capture_output,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    if process.returncode != 0:
        details = ""
        if capture_output:
            details = process.stderr.strip() or process.stdout.strip()
        raise SubprocessError(
            "Command failed with exit code "
            f"{process.returncode}: {' '.join(command)}\n{details}".rstrip(),
            returncode=process.returncode,
        )
    return process
