from __future__ import annotations

from typing import Sequence
import logging

from ..exceptions import IncompatibleJava
from ..utils import Selector, select_from_list
from .locator import JavaCandidate

logger = logging.getLogger(__name__)

SELECT_JAVA_PROMPT = "select java executable"


def sort_candidates(candidates: Sequence[JavaCandidate], required_major: int) -> list[JavaCandidate]:
    """Compatible majors first, closest major first, newest build of each major first."""
    ordered = sorted(candidates, key=lambda candidate: candidate.version, reverse=True)
    ordered.sort(
        key=lambda candidate: (
            candidate.version.major < required_major,
            candidate.version.major,
        )
    )
    return ordered


def warn_if_newer(candidate: JavaCandidate, required_major: int) -> None:
    if candidate.version.major > required_major:
        logger.warning(
            "selected java version %s is newer than the recommended java version %s, "
            "which may cause issues",
            candidate.version,
            required_major,
        )


def select_java(
    candidates: Sequence[JavaCandidate],
    required_major: int,
    selector: Selector,
    skip_check: bool = False,
    reason: str = "",
) -> JavaCandidate:
    if not skip_check:
        candidates = [c for c in candidates if c.version.major >= required_major]
    chosen = select_from_list(sort_candidates(candidates, required_major), SELECT_JAVA_PROMPT, selector)
    if chosen is None:
        raise IncompatibleJava(
            f"could not find any java install compatible with {reason or 'this server'}, "
            f"need at least java {required_major}"
        )
    if not skip_check:
        warn_if_newer(chosen, required_major)
    return chosen
