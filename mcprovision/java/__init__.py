from .locator import JavaCandidate, create_java_candidate_for_path, find_java_candidates
from .probe import VersionProbe
from .selection import select_java, sort_candidates
from .version import ParsedJavaVersion

__all__ = [
    "JavaCandidate",
    "ParsedJavaVersion",
    "VersionProbe",
    "create_java_candidate_for_path",
    "find_java_candidates",
    "select_java",
    "sort_candidates",
]
