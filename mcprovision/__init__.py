from .exceptions import McProvisionError
from .hashing import HashAlgorithm, HashWithAlgorithm
from .http import HttpClient
from .java import JavaCandidate, ParsedJavaVersion, VersionProbe
from .manager import ServerManager
from .models import (
    AddModRequest,
    AddModResult,
    InstanceMetadata,
    ModMetadata,
    NewInstanceRequest,
    NewInstanceResult,
)

__all__ = [
    "AddModRequest",
    "AddModResult",
    "HashAlgorithm",
    "HashWithAlgorithm",
    "HttpClient",
    "InstanceMetadata",
    "JavaCandidate",
    "McProvisionError",
    "ModMetadata",
    "NewInstanceRequest",
    "NewInstanceResult",
    "ParsedJavaVersion",
    "ServerManager",
    "VersionProbe",
]
