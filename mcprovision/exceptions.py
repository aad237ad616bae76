class McProvisionError(Exception):
    """Base exception for mcprovision."""


class InvalidVersion(McProvisionError, ValueError):
    """Raised when a Java version string cannot be parsed."""


class IncompatibleJava(McProvisionError):
    """Raised when no Java runtime satisfies the required major version."""


class VersionResolutionError(McProvisionError):
    """Raised when a requested version cannot be resolved."""


class DownloadError(McProvisionError):
    """Raised when an artifact download fails."""


class HttpStatusError(DownloadError):
    """Raised when a remote endpoint answers with an unexpected status."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(f"Request to {url} returned status code {status}.")
        self.url = url
        self.status = status


class HashMismatch(DownloadError):
    """Raised when downloaded bytes do not match the expected digest."""


class InstallError(McProvisionError):
    """Raised when installation fails."""


class SubprocessError(InstallError):
    """Raised when a child process exits with a non-zero code."""

    def __init__(self, message: str, returncode: int) -> None:
        super().__init__(message)
        self.returncode = returncode


class InstanceMetadataError(McProvisionError):
    """Raised when instance metadata is missing or invalid."""


class ModNotFoundError(McProvisionError):
    """Raised when a mod cannot be found on its provider."""


class ModConflict(McProvisionError):
    """Raised when a mod file name is already claimed by another mod."""


class ProviderUnsupportedError(McProvisionError):
    """Raised when a mod provider or loader combination is not supported."""
