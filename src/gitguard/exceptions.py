"""Exception types used across gitguard"""


class GitGuardError(Exception):
    """Base class for gitguard errors"""


class ProbeFailure(GitGuardError):
    """A detector could not read a manifest file"""

    def __init__(self, path, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


class MalformedManifest(ProbeFailure):
    """A manifest file exists but its content could not be parsed"""


class SettingsError(GitGuardError, ValueError):
    """Settings file or environment override is invalid"""


class StagedFilesUnavailable(GitGuardError):
    """The staged file list could not be obtained from git"""
