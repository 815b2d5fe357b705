from __future__ import annotations


class InstallerError(RuntimeError):
    """Base for every error that aborts an installer run."""


class CommandFailed(InstallerError):
    pass


class UnsupportedPlatform(InstallerError):
    pass


class ReleaseLookupFailed(InstallerError):
    pass


class DownloadFailed(InstallerError):
    pass


class EnrollmentFailed(InstallerError):
    pass


class FabricStartFailed(InstallerError):
    pass


class RemovalNotConfirmed(InstallerError):
    pass


class ConfigError(InstallerError):
    pass
