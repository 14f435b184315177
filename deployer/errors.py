"""Fatal errors that stop a deployment run."""

from typing import Iterable, Optional, Sequence


class DeployError(Exception):
    """Base class for errors that abort the whole run."""

    exit_code = 1


class ConfigurationError(DeployError):
    """A setting read from the environment has an unusable value."""


class MissingToolsError(DeployError):
    """One or more required executables are not on the PATH."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required tools: {' '.join(self.missing)}")


class MissingCredentialsError(DeployError):
    """Required credential variables are unset or empty."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)
        super().__init__(
            "AWS credentials not set. Please set " + " and ".join(self.names)
        )


class CommandFailedError(DeployError):
    """An external command exited with a non-zero status or could not start."""

    def __init__(
        self, command: Sequence[str], returncode: int, reason: Optional[str] = None
    ):
        self.command = list(command)
        self.returncode = returncode
        self.reason = reason
        message = (
            f"Command failed with exit code {returncode}: {' '.join(self.command)}"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ProvisioningError(DeployError):
    """An AWS provisioning call failed for a reason other than "already exists"."""
