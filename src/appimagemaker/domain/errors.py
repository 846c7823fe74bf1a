"""Errors raised while building an AppImage."""

from __future__ import annotations


class MakerError(RuntimeError):
    """Base class for every failure that aborts a build."""


class ConfigurationError(MakerError):
    """Raised when maker, packager or package configuration is malformed."""


class StagingError(MakerError):
    """Raised when the output or staging directory cannot be prepared."""


class _ProcessFailure(MakerError):
    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class PermissionAdjustmentError(_ProcessFailure):
    """Raised when the sandbox helper permissions could not be changed."""


class BackendInvocationError(_ProcessFailure):
    """Raised when the bundling backend fails or returns unreadable output."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
        stdout: str = "",
    ) -> None:
        super().__init__(message, returncode=returncode, stderr=stderr)
        self.stdout = stdout


__all__ = [
    "BackendInvocationError",
    "ConfigurationError",
    "MakerError",
    "PermissionAdjustmentError",
    "StagingError",
]
