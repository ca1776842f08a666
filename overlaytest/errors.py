"""Exception types raised by overlaytest."""

from typing import Any, Dict, Optional


class OverlayTestError(Exception):
    """Base class for overlaytest failures.

    Attributes:
        message: Human readable description.
        details: Extra context such as resource names.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(OverlayTestError):
    """Raised when the configuration file or values are invalid."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


class ClusterConnectionError(OverlayTestError):
    """Raised when no Kubernetes client can be built."""


class ClusterError(OverlayTestError):
    """Raised when a cluster API call fails while waiting on resources."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_name: Optional[str] = None,
    ):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_name:
            details["resource_name"] = resource_name
        super().__init__(message, details)


class WorkloadExistedError(OverlayTestError):
    """The probe DaemonSet already existed and has been deleted.

    The caller should run again once the deletion has completed.
    """


class PollTimeoutError(OverlayTestError):
    """A wait loop hit its deadline before the condition held."""


class PollCancelledError(OverlayTestError):
    """A wait loop was cancelled by the caller."""


class ExecSetupError(OverlayTestError):
    """The remote exec channel to a pod could not be established."""


class ExecTimeoutError(OverlayTestError):
    """A remote command did not finish within its timeout."""
