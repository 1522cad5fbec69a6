"""Error taxonomy shared by the pipelines.

Per-job and per-action errors are caught at their boundary and turned into
result records; only batch-level failures escape to the HTTP layer.
"""

from __future__ import annotations

from typing import Any


class DispatchError(Exception):
    """Base class for every error raised by opsdispatch."""

    kind: str = "error"

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigurationError(DispatchError):
    """A required credential, template, or field is missing."""

    kind = "configuration"


class UpstreamAuthError(DispatchError):
    """The external system rejected the login/session step."""

    kind = "auth"

    def __init__(self, message: str, *, status_code: int | None = None, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code


class UpstreamAPIError(DispatchError):
    """The side-effecting call returned a non-2xx status or an unusable body."""

    kind = "upstream_api"

    def __init__(self, message: str, *, status_code: int | None = None, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code


class NetworkError(DispatchError):
    """Transport-level failure (connect, timeout, protocol)."""

    kind = "network"


class ScheduleError(DispatchError):
    """A cron expression could not be parsed or advanced."""

    kind = "schedule"


class StoreError(DispatchError):
    """The persistent store could not be read or written."""

    kind = "store"


class InvalidPayloadError(DispatchError):
    """An inbound request body is not valid JSON (or not a JSON object)."""

    kind = "payload"
