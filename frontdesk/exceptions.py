"""Domain exceptions raised by the engagement core.

The HTTP layer maps each class to its status code; none of them carry
FastAPI types so services stay usable from the worker.
"""

from typing import Optional


class FrontdeskError(Exception):
    """Base class for errors reported synchronously to the caller."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[list[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)


class NotFound(FrontdeskError):
    """Workspace, service type, form, contact or booking missing."""

    status_code = 404


class Forbidden(FrontdeskError):
    """Ownership/staff-access failure or an inactive workspace or service."""

    status_code = 403


class InvalidInput(FrontdeskError):
    """Missing contact channel, malformed schedule or unavailable slot."""

    status_code = 400


class Conflict(FrontdeskError):
    """Duplicate integration type, already-active workspace, absorbed booking status."""

    status_code = 409


class SetupIncomplete(FrontdeskError):
    """Activation rejected; `missing` lists every unmet precondition."""

    status_code = 400

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__("Workspace cannot be activated. Setup is incomplete.", errors=self.missing)


class TransientDispatchFailure(Exception):
    """A channel provider call failed. Caught inside the dispatcher, never re-raised."""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(message)


class ChannelUnavailable(Exception):
    """The channel cannot be used for this workspace (missing or unreadable credentials)."""
