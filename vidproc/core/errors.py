"""Failure taxonomy shared by the media pipelines and the share lifecycle.

Every error is scoped to a single request. The HTTP layer maps ``code`` and
the class to a wire representation; the core never decides status codes.
"""

from __future__ import annotations


class VidprocError(Exception):
    """Base class for every failure the core reports to its caller."""

    code = "vidproc_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(VidprocError):
    """Caller-supplied input violates a stated constraint."""

    code = "validation_failed"


class PolicyError(ValidationError):
    """Media is well-formed but falls outside the configured policy."""

    code = "policy_violation"


class NotFoundError(VidprocError):
    """A referenced entity does not exist."""

    code = "not_found"

    def __init__(self, message: str, *, entity_id: str | None = None, code: str | None = None) -> None:
        super().__init__(message, code=code)
        self.entity_id = entity_id


class ExpiredError(VidprocError):
    """The entity existed but its time-to-live has lapsed."""

    code = "expired"


class ProbeError(VidprocError):
    """The inspection tool failed or produced unusable output."""

    code = "probe_failed"


class InvalidMediaError(ProbeError):
    """A file handed to the pipeline could not be probed as media."""

    code = "invalid_media"


class EditError(VidprocError):
    """The transcoder rejected the request or failed."""

    code = "edit_failed"


class StorageError(VidprocError):
    """The filesystem or the metadata store failed."""

    code = "storage_failed"


__all__ = [
    "VidprocError",
    "ValidationError",
    "PolicyError",
    "NotFoundError",
    "ExpiredError",
    "ProbeError",
    "InvalidMediaError",
    "EditError",
    "StorageError",
]
