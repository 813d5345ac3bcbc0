"""Error types raised by the studio client and workflow controller."""

from __future__ import annotations


class StudioError(Exception):
    """Base error for studio operations."""


class MalformedResponseError(StudioError):
    """The service replied but the payload failed schema or shape checks."""


class GenerationFailedError(StudioError):
    """The service replied without a usable result (e.g. no image part)."""


class WorkflowStateError(StudioError):
    """The controller was asked for a transition its state does not allow."""
