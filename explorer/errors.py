"""Exception types raised by the simulation core."""

from typing import Optional


class GameError(Exception):
    """Base class for every failure the core reports."""


class ValidationError(GameError, ValueError):
    """An amount, snapshot section or content field has the wrong shape."""


class ContentError(GameError):
    """Content definitions are missing, unknown or malformed."""


class InsufficientResourcesError(GameError):
    """The ledger cannot cover a cost."""


class OperationPhaseError(GameError):
    """An operation was acted on in a phase that does not allow it."""

    def __init__(self, message: str, phase: str, remaining_seconds: Optional[int] = None):
        super().__init__(message)
        self.phase = phase
        self.remaining_seconds = remaining_seconds


class SyncStateError(GameError):
    """Save, load or reset attempted while another one is in flight."""


class DirtyStateError(GameError):
    """Load attempted while unsaved changes exist."""
