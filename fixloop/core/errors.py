"""Repair-specific exceptions for error handling."""

from typing import Any, Optional


class PatchApplyError(Exception):
    """Raised when a patch candidate cannot be applied to the working tree.

    This covers:
    - Overlapping changes within one candidate
    - Line ranges outside the target file
    - File reader/writer failures while applying or rolling back

    The validation loop catches it and treats the candidate as rejected.

    Attributes:
        message: Description of the failure
        change: The CodeChange that failed (optional)
        candidate: The PatchCandidate being applied (optional)
    """

    def __init__(
        self, message: str, change: Optional[Any] = None, candidate: Optional[Any] = None
    ) -> None:
        """Initialize PatchApplyError exception.

        Args:
            message: Error message describing the failure
            change: The CodeChange that failed (optional)
            candidate: The PatchCandidate being applied (optional)
        """
        super().__init__(message)
        self.change = change
        self.candidate = candidate


class RepairInProgressError(RuntimeError):
    """Raised when ``repair()`` is called while another session is running.

    An engine owns the working tree and test runner of exactly one session at
    a time; concurrent calls on the same instance are rejected, not queued.

    Attributes:
        session_id: Id of the session currently holding the engine
    """

    def __init__(self, session_id: Optional[str] = None) -> None:
        message = "A repair session is already running on this engine"
        if session_id:
            message += f" (session {session_id})"
        super().__init__(message)
        self.session_id = session_id



class RollbackError(PatchApplyError):
    """Raised when files written for a candidate could not be restored.

    The working tree still holds part of the candidate, so no further
    candidate may be applied for the same fault.
    """
