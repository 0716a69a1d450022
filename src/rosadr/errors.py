"""Domain errors for rosadr."""

from typing import List, Optional, Sequence


class DRError(RuntimeError):
    """Raised when provisioning or teardown cannot continue safely."""


class ExecutionError(DRError):
    """An external command exited with a non-zero status."""

    ALREADY_EXISTS_SIGNATURES = (
        "EntityAlreadyExists",
        "BucketAlreadyOwnedByYou",
        "already exists",
    )

    def __init__(self, command: Sequence[str], returncode: Optional[int], stderr: str = ""):
        self.command: List[str] = list(command)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()

        message = f"Command failed ({returncode}): {' '.join(self.command)}"
        if self.stderr:
            message = f"{message}\n{self.stderr}"
        super().__init__(message)

    def is_already_exists(self) -> bool:
        return any(signature in self.stderr for signature in self.ALREADY_EXISTS_SIGNATURES)


class EmptyResultError(DRError):
    """An expected scalar value came back empty."""


class MalformedResponseError(DRError):
    """A structured response is missing an expected field."""
