"""Error types raised by dotvault core operations."""

from typing import Optional, Sequence


class DotvaultError(RuntimeError):
    """Base class for all fatal dotvault errors."""


class PrerequisiteMissing(DotvaultError):
    """A required external program or file is absent."""


class InvalidArgument(DotvaultError):
    """A flag or argument value is malformed."""


class PreconditionViolation(DotvaultError):
    """The requested operation cannot run in the current state."""


class CommandDisabled(PreconditionViolation):
    """The requested command is intentionally unavailable."""


class ExternalToolFailure(DotvaultError):
    """An external program exited with a non-zero status.

    Attributes:
        command: The argument vector that failed, if known.
        returncode: The exit status of the failing program.
    """

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode
