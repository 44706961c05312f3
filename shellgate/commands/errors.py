"""Outcome classification for shell command invocations."""

from typing import Optional


class ShellGateError(Exception):
    """Base error for everything that stops or ends a shell invocation."""

    #: True when the error points at a bug or an OS fault rather than an
    #: expected, user-visible outcome.
    fatal = False

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.command = command


class PolicyViolation(ShellGateError):
    """The command was blocked by the gate before any process started."""


class AuthorizationDenied(ShellGateError):
    """The human operator declined the command."""


class ElevationUnavailable(ShellGateError):
    """A privileged command was attempted without a valid cached secret."""


class SpawnFailure(ShellGateError):
    """The OS failed to create the process."""

    fatal = True


class RuntimeFailure(ShellGateError):
    """The process ran but exited non-zero or was killed by a signal."""

    def __init__(self, message: str, command: Optional[str] = None,
                 exit_code: Optional[int] = None, signal: Optional[str] = None):
        super().__init__(message, command)
        self.exit_code = exit_code
        self.signal = signal


class Cancelled(ShellGateError):
    """The invocation was aborted by the user or the system."""
