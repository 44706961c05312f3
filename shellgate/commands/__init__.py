"""Command gating, authorization and execution for shellgate."""

from .cancellation import CancellationToken
from .confirmation import (
    ConfirmationCoordinator,
    ConfirmationOutcome,
    ConfirmationRequest,
    ConfirmationState,
    EditConfirmation,
    ExecConfirmation,
    ExternalToolConfirmation,
    InfoConfirmation,
    PasswordConfirmation,
    create_confirmation_coordinator,
)
from .credentials import CredentialCache, Whitelist
from .errors import (
    AuthorizationDenied,
    Cancelled,
    ElevationUnavailable,
    PolicyViolation,
    RuntimeFailure,
    ShellGateError,
    SpawnFailure,
)
from .executor import CommandExecutor, ExecutionResult, create_command_executor
from .gate import (
    CommandGate,
    CommandRequest,
    PolicyConfiguration,
    create_command_gate,
    get_command_root,
)
from .output import OutputAggregator
from .process_control import (
    PosixProcessControl,
    ProcessControl,
    WindowsProcessControl,
    create_process_control,
)

__all__ = [
    "CancellationToken",
    "ConfirmationCoordinator",
    "ConfirmationOutcome",
    "ConfirmationRequest",
    "ConfirmationState",
    "EditConfirmation",
    "ExecConfirmation",
    "ExternalToolConfirmation",
    "InfoConfirmation",
    "PasswordConfirmation",
    "create_confirmation_coordinator",
    "CredentialCache",
    "Whitelist",
    "AuthorizationDenied",
    "Cancelled",
    "ElevationUnavailable",
    "PolicyViolation",
    "RuntimeFailure",
    "ShellGateError",
    "SpawnFailure",
    "CommandExecutor",
    "ExecutionResult",
    "create_command_executor",
    "CommandGate",
    "CommandRequest",
    "PolicyConfiguration",
    "create_command_gate",
    "get_command_root",
    "OutputAggregator",
    "PosixProcessControl",
    "ProcessControl",
    "WindowsProcessControl",
    "create_process_control",
]
