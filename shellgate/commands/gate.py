"""Command policy gating for shellgate."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set

from ..constants import ELEVATION_KEYWORD, SHELL_TOOL_NAMES
from ..utils.logging import logger
from .errors import PolicyViolation

_SEPARATOR_RE = re.compile(r"&&|\|\||\||;")
_GROUPING_RE = re.compile(r"[{}()]")
_ROOT_SPLIT_RE = re.compile(r"[\s;&|]+")
_PATH_SPLIT_RE = re.compile(r"[/\\]")


@dataclass
class CommandRequest:
    """A command proposed by the agent."""
    command: str
    description: Optional[str] = None
    directory: Optional[str] = None


@dataclass(frozen=True)
class PolicyConfiguration:
    """Allow and deny entries for tools, loaded once per session.

    Entries are either a bare tool name (``run_shell_command``) or a tool
    scoped to a literal command prefix (``run_shell_command(git status)``).
    """
    core_tools: Sequence[str] = ()
    exclude_tools: Sequence[str] = ()

    @property
    def wildcard_allowed(self) -> bool:
        """Whether the shell tool is allowed with no per-command restriction."""
        return any(name in self.core_tools for name in SHELL_TOOL_NAMES)

    @property
    def tool_excluded(self) -> bool:
        """Whether the shell tool itself is denied outright."""
        return any(name in self.exclude_tools for name in SHELL_TOOL_NAMES)


def normalize_command(command: str) -> str:
    """Trim a command and collapse internal whitespace to single spaces."""
    return re.sub(r"\s+", " ", command.strip())


def split_commands(command: str) -> List[str]:
    """Split a command line on &&, ||, | and ; into normalized sub-commands.

    Splitting is token level: separators inside quotes are split too.
    """
    return [normalize_command(part) for part in _SEPARATOR_RE.split(command)]


def get_command_root(command: str) -> Optional[str]:
    """Extract the root command (basename of the first token).

    Examples:
        "  /usr/bin/ls -la | grep foo" -> "ls"
        "(cd src && make)" -> "cd"
    """
    stripped = _GROUPING_RE.sub("", command.strip())
    first = _ROOT_SPLIT_RE.split(stripped)[0]
    root = _PATH_SPLIT_RE.split(first)[-1]
    return root or None


def is_prefixed_by(command: str, prefix: str) -> bool:
    """Prefix match that only ends at the end of the string or a space."""
    if not command.startswith(prefix):
        return False
    return len(command) == len(prefix) or command[len(prefix)] == " "


def extract_scoped_commands(tools: Iterable[str]) -> Set[str]:
    """Collect the literal prefixes from ``tool(prefix)`` shaped entries."""
    commands = set()
    for tool in tools:
        for name in SHELL_TOOL_NAMES:
            if tool.startswith(f"{name}(") and tool.endswith(")"):
                commands.add(normalize_command(tool[len(name) + 1:-1]))
                break
    return commands


def is_elevation_request(command: str) -> bool:
    """Whether the command starts with the privilege-elevation keyword."""
    return command.strip().startswith(f"{ELEVATION_KEYWORD} ")


def has_command_substitution(command: str) -> bool:
    """Whether the command contains $(...) or backtick substitution."""
    return "$(" in command or "`" in command


class CommandGate:
    """Static, synchronous policy check for proposed commands."""

    def __init__(self, policy: PolicyConfiguration, target_dir: Path):
        """Initialize the gate.

        Args:
            policy: Allow/deny configuration for the session
            target_dir: Project root that relative directories resolve against
        """
        self.policy = policy
        self.target_dir = Path(target_dir)

    def is_command_allowed(self, command: str) -> bool:
        """Check a command line against substitution rules and the policy.

        Args:
            command: Raw command line

        Returns:
            True if every sub-command is permitted
        """
        if has_command_substitution(command):
            logger.policy(f"Command substitution rejected: {command}")
            return False

        if self.policy.tool_excluded:
            logger.policy("Shell tool is excluded by configuration")
            return False

        blocked_commands = extract_scoped_commands(self.policy.exclude_tools)
        allowed_commands = extract_scoped_commands(self.policy.core_tools)
        is_strict_allowlist = bool(allowed_commands) and not self.policy.wildcard_allowed

        for sub_command in split_commands(command):
            blocked = next((b for b in blocked_commands if is_prefixed_by(sub_command, b)), None)
            if blocked is not None:
                logger.policy(f"Sub-command '{sub_command}' matches deny entry '{blocked}'")
                return False
            if is_strict_allowlist and not any(
                is_prefixed_by(sub_command, allowed) for allowed in allowed_commands
            ):
                logger.policy(f"Sub-command '{sub_command}' matches no allow entry")
                return False

        return True

    def validate(self, request: CommandRequest) -> Optional[str]:
        """Validate a command request.

        Args:
            request: The proposed command with optional directory

        Returns:
            A user-facing error message, or None when the request may proceed
        """
        if not self.is_command_allowed(request.command):
            return f"Command is not allowed: {request.command}"
        if not request.command.strip():
            return "Command cannot be empty."
        if not get_command_root(request.command):
            return "Could not identify command root to obtain permission from user."
        if request.directory:
            if Path(request.directory).is_absolute():
                return "Directory cannot be absolute. Must be relative to the project root directory."
            resolved = self.resolve_directory(request.directory)
            if not resolved.is_relative_to(self.target_dir.resolve()):
                return "Directory must be inside the project root directory."
            if not resolved.is_dir():
                return "Directory must exist."
        return None

    def check(self, request: CommandRequest) -> None:
        """Validate a request, raising PolicyViolation when it is rejected."""
        error = self.validate(request)
        if error:
            raise PolicyViolation(error, request.command)

    def resolve_directory(self, directory: Optional[str]) -> Path:
        """Resolve a request directory against the project root."""
        return (self.target_dir / (directory or "")).resolve()


def create_command_gate(policy: PolicyConfiguration, target_dir: Path) -> CommandGate:
    """Create a command gate for the given policy and project root."""
    return CommandGate(policy, target_dir)
