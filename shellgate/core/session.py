"""Session-scoped state shared by every invocation in one session."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..commands.confirmation import ConfirmationCoordinator
from ..commands.credentials import CredentialCache, Whitelist
from ..commands.executor import CommandExecutor
from ..commands.gate import CommandGate, PolicyConfiguration
from ..commands.process_control import ProcessControl, create_process_control


@dataclass
class Session:
    """Explicit context for one session.

    Invocations share only the credential cache and the whitelist. Separate
    Session objects never see each other's state.
    """
    policy: PolicyConfiguration
    target_dir: Path
    debug_mode: bool = False
    process_control: ProcessControl = field(default_factory=create_process_control)
    credential_cache: CredentialCache = field(default_factory=CredentialCache)
    whitelist: Whitelist = field(default_factory=Whitelist)

    def __post_init__(self):
        self.target_dir = Path(self.target_dir)
        self.gate = CommandGate(self.policy, self.target_dir)
        self.coordinator = ConfirmationCoordinator(
            self.gate, self.credential_cache, self.whitelist,
            supports_elevation=self.process_control.supports_elevation,
        )
        self.executor = CommandExecutor(self.credential_cache, self.process_control)


def create_session(policy: Optional[PolicyConfiguration] = None,
                   target_dir: Optional[Path] = None,
                   debug_mode: bool = False,
                   process_control: Optional[ProcessControl] = None) -> Session:
    """Create a session with empty whitelist and credential cache.

    Args:
        policy: Allow/deny configuration; permissive when omitted
        target_dir: Project root; the current directory when omitted
        debug_mode: Show the verbose transcript as the human display
        process_control: Platform implementation; detected when omitted
    """
    return Session(
        policy=policy or PolicyConfiguration(),
        target_dir=Path(target_dir) if target_dir else Path.cwd(),
        debug_mode=debug_mode,
        process_control=process_control or create_process_control(),
    )
