"""Human authorization of shell commands for shellgate."""

import asyncio
import concurrent.futures
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, List, Optional

from ..constants import ELEVATION_KEYWORD
from ..utils.logging import logger
from .cancellation import CancellationToken
from .credentials import CredentialCache, Whitelist
from .gate import CommandGate, CommandRequest, get_command_root, is_elevation_request


class ConfirmationOutcome(Enum):
    """Choices an operator can make on a confirmation prompt."""
    PROCEED_ONCE = "proceed_once"
    PROCEED_ALWAYS = "proceed_always"
    PROCEED_ALWAYS_TOOL = "proceed_always_tool"
    PROCEED_ALWAYS_SERVER = "proceed_always_server"
    MODIFY_WITH_EDITOR = "modify_with_editor"
    CANCEL = "cancel"


class ConfirmationState(Enum):
    """Where a single invocation stands in the authorization flow."""
    UNVALIDATED = "unvalidated"
    VALIDATED = "validated"
    APPROVED = "approved"
    DENIED = "denied"
    AWAITING_SECRET = "awaiting_secret"
    AWAITING_DECISION = "awaiting_decision"
    CANCELLED = "cancelled"


@dataclass(kw_only=True)
class ConfirmationRequest:
    """Base for every confirmation kind.

    Carries the data needed to render one decision prompt and a single-shot
    resolution channel. ``confirm`` resolves it and applies the side effect
    chosen by the coordinator; once the request is resolved or abandoned,
    further calls do nothing.
    """
    type: ClassVar[str] = ""

    title: str
    on_resolve: Optional[Callable[[Any], None]] = field(default=None, repr=False)
    _future: concurrent.futures.Future = field(
        default_factory=concurrent.futures.Future, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def confirm(self, value: Any) -> bool:
        """Resolve the request.

        Args:
            value: A ConfirmationOutcome, or the secret for password requests

        Returns:
            True if this call resolved the request, False if it was a no-op
        """
        with self._lock:
            if self._future.done():
                return False
            if self.on_resolve is not None:
                self.on_resolve(value)
            self._future.set_result(value)
            return True

    def decline(self) -> bool:
        """Resolve the request with its refusal value."""
        return self.confirm(ConfirmationOutcome.CANCEL)

    def abandon(self) -> bool:
        """Stop waiting for a resolution.

        Returns:
            False if the request had already been resolved
        """
        with self._lock:
            if self._future.done() and not self._future.cancelled():
                return False
            self._future.cancel()
            return True

    @property
    def resolved(self) -> bool:
        return self._future.done() and not self._future.cancelled()

    async def wait(self, cancel_token: Optional[CancellationToken] = None) -> Optional[Any]:
        """Wait for the resolution, racing it against cancellation.

        Returns:
            The resolved value, or None if cancellation came first
        """
        resolution = asyncio.wrap_future(self._future)
        if cancel_token is None:
            try:
                return await resolution
            except asyncio.CancelledError:
                if self._future.cancelled():
                    return None
                raise

        cancelled = asyncio.ensure_future(cancel_token.wait())
        try:
            done, _ = await asyncio.wait(
                {resolution, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()

        if resolution in done and not resolution.cancelled():
            return resolution.result()
        if not self.abandon():
            return self._future.result()
        return None


@dataclass(kw_only=True)
class ExecConfirmation(ConfirmationRequest):
    """Three-way approval for running a command."""
    type: ClassVar[str] = "exec"

    command: str
    root_command: str


@dataclass(kw_only=True)
class PasswordConfirmation(ConfirmationRequest):
    """Prompt for the elevation secret."""
    type: ClassVar[str] = "password"

    root_command: str = ELEVATION_KEYWORD

    def decline(self) -> bool:
        return self.confirm("")


@dataclass(kw_only=True)
class InfoConfirmation(ConfirmationRequest):
    type: ClassVar[str] = "info"

    prompt: str
    urls: List[str] = field(default_factory=list)


@dataclass(kw_only=True)
class EditConfirmation(ConfirmationRequest):
    type: ClassVar[str] = "edit"

    file_name: str
    file_diff: str


@dataclass(kw_only=True)
class ExternalToolConfirmation(ConfirmationRequest):
    type: ClassVar[str] = "external_tool"

    server_name: str
    tool_name: str
    tool_display_name: str = ""


ConfirmationHandler = Callable[[ConfirmationRequest], Awaitable[None]]


class ConfirmationCoordinator:
    """Decides whether a human must authorize an invocation.

    Owns the session whitelist writes: an "always allow" decision adds the
    root command so later invocations of it skip the prompt.
    """

    def __init__(self, gate: CommandGate, credential_cache: CredentialCache,
                 whitelist: Whitelist, supports_elevation: bool = True):
        """Initialize the coordinator.

        Args:
            gate: Gate used to validate requests before prompting
            credential_cache: Session cache for the elevation secret
            whitelist: Session whitelist of approved root commands
            supports_elevation: Whether the platform has the elevation mechanism
        """
        self.gate = gate
        self.credential_cache = credential_cache
        self.whitelist = whitelist
        self.supports_elevation = supports_elevation

    def should_confirm(self, request: CommandRequest) -> Optional[ConfirmationRequest]:
        """Build the confirmation needed before running request, if any.

        Returns:
            A confirmation request, or None when the invocation proceeds without
            a prompt (or is invalid and will be rejected by the executor path)
        """
        if self.gate.validate(request):
            return None
        root_command = get_command_root(request.command)

        if (self.supports_elevation and is_elevation_request(request.command)
                and not self.credential_cache.is_valid()):
            return PasswordConfirmation(
                title="Sudo Password Required",
                on_resolve=self._store_secret,
            )

        if root_command in self.whitelist:
            logger.policy(f"'{root_command}' is whitelisted for this session")
            return None

        def on_decision(outcome: ConfirmationOutcome) -> None:
            if outcome == ConfirmationOutcome.PROCEED_ALWAYS:
                logger.user(f"Chose 'always' allow for '{root_command}'.")
                self.whitelist.add(root_command)
            elif outcome == ConfirmationOutcome.CANCEL:
                logger.user(f"Denied command '{root_command}'.")
            else:
                logger.user(f"Allowed command '{root_command}' for this instance.")

        return ExecConfirmation(
            title="Confirm Shell Command",
            command=request.command,
            root_command=root_command,
            on_resolve=on_decision,
        )

    def _store_secret(self, secret: str) -> None:
        if secret:
            self.credential_cache.set(secret)

    async def authorize(self, request: CommandRequest, cancel_token: CancellationToken,
                        handler: ConfirmationHandler) -> ConfirmationState:
        """Run the authorization flow for one invocation.

        Args:
            request: The proposed command
            cancel_token: Token that abandons any pending prompt when fired
            handler: UI collaborator that renders a confirmation and resolves it

        Returns:
            The final state: APPROVED, DENIED or CANCELLED
        """
        error = self.gate.validate(request)
        if error:
            logger.policy(f"Rejected before confirmation: {error}")
            return ConfirmationState.DENIED

        while True:
            if cancel_token.cancelled:
                return ConfirmationState.CANCELLED

            details = self.should_confirm(request)
            if details is None:
                return ConfirmationState.APPROVED

            state = (ConfirmationState.AWAITING_SECRET
                     if isinstance(details, PasswordConfirmation)
                     else ConfirmationState.AWAITING_DECISION)
            logger.debug(f"Confirmation state: {state.value}")

            handler_task = asyncio.ensure_future(_run_handler(handler, details))
            try:
                value = await details.wait(cancel_token)
            finally:
                if not handler_task.done():
                    handler_task.cancel()

            if value is None:
                logger.system("Confirmation abandoned: invocation cancelled")
                return ConfirmationState.CANCELLED

            if isinstance(details, PasswordConfirmation):
                if not value:
                    return ConfirmationState.DENIED
                # Secret is cached now; the exec decision may still be needed
                continue

            if value == ConfirmationOutcome.CANCEL:
                return ConfirmationState.DENIED
            return ConfirmationState.APPROVED


async def _run_handler(handler: ConfirmationHandler, details: ConfirmationRequest) -> None:
    try:
        await handler(details)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.error(f"Confirmation handler failed: {e}")
        details.decline()


def create_confirmation_coordinator(gate: CommandGate, credential_cache: CredentialCache,
                                    whitelist: Whitelist,
                                    supports_elevation: bool = True) -> ConfirmationCoordinator:
    """Create a confirmation coordinator bound to session state."""
    return ConfirmationCoordinator(gate, credential_cache, whitelist, supports_elevation)
