"""Tests for confirmation requests and the authorization flow."""
import asyncio

import pytest

from shellgate.commands.cancellation import CancellationToken
from shellgate.commands.confirmation import (
    ConfirmationCoordinator,
    ConfirmationOutcome,
    ConfirmationState,
    ExecConfirmation,
    InfoConfirmation,
    PasswordConfirmation,
)
from shellgate.commands.credentials import CredentialCache, Whitelist
from shellgate.commands.gate import CommandGate, CommandRequest, PolicyConfiguration


@pytest.fixture
def cache(clock):
    return CredentialCache(clock=clock)


@pytest.fixture
def whitelist():
    return Whitelist()


@pytest.fixture
def coordinator(tmp_path, cache, whitelist):
    gate = CommandGate(PolicyConfiguration(exclude_tools=("run_shell_command(rm)",)), tmp_path)
    return ConfirmationCoordinator(gate, cache, whitelist)


class TestConfirmationRequest:
    def test_confirm_is_single_shot(self):
        calls = []
        details = ExecConfirmation(title="t", command="ls", root_command="ls", on_resolve=calls.append)
        assert details.confirm(ConfirmationOutcome.PROCEED_ONCE)
        assert not details.confirm(ConfirmationOutcome.CANCEL)
        assert calls == [ConfirmationOutcome.PROCEED_ONCE]
        assert details.resolved

    def test_confirm_after_abandon_does_nothing(self):
        calls = []
        details = PasswordConfirmation(title="t", on_resolve=calls.append)
        assert details.abandon()
        assert not details.confirm("secret")
        assert calls == []
        assert not details.resolved

    def test_password_decline_is_empty_secret(self):
        details = PasswordConfirmation(title="t")
        details.decline()
        assert details._future.result() == ""

    def test_type_tags(self):
        assert ExecConfirmation.type == "exec"
        assert PasswordConfirmation.type == "password"
        assert InfoConfirmation(title="t", prompt="p").type == "info"

    @pytest.mark.anyio
    async def test_wait_returns_value(self):
        details = ExecConfirmation(title="t", command="ls", root_command="ls")
        asyncio.get_running_loop().call_soon(details.confirm, ConfirmationOutcome.PROCEED_ONCE)
        assert await details.wait(CancellationToken()) == ConfirmationOutcome.PROCEED_ONCE

    @pytest.mark.anyio
    async def test_wait_returns_none_on_cancel(self):
        token = CancellationToken()
        details = ExecConfirmation(title="t", command="ls", root_command="ls")
        asyncio.get_running_loop().call_soon(token.cancel)
        assert await details.wait(token) is None
        assert not details.confirm(ConfirmationOutcome.PROCEED_ONCE)


class TestShouldConfirm:
    def test_invalid_request_needs_no_prompt(self, coordinator):
        assert coordinator.should_confirm(CommandRequest(command="rm -rf x")) is None

    def test_plain_command_needs_exec_confirmation(self, coordinator):
        details = coordinator.should_confirm(CommandRequest(command="git status"))
        assert isinstance(details, ExecConfirmation)
        assert details.command == "git status"
        assert details.root_command == "git"

    def test_whitelisted_root_skips_prompt(self, coordinator, whitelist):
        whitelist.add("git")
        assert coordinator.should_confirm(CommandRequest(command="git log")) is None

    def test_proceed_always_whitelists_root(self, coordinator, whitelist):
        details = coordinator.should_confirm(CommandRequest(command="git status"))
        details.confirm(ConfirmationOutcome.PROCEED_ALWAYS)
        assert "git" in whitelist
        assert coordinator.should_confirm(CommandRequest(command="git diff")) is None

    def test_proceed_once_does_not_whitelist(self, coordinator, whitelist):
        details = coordinator.should_confirm(CommandRequest(command="git status"))
        details.confirm(ConfirmationOutcome.PROCEED_ONCE)
        assert len(whitelist) == 0

    def test_sudo_without_secret_asks_for_password(self, coordinator, cache):
        details = coordinator.should_confirm(CommandRequest(command="sudo apt update"))
        assert isinstance(details, PasswordConfirmation)
        details.confirm("hunter2")
        assert cache.get() == "hunter2"

    def test_empty_password_is_not_cached(self, coordinator, cache):
        details = coordinator.should_confirm(CommandRequest(command="sudo apt update"))
        details.decline()
        assert cache.get() is None

    def test_sudo_with_valid_secret_asks_for_exec(self, coordinator, cache):
        cache.set("hunter2")
        details = coordinator.should_confirm(CommandRequest(command="sudo apt update"))
        assert isinstance(details, ExecConfirmation)
        assert details.root_command == "sudo"

    def test_sudo_after_expiry_asks_again(self, coordinator, cache, clock):
        cache.set("hunter2")
        clock.advance(cache.ttl)
        assert isinstance(coordinator.should_confirm(CommandRequest(command="sudo ls")), PasswordConfirmation)

    def test_no_password_prompt_without_elevation_support(self, tmp_path, cache, whitelist):
        gate = CommandGate(PolicyConfiguration(), tmp_path)
        coordinator = ConfirmationCoordinator(gate, cache, whitelist, supports_elevation=False)
        assert isinstance(coordinator.should_confirm(CommandRequest(command="sudo ls")), ExecConfirmation)


class TestAuthorize:
    @pytest.mark.anyio
    async def test_proceed_once_approves(self, coordinator, scripted_handler):
        handler = scripted_handler(ConfirmationOutcome.PROCEED_ONCE)
        state = await coordinator.authorize(CommandRequest(command="ls"), CancellationToken(), handler)
        assert state == ConfirmationState.APPROVED
        assert len(handler.seen) == 1

    @pytest.mark.anyio
    async def test_cancel_denies(self, coordinator, scripted_handler):
        handler = scripted_handler(ConfirmationOutcome.CANCEL)
        state = await coordinator.authorize(CommandRequest(command="ls"), CancellationToken(), handler)
        assert state == ConfirmationState.DENIED

    @pytest.mark.anyio
    async def test_invalid_request_denied_without_prompt(self, coordinator, scripted_handler):
        handler = scripted_handler()
        state = await coordinator.authorize(CommandRequest(command="rm x"), CancellationToken(), handler)
        assert state == ConfirmationState.DENIED
        assert handler.seen == []

    @pytest.mark.anyio
    async def test_whitelisted_command_approved_without_prompt(self, coordinator, whitelist, scripted_handler):
        whitelist.add("ls")
        handler = scripted_handler()
        state = await coordinator.authorize(CommandRequest(command="ls -la"), CancellationToken(), handler)
        assert state == ConfirmationState.APPROVED
        assert handler.seen == []

    @pytest.mark.anyio
    async def test_password_then_exec_decision(self, coordinator, cache, scripted_handler):
        handler = scripted_handler("hunter2", ConfirmationOutcome.PROCEED_ONCE)
        state = await coordinator.authorize(CommandRequest(command="sudo ls"), CancellationToken(), handler)
        assert state == ConfirmationState.APPROVED
        assert [type(d) for d in handler.seen] == [PasswordConfirmation, ExecConfirmation]
        assert cache.get() == "hunter2"

    @pytest.mark.anyio
    async def test_empty_password_denies(self, coordinator, scripted_handler):
        handler = scripted_handler("")
        state = await coordinator.authorize(CommandRequest(command="sudo ls"), CancellationToken(), handler)
        assert state == ConfirmationState.DENIED

    @pytest.mark.anyio
    async def test_already_cancelled(self, coordinator, scripted_handler):
        token = CancellationToken()
        token.cancel()
        handler = scripted_handler()
        state = await coordinator.authorize(CommandRequest(command="ls"), token, handler)
        assert state == ConfirmationState.CANCELLED
        assert handler.seen == []

    @pytest.mark.anyio
    async def test_cancel_while_waiting_abandons_request(self, coordinator, cache):
        pending = []

        async def handler(details):
            pending.append(details)

        token = CancellationToken()
        task = asyncio.ensure_future(coordinator.authorize(CommandRequest(command="sudo ls"), token, handler))
        while not pending:
            await asyncio.sleep(0)
        token.cancel()

        assert await task == ConfirmationState.CANCELLED
        # A late answer is ignored and stores nothing
        assert not pending[0].confirm("hunter2")
        assert cache.get() is None

    @pytest.mark.anyio
    async def test_failing_handler_declines(self, coordinator):
        async def handler(details):
            raise RuntimeError("display went away")

        state = await coordinator.authorize(CommandRequest(command="ls"), CancellationToken(), handler)
        assert state == ConfirmationState.DENIED
