"""Tests for the command-line provider and shell runner."""

import asyncio
import shlex
import sys

import pytest

from social_card_generator.cancellation import CancellationToken
from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import (
    CancellationError,
    ProviderError,
    ProviderTimeoutError,
)
from social_card_generator.models import ProviderKind
from social_card_generator.providers import CliProvider, CommandResult, run_shell_command
from social_card_generator.providers.ollama import OllamaModelResolver
from social_card_generator.providers.state_store import InMemoryStateStore

PYTHON = shlex.quote(sys.executable)


def python_command(code: str) -> str:
    return f"{PYTHON} -c {shlex.quote(code)}"


UPPERCASE = python_command("import sys; sys.stdout.write(sys.stdin.read().upper())")
FAIL = python_command("import sys; sys.stderr.write('model overloaded'); sys.exit(3)")
SLEEP = python_command("import time; time.sleep(30)")
PWD = python_command("import os, sys; sys.stdout.write(os.getcwd())")


class RecordingRunner:
    """Fake command runner returning canned results."""

    def __init__(self, *results: CommandResult):
        self.results = list(results)
        self.commands: list[str] = []
        self.inputs: list[str | None] = []

    async def __call__(self, command, input_text=None, **kwargs):
        self.commands.append(command)
        self.inputs.append(input_text)
        return self.results.pop(0)


# ============================================================================
# Real subprocesses
# ============================================================================


class TestRunShellCommand:
    """Test the shell runner against real processes."""

    @pytest.mark.asyncio
    async def test_feeds_stdin_and_captures_stdout(self):
        result = await run_shell_command(UPPERCASE, "hello card")

        assert result.returncode == 0
        assert result.stdout == "HELLO CARD"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        with pytest.raises(ProviderTimeoutError) as exc_info:
            await run_shell_command(SLEEP, timeout=0.5)

        assert exc_info.value.error_code == ErrorCode.PRV_TIMEOUT.value

    @pytest.mark.asyncio
    async def test_pre_cancelled_token_never_spawns(self):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancellationError):
            await run_shell_command(UPPERCASE, "x", cancellation=token)

    @pytest.mark.asyncio
    async def test_cancel_kills_running_process(self):
        token = CancellationToken()
        loop = asyncio.get_running_loop()
        loop.call_later(0.3, token.cancel)
        started = loop.time()

        with pytest.raises(CancellationError):
            await run_shell_command(SLEEP, cancellation=token)

        assert loop.time() - started < 10


class TestCliProvider:
    """Test CliProvider against real processes."""

    @pytest.mark.asyncio
    async def test_returns_stdout(self):
        provider = CliProvider(UPPERCASE)

        assert await provider.execute("design please") == "DESIGN PLEASE"
        assert provider.handle.kind is ProviderKind.CLI
        assert provider.handle.is_cli
        assert provider.display_name == f"CLI: {UPPERCASE}"

    @pytest.mark.asyncio
    async def test_runs_in_working_dir(self, tmp_path):
        provider = CliProvider(PWD, working_dir=tmp_path)

        output = await provider.execute("")

        assert output == str(tmp_path.resolve()) or output == str(tmp_path)

    @pytest.mark.asyncio
    async def test_non_zero_exit_includes_stderr(self):
        provider = CliProvider(FAIL)

        with pytest.raises(ProviderError) as exc_info:
            await provider.execute("prompt")

        error = exc_info.value
        assert "failed with exit code 3" in error.message
        assert "model overloaded" in error.message
        assert error.error_code == ErrorCode.PRV_CLI_EXIT.value
        assert error.context["exit_code"] == 3

    @pytest.mark.asyncio
    async def test_missing_command_is_spawn_error(self):
        provider = CliProvider("definitely-not-a-real-llm-cli-4821")

        with pytest.raises(ProviderError) as exc_info:
            await provider.execute("prompt")

        assert exc_info.value.error_code == ErrorCode.PRV_CLI_SPAWN.value
        assert "available in your PATH" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self):
        provider = CliProvider(SLEEP, timeout=0.5)

        with pytest.raises(ProviderTimeoutError, match="timed out"):
            await provider.execute("prompt")

    @pytest.mark.asyncio
    async def test_is_available(self):
        assert await CliProvider.is_available(PYTHON)
        assert not await CliProvider.is_available("definitely-not-a-real-llm-cli-4821")


# ============================================================================
# Ollama integration
# ============================================================================


class TestCliProviderWithOllama:
    """Test model resolution for bare ``ollama`` commands."""

    @pytest.mark.asyncio
    async def test_bare_ollama_resolves_and_remembers_model(self):
        store = InMemoryStateStore()
        resolver_runner = RecordingRunner(
            CommandResult(0, "NAME ID SIZE PROCESSOR UNTIL\n", ""),
            CommandResult(0, "NAME ID SIZE MODIFIED\nllama3:8b abc 4.7GB 2 days ago\n", ""),
        )
        resolver = OllamaModelResolver(store, runner=resolver_runner)
        runner = RecordingRunner(CommandResult(0, '{"designs": []}', ""))
        provider = CliProvider("ollama", ollama=resolver, runner=runner)

        output = await provider.execute("prompt text")

        assert output == '{"designs": []}'
        assert runner.commands == ["ollama run llama3:8b"]
        assert runner.inputs == ["prompt text"]
        assert store.get("ollama.last_used_model") == "llama3:8b"

    @pytest.mark.asyncio
    async def test_explicit_model_skips_resolution(self):
        store = InMemoryStateStore()
        resolver = OllamaModelResolver(store, runner=RecordingRunner())
        runner = RecordingRunner(CommandResult(0, "ok", ""))
        provider = CliProvider("ollama run mistral", ollama=resolver, runner=runner)

        await provider.execute("prompt")

        assert runner.commands == ["ollama run mistral"]
        assert store.get("ollama.last_used_model") == "mistral"

    @pytest.mark.asyncio
    async def test_failed_run_is_not_remembered(self):
        store = InMemoryStateStore()
        resolver = OllamaModelResolver(store, configured_model="phi3", runner=RecordingRunner())
        runner = RecordingRunner(CommandResult(1, "", "model crashed"))
        provider = CliProvider("ollama", ollama=resolver, runner=runner)

        with pytest.raises(ProviderError):
            await provider.execute("prompt")

        assert store.get("ollama.last_used_model") is None

    @pytest.mark.asyncio
    async def test_other_commands_ignore_resolver(self):
        resolver = OllamaModelResolver(InMemoryStateStore(), runner=RecordingRunner())
        runner = RecordingRunner(CommandResult(0, "ok", ""))
        provider = CliProvider("claude -p", ollama=resolver, runner=runner)

        await provider.execute("prompt")

        assert runner.commands == ["claude -p"]
