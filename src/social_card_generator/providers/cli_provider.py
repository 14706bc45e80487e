"""Provider that pipes the prompt into a local command-line program."""

from __future__ import annotations

import asyncio
import os
import signal
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from social_card_generator.cancellation import CancellationToken, raise_if_cancelled
from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import (
    CancellationError,
    ProviderError,
    ProviderTimeoutError,
)
from social_card_generator.models import ProviderHandle, ProviderKind
from social_card_generator.utils.logging import get_logger

from .base import BaseProvider, ChunkCallback

if TYPE_CHECKING:
    from .ollama import OllamaModelResolver

logger = get_logger(__name__)

AVAILABILITY_TIMEOUT = 2.0
COMMAND_NOT_FOUND = 127
_POSIX = os.name != "nt"


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


CommandRunner = Callable[..., Awaitable[CommandResult]]


def _spawn_error(command: str, reason: str) -> ProviderError:
    return ProviderError(
        f"Failed to execute '{command}': {reason}. Make sure the CLI is "
        "installed and available in your PATH.",
        error_code=ErrorCode.PRV_CLI_SPAWN.value,
        context={"command": command},
    )


def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started."""
    if process.returncode is not None:
        return
    try:
        if _POSIX:
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


async def run_shell_command(
    command: str,
    input_text: str | None = None,
    *,
    cwd: Path | str | None = None,
    timeout: float | None = None,
    cancellation: CancellationToken | None = None,
) -> CommandResult:
    """Run ``command`` through the shell, feeding ``input_text`` on stdin.

    The process runs in its own session so a kill reaches the children the
    shell spawned.

    Raises:
        CancellationError: If cancelled before spawning or while running
        ProviderTimeoutError: If ``timeout`` elapses (the process is killed)
        ProviderError: If the shell cannot be started
    """
    raise_if_cancelled(cancellation)

    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.PIPE
            if input_text is not None
            else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=os.environ.copy(),
            start_new_session=_POSIX,
        )
    except OSError as e:
        raise _spawn_error(command, str(e)) from e

    unregister: Callable[[], None] = lambda: None  # noqa: E731
    if cancellation is not None:
        unregister = cancellation.on_cancellation_requested(lambda: _kill(process))

    data = input_text.encode("utf-8") if input_text is not None else None
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(data), timeout)
    except TimeoutError as e:
        _kill(process)
        await process.wait()
        raise ProviderTimeoutError(
            f"CLI command '{command}' timed out after {timeout}s",
            error_code=ErrorCode.PRV_TIMEOUT.value,
            context={"command": command, "timeout": timeout},
        ) from e
    except asyncio.CancelledError:
        _kill(process)
        raise
    finally:
        unregister()

    if cancellation is not None and cancellation.is_cancellation_requested:
        raise CancellationError()

    return CommandResult(
        returncode=process.returncode if process.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


class CliProvider(BaseProvider):
    """Runs a shell command per prompt: prompt on stdin, reply on stdout.

    Configuration:
        working_dir: Directory the command runs in (default: current directory)
        timeout: Seconds before the process is killed (default: no limit)
        ollama: Resolver used when the command is a bare ``ollama`` runner
    """

    def __init__(
        self,
        command: str | ProviderHandle,
        working_dir: Path | str | None = None,
        timeout: float | None = None,
        ollama: OllamaModelResolver | None = None,
        runner: CommandRunner = run_shell_command,
    ):
        if isinstance(command, ProviderHandle):
            handle = command
        else:
            handle = ProviderHandle(
                kind=ProviderKind.CLI,
                identifier=command.strip(),
                display_name=f"CLI: {command.strip()}",
            )
        super().__init__(
            handle,
            command=handle.identifier,
            working_dir=str(working_dir) if working_dir else None,
            timeout=timeout,
        )
        self.command = handle.identifier
        self.working_dir = Path(working_dir) if working_dir else Path.cwd()
        self.timeout = timeout
        self.ollama = ollama
        self._runner = runner

    async def _resolve_command(self) -> tuple[str, str | None]:
        """Return the command to run and the local model it targets, if any."""
        if self.ollama is None:
            return self.command, None
        from .ollama import explicit_ollama_model, is_ollama_command

        if not is_ollama_command(self.command):
            return self.command, None
        model = explicit_ollama_model(self.command) or await self.ollama.resolve()
        return self.ollama.run_command(model), model

    async def execute(
        self,
        prompt: str,
        cancellation: CancellationToken | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> str:
        raise_if_cancelled(cancellation)
        command, local_model = await self._resolve_command()

        logger.info("cli_provider_started", command=command, cwd=str(self.working_dir))
        start_time = time.perf_counter()
        try:
            result = await self._runner(
                command,
                prompt,
                cwd=self.working_dir,
                timeout=self.timeout,
                cancellation=cancellation,
            )
        except CancellationError:
            logger.info("cli_provider_cancelled", command=command)
            raise

        duration = round(time.perf_counter() - start_time, 2)
        if result.returncode != 0:
            logger.error(
                "cli_provider_failed",
                command=command,
                exit_code=result.returncode,
                stderr=result.stderr[:500],
                duration=duration,
            )
            if result.returncode == COMMAND_NOT_FOUND:
                raise _spawn_error(
                    command, result.stderr.strip() or "command not found"
                )
            raise ProviderError(
                f"CLI command '{command}' failed with exit code "
                f"{result.returncode}\n{result.stderr}",
                error_code=ErrorCode.PRV_CLI_EXIT.value,
                context={"command": command, "exit_code": result.returncode},
            )

        logger.info(
            "cli_provider_completed",
            command=command,
            response_length=len(result.stdout),
            duration=duration,
        )
        if local_model and self.ollama is not None:
            self.ollama.remember(local_model)
        return result.stdout

    @staticmethod
    async def is_available(
        command: str,
        timeout: float = AVAILABILITY_TIMEOUT,
        runner: CommandRunner = run_shell_command,
    ) -> bool:
        """Check that ``command --version`` exits cleanly within ``timeout``."""
        try:
            result = await runner(f"{command} --version", timeout=timeout)
        except ProviderError as e:
            logger.debug("cli_unavailable", command=command, error=str(e))
            return False
        return result.returncode == 0
