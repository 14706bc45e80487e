"""Local model resolution for the Ollama command-line runner."""

import shlex
from dataclasses import dataclass
from pathlib import PurePath

from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import ProviderError
from social_card_generator.utils.logging import get_logger

from .cli_provider import CommandRunner, run_shell_command
from .state_store import KeyValueStore

logger = get_logger(__name__)

LAST_USED_MODEL_KEY = "ollama.last_used_model"
LIST_TIMEOUT = 5.0
PS_TIMEOUT = 3.0


@dataclass(frozen=True)
class OllamaModel:
    name: str
    size: str = "unknown"
    modified: str = "unknown"


def _tokens(command: str) -> list[str]:
    try:
        return shlex.split(command)
    except ValueError:
        return command.split()


def is_ollama_command(command: str) -> bool:
    """True for ``ollama``, ``ollama run`` and ``ollama run <model>``."""
    tokens = _tokens(command)
    if not tokens or PurePath(tokens[0]).name != "ollama":
        return False
    return len(tokens) == 1 or tokens[1] == "run"


def explicit_ollama_model(command: str) -> str | None:
    """The model named in ``ollama run <model>``, if any."""
    tokens = _tokens(command)
    if len(tokens) >= 3 and tokens[1] == "run":
        return tokens[2]
    return None


def parse_model_list(output: str) -> list[OllamaModel]:
    """Parse ``ollama list``: header, then NAME ID SIZE MODIFIED columns."""
    models = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) < 3:
            continue
        models.append(
            OllamaModel(
                name=parts[0],
                size=parts[2] or "unknown",
                modified=" ".join(parts[3:]) or "unknown",
            )
        )
    return models


def parse_running_model(output: str) -> str | None:
    """First model name listed by ``ollama ps``."""
    for line in output.splitlines()[1:]:
        parts = line.split()
        if parts:
            return parts[0]
    return None


class OllamaModelResolver:
    """Picks which local model ``ollama run`` should use.

    Preference: configured model, then the model currently loaded, then the
    last model used successfully (if still installed), then the first
    installed model.
    """

    def __init__(
        self,
        store: KeyValueStore,
        configured_model: str = "",
        executable: str = "ollama",
        runner: CommandRunner = run_shell_command,
    ):
        self.store = store
        self.configured_model = configured_model.strip()
        self.executable = executable
        self._runner = runner

    def run_command(self, model: str) -> str:
        return f"{self.executable} run {shlex.quote(model)}"

    async def list_models(self) -> list[OllamaModel]:
        """Installed models.

        Raises:
            ProviderError: If ``ollama list`` fails or times out
        """
        command = f"{self.executable} list"
        try:
            result = await self._runner(command, timeout=LIST_TIMEOUT)
        except ProviderError as e:
            raise ProviderError(
                f"Failed to execute '{command}': {e.message}. Make sure Ollama is installed.",
                error_code=ErrorCode.PRV_CLI_SPAWN.value,
            ) from e
        if result.returncode != 0:
            raise ProviderError(
                f"Failed to get Ollama models: {result.stderr.strip()}",
                error_code=ErrorCode.PRV_CLI_EXIT.value,
                context={"exit_code": result.returncode},
            )
        models = parse_model_list(result.stdout)
        logger.debug("ollama_models_listed", count=len(models))
        return models

    async def running_model(self) -> str | None:
        """Model currently loaded in memory, or None if unknown."""
        try:
            result = await self._runner(f"{self.executable} ps", timeout=PS_TIMEOUT)
        except ProviderError as e:
            logger.debug("ollama_ps_failed", error=str(e))
            return None
        if result.returncode != 0:
            return None
        return parse_running_model(result.stdout)

    async def resolve(self) -> str:
        """Return the model to run.

        Raises:
            ProviderError: If no model is configured, running or installed
        """
        if self.configured_model:
            logger.info("ollama_model_selected", model=self.configured_model, source="config")
            return self.configured_model

        running = await self.running_model()
        if running:
            logger.info("ollama_model_selected", model=running, source="running")
            return running

        available = await self.list_models()
        last_used = self.store.get(LAST_USED_MODEL_KEY)
        if last_used and any(m.name == last_used for m in available):
            logger.info("ollama_model_selected", model=last_used, source="last_used")
            return last_used

        if available:
            first = available[0].name
            logger.info("ollama_model_selected", model=first, source="first_available")
            return first

        raise ProviderError(
            "No Ollama models available",
            suggestion="Install one with 'ollama pull <model>'",
            error_code=ErrorCode.PRV_NO_LOCAL_MODELS.value,
        )

    def remember(self, model: str) -> None:
        """Persist ``model`` as the last one used successfully."""
        self.store.set(LAST_USED_MODEL_KEY, model)
