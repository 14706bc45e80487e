"""Tests for Ollama command parsing and model resolution."""

import pytest

from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import ProviderError
from social_card_generator.providers import CommandResult, InMemoryStateStore
from social_card_generator.providers.ollama import (
    LAST_USED_MODEL_KEY,
    OllamaModel,
    OllamaModelResolver,
    explicit_ollama_model,
    is_ollama_command,
    parse_model_list,
    parse_running_model,
)

LIST_OUTPUT = """NAME               ID              SIZE      MODIFIED
llama3:8b          365c0bd3c000    4.7 GB    2 days ago
mistral:latest     f974a74358d6    4.1 GB    3 weeks ago
"""

PS_EMPTY = "NAME    ID    SIZE    PROCESSOR    UNTIL\n"
PS_RUNNING = PS_EMPTY + "mistral:latest  f974a74358d6  5.4 GB  100% GPU  4 minutes from now\n"


class ScriptedRunner:
    """Maps command prefixes to results or exceptions."""

    def __init__(self, responses):
        self.responses = responses
        self.commands = []

    async def __call__(self, command, input_text=None, **kwargs):
        self.commands.append(command)
        for prefix, response in self.responses.items():
            if command.endswith(prefix):
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"Unexpected command: {command}")


class TestCommandParsing:
    """Test recognizing and parsing ollama commands."""

    @pytest.mark.parametrize(
        ("command", "expected"),
        [
            ("ollama", True),
            ("ollama run", True),
            ("ollama run llama3", True),
            ("/usr/local/bin/ollama", True),
            ("ollama list", False),
            ("claude -p", False),
            ("", False),
        ],
    )
    def test_is_ollama_command(self, command, expected):
        assert is_ollama_command(command) is expected

    def test_explicit_model(self):
        assert explicit_ollama_model("ollama run llama3:8b") == "llama3:8b"
        assert explicit_ollama_model("ollama run") is None
        assert explicit_ollama_model("ollama") is None

    def test_parse_model_list(self):
        models = parse_model_list(LIST_OUTPUT)

        assert [m.name for m in models] == ["llama3:8b", "mistral:latest"]
        assert models[0] == OllamaModel("llama3:8b", "4.7", "GB 2 days ago")

    def test_parse_compact_columns(self):
        models = parse_model_list("NAME ID SIZE MODIFIED\nphi3:mini 4f22 2.2GB yesterday\n")

        assert models == [OllamaModel("phi3:mini", "2.2GB", "yesterday")]

    def test_parse_model_list_skips_header_and_short_lines(self):
        assert parse_model_list("NAME ID SIZE MODIFIED\n\nbroken line\n") == []

    def test_parse_running_model(self):
        assert parse_running_model(PS_RUNNING) == "mistral:latest"
        assert parse_running_model(PS_EMPTY) is None


class TestOllamaModelResolver:
    """Test choosing which local model to run."""

    @pytest.mark.asyncio
    async def test_configured_model_wins(self):
        runner = ScriptedRunner({})
        resolver = OllamaModelResolver(InMemoryStateStore(), configured_model="phi3", runner=runner)

        assert await resolver.resolve() == "phi3"
        assert runner.commands == []

    @pytest.mark.asyncio
    async def test_running_model_is_next(self):
        runner = ScriptedRunner({"ps": CommandResult(0, PS_RUNNING, "")})
        resolver = OllamaModelResolver(InMemoryStateStore(), runner=runner)

        assert await resolver.resolve() == "mistral:latest"

    @pytest.mark.asyncio
    async def test_last_used_model_if_still_installed(self):
        store = InMemoryStateStore({LAST_USED_MODEL_KEY: "mistral:latest"})
        runner = ScriptedRunner(
            {"ps": CommandResult(0, PS_EMPTY, ""), "list": CommandResult(0, LIST_OUTPUT, "")}
        )
        resolver = OllamaModelResolver(store, runner=runner)

        assert await resolver.resolve() == "mistral:latest"

    @pytest.mark.asyncio
    async def test_uninstalled_last_used_falls_back_to_first(self):
        store = InMemoryStateStore({LAST_USED_MODEL_KEY: "gemma:2b"})
        runner = ScriptedRunner(
            {"ps": CommandResult(1, "", "not running"), "list": CommandResult(0, LIST_OUTPUT, "")}
        )
        resolver = OllamaModelResolver(store, runner=runner)

        assert await resolver.resolve() == "llama3:8b"

    @pytest.mark.asyncio
    async def test_no_models_installed(self):
        runner = ScriptedRunner(
            {
                "ps": CommandResult(0, PS_EMPTY, ""),
                "list": CommandResult(0, "NAME ID SIZE MODIFIED\n", ""),
            }
        )
        resolver = OllamaModelResolver(InMemoryStateStore(), runner=runner)

        with pytest.raises(ProviderError) as exc_info:
            await resolver.resolve()

        assert exc_info.value.message == "No Ollama models available"
        assert exc_info.value.error_code == ErrorCode.PRV_NO_LOCAL_MODELS.value

    @pytest.mark.asyncio
    async def test_list_failure_reports_stderr(self):
        runner = ScriptedRunner({"list": CommandResult(1, "", "could not connect to ollama app")})
        resolver = OllamaModelResolver(InMemoryStateStore(), runner=runner)

        with pytest.raises(ProviderError, match="Failed to get Ollama models: could not connect"):
            await resolver.list_models()

    @pytest.mark.asyncio
    async def test_ps_error_is_ignored(self):
        runner = ScriptedRunner(
            {"ps": ProviderError("spawn failed"), "list": CommandResult(0, LIST_OUTPUT, "")}
        )
        resolver = OllamaModelResolver(InMemoryStateStore(), runner=runner)

        assert await resolver.resolve() == "llama3:8b"

    def test_run_command_quotes_model(self):
        resolver = OllamaModelResolver(InMemoryStateStore(), executable="/opt/ollama")

        assert resolver.run_command("llama3:8b") == "/opt/ollama run llama3:8b"
        assert resolver.run_command("odd name") == "/opt/ollama run 'odd name'"

    def test_remember(self):
        store = InMemoryStateStore()
        OllamaModelResolver(store).remember("llama3:8b")

        assert store.get(LAST_USED_MODEL_KEY) == "llama3:8b"
        assert OllamaModel("x").size == "unknown"
