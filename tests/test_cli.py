"""End-to-end tests for the social-cards command line."""

import json
import shlex
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from social_card_generator.cli import app
from social_card_generator.utils.logging import configure_logging

runner = CliRunner()

REPLY = {
    "title": "Five Cooking Mistakes",
    "summary": "New cooks rush and under-season.",
    "analysis": "Warm kitchen palette.",
    "designs": [
        {"title": "Warm Kitchen", "html": "<div>Warm</div>"},
        {"title": "Chalkboard", "html": "<div>Chalk</div>"},
    ],
}


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Run each command in an empty directory and restore logging afterwards."""
    monkeypatch.chdir(tmp_path)
    yield
    configure_logging()


def reply_command(tmp_path: Path, reply: dict | None = None, exit_code: int = 0) -> str:
    """Build a shell command that consumes the prompt and prints ``reply``."""
    script = tmp_path / "model.py"
    script.write_text(
        "import sys\n"
        "sys.stdin.read()\n"
        f"sys.stdout.write({json.dumps(json.dumps(reply or REPLY))})\n"
        f"sys.exit({exit_code})\n",
        encoding="utf-8",
    )
    return f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"


def write_post(tmp_path: Path) -> Path:
    post = tmp_path / "post.md"
    post.write_text("# Five Cooking Mistakes\n\nSalt early.\n", encoding="utf-8")
    return post


class TestGenerateCommand:
    """Test `social-cards generate`."""

    def test_writes_designs(self, tmp_path):
        out = tmp_path / "out"

        result = runner.invoke(
            app,
            [
                "generate",
                str(write_post(tmp_path)),
                "--provider",
                "cli",
                "--cli-command",
                reply_command(tmp_path),
                "--count",
                "2",
                "--output-dir",
                str(out),
            ],
        )

        assert result.exit_code == 0, result.output
        assert (out / "design-01.html").read_text(encoding="utf-8") == "<div>Warm</div>"
        assert (out / "design-02.html").exists()
        document = json.loads((out / "designs.json").read_text(encoding="utf-8"))
        assert document["title"] == "Five Cooking Mistakes"
        assert document["dimensions"] == {"width": 1200, "height": 630}
        assert [d["title"] for d in document["designs"]] == ["Warm Kitchen", "Warm Kitchen"]
        assert all("generationTimeMs" in d for d in document["designs"])

    def test_json_output_and_size(self, tmp_path):
        out = tmp_path / "out"

        result = runner.invoke(
            app,
            [
                "generate",
                str(write_post(tmp_path)),
                "--provider",
                "cli",
                "--cli-command",
                reply_command(tmp_path),
                "--count",
                "1",
                "-W",
                "1080",
                "-H",
                "1080",
                "--output-dir",
                str(out),
                "--json",
            ],
        )

        assert result.exit_code == 0, result.output
        assert '"modelName"' in result.output
        document = json.loads((out / "designs.json").read_text(encoding="utf-8"))
        assert document["dimensions"] == {"width": 1080, "height": 1080}
        assert [d["title"] for d in document["designs"]] == ["Warm Kitchen"]

    def test_failing_command_exits_1(self, tmp_path):
        config = tmp_path / "social-cards.yaml"
        config.write_text("max_attempts: 1\n", encoding="utf-8")

        result = runner.invoke(
            app,
            [
                "generate",
                str(write_post(tmp_path)),
                "--provider",
                "cli",
                "--cli-command",
                reply_command(tmp_path, exit_code=3),
                "--config",
                str(config),
                "--output-dir",
                str(tmp_path / "out"),
            ],
        )

        assert result.exit_code == 1
        assert not (tmp_path / "out" / "designs.json").exists()

    def test_missing_post(self, tmp_path):
        result = runner.invoke(app, ["generate", str(tmp_path / "nope.md")])

        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_bad_config_exits_1(self, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("number_of_designs: 42\n", encoding="utf-8")

        result = runner.invoke(
            app, ["generate", str(write_post(tmp_path)), "--config", str(config)]
        )

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_cli_provider_needs_command(self, tmp_path):
        result = runner.invoke(
            app, ["generate", str(write_post(tmp_path)), "--provider", "cli"]
        )

        assert result.exit_code == 1


class TestModifyCommand:
    """Test `social-cards modify`."""

    def test_rewrites_designs(self, tmp_path, sample_designs):
        designs_file = tmp_path / "designs.json"
        designs_file.write_text(
            json.dumps(
                {
                    "title": "Old",
                    "dimensions": {"width": 1080, "height": 1350},
                    "designs": [d.to_dict() for d in sample_designs],
                }
            ),
            encoding="utf-8",
        )

        result = runner.invoke(
            app,
            [
                "modify",
                str(designs_file),
                "make design 2 darker",
                "--provider",
                "cli",
                "--cli-command",
                reply_command(tmp_path),
            ],
        )

        assert result.exit_code == 0, result.output
        document = json.loads(designs_file.read_text(encoding="utf-8"))
        assert [d["title"] for d in document["designs"]] == ["Warm Kitchen", "Chalkboard"]
        assert document["dimensions"] == {"width": 1080, "height": 1350}
        assert (tmp_path / "design-02.html").read_text(encoding="utf-8") == "<div>Chalk</div>"

    def test_malformed_designs_file(self, tmp_path):
        designs_file = tmp_path / "designs.json"
        designs_file.write_text("[not json", encoding="utf-8")

        result = runner.invoke(
            app, ["modify", str(designs_file), "darker", "--provider", "cli", "--cli-command", "x"]
        )

        assert result.exit_code == 1
        assert "Cannot read designs" in result.output
