"""Tests for the command line interface."""

import json
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from projectrag.cli import cli
from projectrag.cli.main import format_age
from projectrag.cli.search import format_line_range, get_relevance_color, make_snippet
from projectrag.exceptions import EmbeddingError
from projectrag.retrieval import RetrievalHit


@pytest.fixture
def runner(monkeypatch):
    """CLI runner with wide consoles so paths and table cells are not wrapped."""
    from projectrag.cli import index, main, search

    for module in (index, main, search):
        monkeypatch.setattr(module.console, "width", 200)
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    """A config file pointing the default index into tmp_path."""
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "index_path": str(tmp_path / "index.json"),
                "logging": {"console_enabled": False},
            }
        )
    )
    return path


@pytest.fixture
def fake_provider(embedder):
    """Make every index opened by the CLI use the fake embedder."""
    with patch("projectrag.semantic_index.get_embedding_provider", return_value=embedder):
        yield embedder


@pytest.fixture
def project_dir(tmp_path, text_about):
    root = tmp_path / "project"
    root.mkdir()
    (root / "volcano.md").write_text(text_about("volcanoes erupting molten lava"))
    (root / "garden.md").write_text(text_about("growing tomatoes in the garden"))
    return root


class TestHelperFunctions:
    """Tests for CLI formatting helpers."""

    def test_get_relevance_color(self):
        assert get_relevance_color(0.8) == "green"
        assert get_relevance_color(0.6) == "green"
        assert get_relevance_color(0.4) == "yellow"
        assert get_relevance_color(0.1) == "red"

    def test_format_line_range(self):
        """Test line range labels."""
        hit = RetrievalHit(project="p", file="a.py", content="", score=1.0)
        assert format_line_range(hit) == ""
        hit.line_start, hit.line_end = 3, 3
        assert format_line_range(hit) == "L3"
        hit.line_end = 9
        assert format_line_range(hit) == "L3-L9"

    def test_make_snippet(self):
        """Test that long content is shortened with an ellipsis."""
        assert make_snippet("short") == "short"
        snippet = make_snippet("word " * 100, max_length=50)
        assert snippet.endswith("...")
        assert len(snippet) <= 53

    def test_format_age(self):
        assert format_age(None) == "never"
        assert format_age(42) == "42s"
        assert format_age(120) == "2m"
        assert format_age(7200) == "2.0h"
        assert format_age(172800) == "2.0d"


class TestIndexCommand:
    """Tests for `projectrag index`."""

    def test_index_directory(self, runner, config_file, fake_provider, project_dir, tmp_path):
        """Test indexing a directory writes the configured index."""
        result = runner.invoke(cli, ["--config", str(config_file), "index", str(project_dir)])

        assert result.exit_code == 0, result.output
        assert "Indexing Summary" in result.output
        assert "2 files" in result.output
        assert (tmp_path / "index.json").exists()

    def test_index_path_override(self, runner, config_file, fake_provider, project_dir, tmp_path):
        target = tmp_path / "custom" / "idx.json"
        result = runner.invoke(
            cli,
            ["--config", str(config_file), "index", str(project_dir), "--index-path", str(target)],
        )
        assert result.exit_code == 0, result.output
        assert target.exists()
        assert not (tmp_path / "index.json").exists()

    def test_unknown_project(self, runner, config_file, fake_provider, project_dir):
        result = runner.invoke(
            cli, ["--config", str(config_file), "index", str(project_dir), "--project", "nope"]
        )
        assert result.exit_code == 1
        assert "Unknown project" in result.output

    def test_embedding_failure(self, runner, config_file, fake_provider, project_dir, monkeypatch):
        """Test that an unavailable model exits with an error."""

        def broken(text):
            raise EmbeddingError("no model")

        monkeypatch.setattr(fake_provider, "embed", broken)
        result = runner.invoke(cli, ["--config", str(config_file), "index", str(project_dir)])
        assert result.exit_code == 1
        assert "Embedding model unavailable" in result.output


class TestSearchCommand:
    """Tests for `projectrag search`."""

    @pytest.fixture
    def indexed(self, runner, config_file, fake_provider, project_dir):
        result = runner.invoke(cli, ["--config", str(config_file), "index", str(project_dir)])
        assert result.exit_code == 0, result.output

    def test_query_too_short(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "search", "a"])
        assert result.exit_code == 1
        assert "at least 2 characters" in result.output

    def test_empty_index(self, runner, config_file, fake_provider):
        """Test searching before anything was indexed."""
        result = runner.invoke(cli, ["--config", str(config_file), "search", "volcano"])
        assert result.exit_code == 0
        assert "No files have been indexed yet" in result.output

    def test_search_results(self, runner, config_file, fake_provider, indexed):
        """Test that the best match is shown first."""
        result = runner.invoke(
            cli, ["--config", str(config_file), "search", "molten", "lava", "volcanoes"]
        )
        assert result.exit_code == 0, result.output
        assert result.output.index("volcano.md") < result.output.index("garden.md")
        assert "Found 2 result(s)" in result.output

    def test_search_json(self, runner, config_file, fake_provider, indexed):
        """Test JSON output."""
        result = runner.invoke(
            cli, ["--config", str(config_file), "search", "tomatoes garden", "--json", "-n", "1"]
        )
        assert result.exit_code == 0, result.output

        data = json.loads(result.output)
        assert len(data["results"]) == 1
        hit = data["results"][0]
        assert hit["file"].endswith("garden.md")
        assert hit["project"] == "default"
        assert hit["line_start"] == 1
        assert data["truncated"] is False
        assert "advisory_message" not in data

    def test_search_compact(self, runner, config_file, fake_provider, indexed):
        result = runner.invoke(
            cli, ["--config", str(config_file), "search", "volcanoes", "--compact"]
        )
        assert result.exit_code == 0, result.output
        assert "Score" in result.output


class TestStatusAndConfig:
    """Tests for `projectrag status` and `projectrag config`."""

    def test_status_before_indexing(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "status"])
        assert result.exit_code == 0, result.output
        assert "default" in result.output
        assert "never" in result.output

    def test_status_after_indexing(self, runner, config_file, fake_provider, project_dir):
        runner.invoke(cli, ["--config", str(config_file), "index", str(project_dir)])
        result = runner.invoke(cli, ["--config", str(config_file), "status"])
        assert result.exit_code == 0, result.output
        assert "fake-model" in result.output

    def test_config_show(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "config", "show"])
        assert result.exit_code == 0, result.output
        assert "all-MiniLM-L6-v2" in result.output

    def test_config_init(self, runner, config_file, tmp_path):
        """Test writing a new config file."""
        target = tmp_path / "new.yaml"
        result = runner.invoke(cli, ["--config", str(config_file), "config", "init", str(target)])
        assert result.exit_code == 0, result.output
        assert target.exists()
        assert yaml.safe_load(target.read_text())["embedding"]["chunk_size"] == 1000

    def test_config_init_existing(self, runner, config_file):
        result = runner.invoke(
            cli, ["--config", str(config_file), "config", "init", str(config_file)]
        )
        assert result.exit_code == 0
        assert "unchanged" in result.output
