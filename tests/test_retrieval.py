"""Tests for multi-project retrieval."""

import pytest

from projectrag.config.models import ProjectRAGConfig, ProjectSettings
from projectrag.exceptions import EmbeddingError
from projectrag.jobs import IndexingJobManager, JobState
from projectrag.retrieval import (
    ADVISORY_MESSAGE,
    ProjectSource,
    RetrievalResponse,
    apply_token_budget,
    estimate_tokens,
    search_projects,
    sources_from_config,
)
from projectrag.index.store import IndexStore
from projectrag.semantic_index import SemanticIndex, get_shared_index


class TestTokenBudget:
    """Tests for token estimation and budgeting."""

    def test_estimate_tokens(self):
        """Test the four-characters-per-token estimate rounds up."""
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("a" * 400) == 100

    def test_no_budget_keeps_everything(self):
        kept, truncated, tokens = apply_token_budget(["a" * 8, "b" * 4], None, str)
        assert kept == ["a" * 8, "b" * 4]
        assert truncated is False
        assert tokens == 3

    def test_budget_stops_at_first_overflow(self):
        """Test that items are kept in order until the budget would be exceeded."""
        items = ["a" * 40, "b" * 40, "c" * 4]
        kept, truncated, tokens = apply_token_budget(items, 15, str)
        assert kept == ["a" * 40]
        assert truncated is True
        assert tokens == 10

    def test_budget_exactly_met(self):
        kept, truncated, tokens = apply_token_budget(["a" * 40, "b" * 40], 20, str)
        assert len(kept) == 2
        assert truncated is False
        assert tokens == 20


class TestSourcesFromConfig:
    """Tests for building project sources from configuration."""

    def test_default_source(self, tmp_path):
        """Test that without projects the default index is used."""
        config = ProjectRAGConfig(index_path=tmp_path / "index.json")
        sources = sources_from_config(config)
        assert len(sources) == 1
        assert sources[0].name == "default"
        assert sources[0].index_path == tmp_path / "index.json"

    def test_project_sources(self, tmp_path):
        """Test that each project gets its own source with its model."""
        config = ProjectRAGConfig(
            projects=[
                ProjectSettings(name="web", path=tmp_path / "web"),
                ProjectSettings(
                    name="api",
                    path=tmp_path / "api",
                    model_name="all-mpnet-base-v2",
                    semantic_search_enabled=False,
                ),
            ]
        )
        web, api = sources_from_config(config)
        assert web.index_path == tmp_path / "web" / ".projectrag" / "index.json"
        assert web.model_name == "all-MiniLM-L6-v2"
        assert api.model_name == "all-mpnet-base-v2"
        assert api.enabled is False


class TestSearchProjects:
    """Tests for search_projects."""

    @pytest.fixture
    def sources(self, tmp_path, embedder, text_about):
        """Two indexed projects sharing the fake embedder."""
        result = []
        for name, topic in [("web", "react components and hooks"), ("api", "database migrations")]:
            root = (tmp_path / name).resolve()
            root.mkdir()
            index_path = tmp_path / f"{name}.json"
            index = SemanticIndex(index_path, embedder=embedder)
            index.index_file(str(root / "src" / "main.md"), text_about(topic), mtime=1.0)
            index.mark_full_index()
            result.append(ProjectSource(name=name, index_path=index_path, root=root, model_name="fake-model"))
        return result

    @pytest.fixture
    def open_index(self, embedder):
        return lambda source: SemanticIndex(source.index_path, embedder=embedder)

    def test_merges_projects(self, sources, open_index):
        """Test that hits from every project are merged and ranked."""
        response = search_projects("database migrations", sources, open_index=open_index)

        assert [h.project for h in response.results] == ["api", "web"]
        assert response.results[0].file == "src/main.md"
        assert response.results[0].score > response.results[1].score
        assert response.token_count == sum(estimate_tokens(h.content) for h in response.results)
        assert response.truncated is False
        assert response.indexing_in_progress is None

    def test_project_scope(self, sources, open_index):
        """Test that a project name limits the search to that project."""
        response = search_projects("database", sources, project="web", open_index=open_index)
        assert {h.project for h in response.results} == {"web"}

    def test_limit_applies_across_projects(self, sources, open_index):
        response = search_projects("anything", sources, limit=1, open_index=open_index)
        assert len(response.results) == 1

    def test_failing_project_is_isolated(self, sources, embedder):
        """Test that one project's failure does not hide the others."""

        def open_index(source):
            if source.name == "web":
                raise EmbeddingError("model unavailable")
            return SemanticIndex(source.index_path, embedder=embedder)

        response = search_projects("database", sources, open_index=open_index)
        assert [h.project for h in response.results] == ["api"]

    def test_missing_and_disabled_projects_skipped(self, sources, open_index, tmp_path):
        """Test that projects without an index or with search off contribute nothing."""
        sources[0].enabled = False
        sources.append(ProjectSource(name="new", index_path=tmp_path / "missing.json"))

        response = search_projects("database", sources, open_index=open_index)

        assert {h.project for h in response.results} == {"api"}

    def test_token_budget(self, sources, open_index):
        """Test that a tight budget truncates the results."""
        response = search_projects("database", sources, max_tokens=1, open_index=open_index)
        assert response.results == []
        assert response.truncated is True
        assert response.token_count == 0

    def test_freshness_for_project(self, sources, open_index):
        """Test that a scoped search reports index age."""
        response = search_projects("database", sources, project="api", open_index=open_index)
        assert response.index_age_seconds is not None
        assert response.index_age_seconds >= 0
        assert response.last_indexed_at.endswith("+00:00")
        assert response.indexing_in_progress is False
        assert response.advisory_message is None

    def test_advisory_while_indexing(self, sources, open_index):
        """Test that a running job adds the advisory message."""
        jobs = IndexingJobManager()
        jobs.update("api", state=JobState.RUNNING)

        response = search_projects(
            "database", sources, project="api", jobs=jobs, open_index=open_index
        )

        assert response.indexing_in_progress is True
        assert response.advisory_message == ADVISORY_MESSAGE

    def test_default_opener_loads_each_index_once(self, sources, embedder, monkeypatch):
        """Test that repeated searches reuse the shared index instead of re-reading the file."""
        monkeypatch.setattr("projectrag.semantic_index.get_embedding_provider", lambda name: embedder)
        loads = []
        original_load = IndexStore.load.__func__

        def counting_load(cls, path):
            loads.append(path)
            return original_load(cls, path)

        monkeypatch.setattr(IndexStore, "load", classmethod(counting_load))

        for _ in range(3):
            response = search_projects("database", sources, project="api")
            assert [h.project for h in response.results] == ["api"]

        assert len(loads) == 1
        assert get_shared_index(sources[1].index_path, "fake-model") is get_shared_index(
            sources[1].index_path, "fake-model"
        )


class TestRetrievalResponse:
    """Tests for RetrievalResponse serialization."""

    def test_to_dict_drops_unset_fields(self):
        data = RetrievalResponse().to_dict()
        assert data == {"results": [], "token_count": 0, "truncated": False}
