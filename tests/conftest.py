"""Shared fixtures for projectrag tests."""

import hashlib
import math
import re

import pytest

from projectrag.semantic_index import SemanticIndex, reset_shared_indexes


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder.

    Each lowercase word is hashed into one of ``dimension`` buckets and the
    counts are L2-normalized, so texts sharing words score higher.
    """

    def __init__(self, model_name: str = "fake-model", dimension: int = 256):
        self.model_name = model_name
        self._dimension = dimension
        self.calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        vector = [0.0] * self._dimension
        for word in re.findall(r"\w+", text.lower()):
            bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % self._dimension
            vector[bucket] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0:
            vector[0] = 1.0
            return vector
        return [v / norm for v in vector]


def long_text(topic: str, sentences: int = 3) -> str:
    """Build text about ``topic`` long enough to survive the minimum chunk length."""
    return " ".join(
        f"This paragraph talks about {topic} in some detail, sentence {i}." for i in range(sentences)
    )


@pytest.fixture
def text_about():
    """Helper building long-enough text about a topic."""
    return long_text


@pytest.fixture
def make_embedder():
    """Factory for fake embedders with a chosen model name or dimension."""
    return FakeEmbedder


@pytest.fixture
def embedder():
    """A fresh fake embedder."""
    return FakeEmbedder()


@pytest.fixture
def index_path(tmp_path):
    """Location for a temporary index file."""
    return tmp_path / "index" / "embeddings.json"


@pytest.fixture
def index(index_path, embedder):
    """An empty semantic index backed by the fake embedder."""
    return SemanticIndex(index_path, embedder=embedder)


@pytest.fixture(autouse=True)
def fresh_shared_indexes():
    """Start every test without process-wide indexes."""
    reset_shared_indexes()
    yield
    reset_shared_indexes()
