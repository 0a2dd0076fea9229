"""Tests for the embedding generator."""

from __future__ import annotations

import pytest
from fakes import FakeBackend

from secondbrain.ai.backend import NullBackend
from secondbrain.ai.embedder import EmbeddingGenerator


def test_embed_returns_backend_vector():
    backend = FakeBackend(default_vector=[0.1, 0.2, 0.3])
    assert EmbeddingGenerator(backend, dimensions=3).embed("hello") == [0.1, 0.2, 0.3]


def test_embed_pads_short_vectors():
    backend = FakeBackend(default_vector=[1.0, 2.0])
    assert EmbeddingGenerator(backend, dimensions=4).embed("hello") == [1.0, 2.0, 0.0, 0.0]


def test_embed_truncates_long_vectors():
    backend = FakeBackend(default_vector=[1.0, 2.0, 3.0, 4.0, 5.0])
    assert EmbeddingGenerator(backend, dimensions=3).embed("hello") == [1.0, 2.0, 3.0]


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_embed_blank_input_is_empty(text):
    backend = FakeBackend(default_vector=[1.0])
    assert EmbeddingGenerator(backend, dimensions=1).embed(text) == []
    assert backend.embedded == []


def test_embed_offline_backend_is_empty():
    assert EmbeddingGenerator(NullBackend(), dimensions=3).embed("hello") == []


def test_embed_backend_error_is_empty():
    class Broken(FakeBackend):
        def embed(self, text):
            raise RuntimeError("rate limited")

    assert EmbeddingGenerator(Broken(), dimensions=3).embed("hello") == []


def test_embed_backend_empty_vector_stays_empty():
    assert EmbeddingGenerator(FakeBackend(), dimensions=3).embed("hello") == []


def test_embed_truncates_input_text():
    backend = FakeBackend(default_vector=[1.0])
    EmbeddingGenerator(backend, dimensions=1).embed("x" * 20_000)
    assert len(backend.embedded[0]) == 8_000


def test_invalid_dimensions_rejected():
    with pytest.raises(ValueError):
        EmbeddingGenerator(FakeBackend(), dimensions=0)
