"""Shared fixtures for embedstore tests."""

import pytest

from embedstore import Document, Model, SchemaConfig
from embedstore.errors import EmbeddingError


class DictEmbedder:
    """Embedder returning fixed vectors looked up by text."""

    def __init__(self, vectors=None):
        self.vectors = dict(vectors or {})
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        try:
            return list(self.vectors[text])
        except KeyError:
            raise EmbeddingError(f"No vector for {text!r}")


@pytest.fixture
def embedder():
    return DictEmbedder({
        "a": [1.0, 0.0, 0.0],
        "b": [0.0, 1.0, 0.0],
        "c": [0.0, 0.0, 1.0],
        "mostly a": [0.9, 0.1, 0.0],
    })


@pytest.fixture
def model():
    return Model.MXBAI_EMBED_LARGE


@pytest.fixture
def schema():
    return SchemaConfig(index_dim=3)


@pytest.fixture
def abc_documents():
    """Three orthogonal unit vectors with texts "a", "b", "c"."""
    return [
        Document(file_id="doc-a", text="a", embedding=[1.0, 0.0, 0.0]),
        Document(file_id="doc-b", text="b", embedding=[0.0, 1.0, 0.0]),
        Document(file_id="doc-c", text="c", embedding=[0.0, 0.0, 1.0]),
    ]
