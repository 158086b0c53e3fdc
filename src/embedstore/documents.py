# Copyright 2025 Embedstore Contributors.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
#    1. Redistributions of source code must retain the above copyright notice,
#       this list of conditions and the following disclaimer.
#
#    2. Redistributions in binary form must reproduce the above copyright
#       notice, this list of conditions and the following disclaimer in the
#       documentation and/or other materials provided with the distribution.

"""Documents, models and schema settings shared by every store backend.

A :class:`Model` names the embedding model that produced a vector. Every
backend derives its index, collection and key names from it, so vectors from
different models never end up compared against each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple

from .errors import ConfigError, EmbeddingError


class Model(str, Enum):
    """Embedding models a document can be embedded with."""

    LLAMA32 = "llama3.2"
    MXBAI_EMBED_LARGE = "mxbai-embed-large"
    SNOWFLAKE_ARCTIC_EMBED = "snowflake-arctic-embed"

    @property
    def namespace(self) -> str:
        """Return the name family every store derives its names from."""
        return f"embeddings-{self.value}"

    @classmethod
    def from_name(cls, name: str) -> "Model":
        """Parse a model name such as ``"mxbai-embed-large"``.

        Raises:
            ConfigError: If the name is not a known model
        """
        for model in cls:
            if model.value == name:
                return model
        raise ConfigError(
            f"Unknown model: {name!r}. "
            f"Choose from: {[m.value for m in cls]}"
        )

    def __str__(self) -> str:
        return self.value


class DistanceMetric(str, Enum):
    """Distance functions a vector index can be configured with."""

    COSINE = "COSINE"
    L2 = "L2"
    IP = "IP"

    @classmethod
    def from_name(cls, name: str) -> "DistanceMetric":
        try:
            return cls(name.upper())
        except ValueError:
            raise ConfigError(
                f"Unknown distance metric: {name!r}. "
                f"Choose from: {[m.value for m in cls]}"
            ) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SchemaConfig:
    """Settings of the vector index created for a model.

    Attributes:
        index_dim: Dimensionality of the stored vectors
        distance_metric: Distance used to rank neighbors
    """
    index_dim: int = 1024
    distance_metric: DistanceMetric = DistanceMetric.COSINE

    def __post_init__(self):
        if isinstance(self.index_dim, bool) or not isinstance(self.index_dim, int):
            raise ConfigError(f"index_dim must be an integer, got {self.index_dim!r}")
        if self.index_dim <= 0:
            raise ConfigError(f"index_dim must be positive, got {self.index_dim}")
        if not isinstance(self.distance_metric, DistanceMetric):
            object.__setattr__(
                self, "distance_metric", DistanceMetric.from_name(str(self.distance_metric))
            )


@dataclass(frozen=True)
class Document:
    """A text and, once embedded, its vector.

    Documents are values: hydrating a missing embedding produces a new
    document through :func:`ensure_embedded` and leaves the original alone.

    Attributes:
        file_id: Stable external identifier, unique within a model namespace
        text: Source content
        embedding: Vector of floats, or None when not yet computed
    """
    file_id: str = ""
    text: str = ""
    embedding: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        if self.embedding is not None:
            object.__setattr__(
                self, "embedding", tuple(float(x) for x in self.embedding)
            )

    @property
    def has_embedding(self) -> bool:
        """Return whether the document carries a non-empty vector."""
        return bool(self.embedding)

    def with_embedding(self, vector: Sequence[float]) -> "Document":
        """Return a copy of this document carrying ``vector``."""
        return replace(self, embedding=tuple(vector))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Document":
        """Build a document from a ``{file_id, text, embedding}`` record."""
        embedding = data.get("embedding")
        return cls(
            file_id=str(data.get("file_id") or ""),
            text=str(data.get("text") or ""),
            embedding=None if embedding is None else embedding,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_id": self.file_id,
            "text": self.text,
            "embedding": None if self.embedding is None else list(self.embedding),
        }

    def __repr__(self) -> str:
        dim = len(self.embedding) if self.embedding is not None else None
        return f"Document(file_id={self.file_id!r}, text={self.text[:40]!r}, dim={dim})"


@dataclass(frozen=True)
class SearchHit:
    """One ranked result of a KNN query.

    Attributes:
        file_id: Identifier of the stored document
        text: Stored text of the document
        distance: Distance to the query under the index metric (lower is
            closer), or None if the backend did not report it
    """
    file_id: str
    text: str
    distance: Optional[float] = None

    def to_document(self) -> Document:
        return Document(file_id=self.file_id, text=self.text)

    def __repr__(self) -> str:
        if self.distance is None:
            return f"SearchHit(file_id={self.file_id!r})"
        return f"SearchHit(file_id={self.file_id!r}, distance={self.distance:.4f})"


@dataclass
class DeleteReport:
    """Outcome of a best-effort sweep over a model namespace.

    The sweep is not atomic: keys listed in ``failed`` are still stored,
    everything counted in ``deleted`` is gone.

    Attributes:
        deleted: Number of documents removed
        failed: Keys that could not be removed, mapped to the error message
    """
    deleted: int = 0
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        """Return whether every listed document was removed."""
        return not self.failed


def is_zero_vector(vector: Sequence[float]) -> bool:
    """Return whether every component of ``vector`` is zero."""
    return all(x == 0 for x in vector)


def ensure_embedded(doc: Document, embedder) -> Document:
    """Return ``doc`` with an embedding, computing it if missing.

    The input document is returned unchanged when it already carries a
    vector. Otherwise ``embedder.embed(doc.text)`` is called and a new
    document is returned.

    Raises:
        EmbeddingError: If the embedder fails or returns an empty or
            all-zero vector
    """
    if doc.has_embedding:
        return doc

    vector = embedder.embed(doc.text)
    if vector is None or len(vector) == 0:
        raise EmbeddingError(f"Embedder returned an empty vector for {doc.file_id!r}")
    if is_zero_vector(vector):
        raise EmbeddingError(f"Embedder returned a zero vector for {doc.file_id!r}")
    return doc.with_embedding(vector)
