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

"""Base interface for vector store clients.

This module defines the contract all backend clients follow, so callers can
switch between Redis, ChromaDB and the in-memory store without code changes.

Every operation is namespaced by a :class:`~embedstore.documents.Model`.
A namespace goes through two states::

    NoSchema --create_schema--> SchemaReady --drop_schema--> NoSchema

Inserts and queries are only valid in ``SchemaReady``; otherwise they raise
:class:`~embedstore.errors.SchemaNotFoundError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, List

from ..documents import (
    DeleteReport,
    Document,
    Model,
    SchemaConfig,
    SearchHit,
    ensure_embedded,
)
from ..errors import ConfigError


class VectorStoreClient(ABC):
    """Abstract base class for vector store clients.

    A client owns one backend handle and one embedder. It keeps no copy of
    stored documents and performs no caching, batching or retries; backend
    errors propagate to the caller as embedstore exceptions.

    Clients are safe for sequential reuse but not for concurrent calls from
    several threads.

    Example:
        >>> client.create_schema(Model.LLAMA32, SchemaConfig(index_dim=3))
        >>> client.insert_document(Model.LLAMA32, Document("a.txt", "a", [1, 0, 0]))
        >>> client.find_k_nearest(Model.LLAMA32, Document(embedding=[1, 0, 0]), k=1)
        [SearchHit(file_id='a.txt', distance=0.0000)]
    """

    def __init__(self, embedder):
        self.embedder = embedder

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier."""
        pass

    @abstractmethod
    def create_schema(self, model: Model, cfg: SchemaConfig) -> None:
        """Create the index for ``model``.

        Raises:
            SchemaExistsError: If the index already exists
            StoreWriteError: If the backend rejects the creation
        """
        pass

    @abstractmethod
    def drop_schema(self, model: Model) -> None:
        """Delete the index for ``model`` and every document in it.

        Raises:
            SchemaNotFoundError: If the index does not exist
            StoreWriteError: If the backend rejects the deletion
        """
        pass

    @abstractmethod
    def has_schema(self, model: Model) -> bool:
        """Return whether the index for ``model`` exists."""
        pass

    def insert_document(self, model: Model, doc: Document) -> Document:
        """Insert or overwrite a document, keyed by its ``file_id``.

        The document is embedded first if it carries no vector.

        Returns:
            The stored document, with its embedding

        Raises:
            EmbeddingError: If the document had to be embedded and that failed
            SchemaNotFoundError: If the index does not exist
            StoreWriteError: If the backend write failed
        """
        return self.insert_documents(model, [doc])[0]

    @abstractmethod
    def insert_documents(self, model: Model, docs: Iterable[Document]) -> List[Document]:
        """Insert or overwrite several documents in one round trip."""
        pass

    @abstractmethod
    def delete_document(self, model: Model, file_id: str, missing_ok: bool = True) -> bool:
        """Delete one document.

        Args:
            model: Namespace of the document
            file_id: Identifier the document was inserted with
            missing_ok: If False, a missing document raises NotFoundError

        Returns:
            Whether a document was removed
        """
        pass

    @abstractmethod
    def delete_all_documents(self, model: Model) -> DeleteReport:
        """Delete every document of ``model`` but keep the index.

        The sweep is best-effort: on partial failure the report lists the
        keys left behind instead of raising.
        """
        pass

    @abstractmethod
    def find_k_nearest(self, model: Model, doc: Document, k: int = 3) -> List[SearchHit]:
        """Return the ``k`` stored documents closest to ``doc``.

        ``doc.text`` is embedded first if ``doc`` carries no vector. Hits are
        ordered closest first; the order of ties is unspecified.

        Raises:
            ConfigError: If ``k`` is not positive
            EmbeddingError: If the query had to be embedded and that failed
            SchemaNotFoundError: If the index does not exist
            QueryError: If the backend query failed
        """
        pass

    def ensure_embedded(self, doc: Document) -> Document:
        return ensure_embedded(doc, self.embedder)

    def close(self) -> None:
        """Release the backend handle."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(embedder={self.embedder!r})"


def collection_name(model: Model) -> str:
    """Return the index/collection name shared by every backend."""
    return Model(model).namespace


def check_k(k: int) -> int:
    if isinstance(k, bool) or not isinstance(k, int) or k < 1:
        raise ConfigError(f"k must be a positive integer, got {k!r}")
    return k
