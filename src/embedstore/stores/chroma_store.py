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

"""ChromaDB backend.

Each model maps to the collection ``embeddings-<model>``, keyed by raw
``file_id``. Collections are bound to an :class:`EmbedderFunction`, so
queries by text are embedded through the same embedder that produced the
stored vectors.

Chroma stores single-precision vectors; embeddings are narrowed to float32
before they are sent.

Requires: pip install chromadb

Example:
    >>> import chromadb
    >>> from embedstore.stores import ChromaVectorClient
    >>>
    >>> client = ChromaVectorClient(embedder, host="localhost", port=8000)
    >>> # or in-process
    >>> client = ChromaVectorClient(embedder, client=chromadb.EphemeralClient())
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

import numpy as np

try:
    import chromadb
    from chromadb import errors as chroma_errors
    from chromadb.api.types import Documents, EmbeddingFunction, Embeddings
    from chromadb.errors import ChromaError
except ImportError:
    raise ImportError(
        "chromadb is required for ChromaVectorClient. "
        "Install with: pip install chromadb"
    )

from ..documents import (
    DeleteReport,
    DistanceMetric,
    Document,
    Model,
    SchemaConfig,
    SearchHit,
    is_zero_vector,
)
from ..errors import (
    ConnectionError,
    EmbeddingError,
    NotFoundError,
    QueryError,
    SchemaExistsError,
    SchemaNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from .base import VectorStoreClient, check_k, collection_name

logger = logging.getLogger(__name__)

# Chroma spells metrics as hnsw:space values
HNSW_SPACES: Dict[DistanceMetric, str] = {
    DistanceMetric.COSINE: "cosine",
    DistanceMetric.L2: "l2",
    DistanceMetric.IP: "ip",
}


def _float32(vector) -> List[float]:
    return np.asarray(vector, dtype=np.float32).tolist()


def _is_missing_collection(error: Exception) -> bool:
    """True if ``error`` says the requested collection does not exist.

    Chroma 1.x raises NotFoundError; older releases raise a ValueError (or
    InvalidCollectionException) saying the collection "does not exist".
    """
    not_found = getattr(chroma_errors, "NotFoundError", None)
    if not_found is not None and isinstance(error, not_found):
        return True
    return (
        isinstance(error, (ValueError, ChromaError))
        and "does not exist" in str(error).lower()
    )


class EmbedderFunction(EmbeddingFunction[Documents]):
    """Chroma embedding function delegating to an embedstore embedder.

    Lets Chroma embed query texts itself while still using the embedder
    that produced the stored vectors. Vectors are checked the same way
    :func:`~embedstore.documents.ensure_embedded` checks them.
    """

    def __init__(self, embedder):
        self.embedder = embedder

    @staticmethod
    def name() -> str:
        # No get_config(): the embedder cannot be rebuilt from a config, so
        # collections keep Chroma's legacy embedding function entry
        return "embedstore"

    def __call__(self, input: Documents) -> Embeddings:
        vectors = []
        for text in input:
            vector = self.embedder.embed(text)
            if vector is None or len(vector) == 0:
                raise EmbeddingError(f"Embedder returned an empty vector for {text!r}")
            if is_zero_vector(vector):
                raise EmbeddingError(f"Embedder returned a zero vector for {text!r}")
            vectors.append(np.asarray(vector, dtype=np.float32))
        return vectors


class ChromaVectorClient(VectorStoreClient):
    """Vector store client over ChromaDB collections.

    Deleting a missing document is a no-op unless ``missing_ok=False``.
    """

    def __init__(
        self,
        embedder,
        host: str = "localhost",
        port: int = 8000,
        client=None,
    ):
        """Initialize the ChromaDB client.

        Args:
            embedder: Embedder used for documents without a vector
            host: Chroma server host, ignored if ``client`` is given
            port: Chroma server port, ignored if ``client`` is given
            client: Existing Chroma client (HTTP, persistent or ephemeral)

        Raises:
            ConnectionError: If the server does not answer the heartbeat
        """
        super().__init__(embedder)
        self.host = host if client is None else None
        self.port = port if client is None else None
        self._embedding_function = EmbedderFunction(embedder)

        try:
            if client is None:
                client = chromadb.HttpClient(host=host, port=port)
            client.heartbeat()
        except Exception as e:
            raise ConnectionError(f"Failed to reach ChromaDB at {host}:{port}: {e}") from e
        self._client = client

    @property
    def backend_name(self) -> str:
        return "chroma"

    def _collection(self, model: Model):
        name = collection_name(model)
        try:
            return self._client.get_collection(
                name, embedding_function=self._embedding_function
            )
        except Exception as e:
            if _is_missing_collection(e):
                raise SchemaNotFoundError(name) from e
            raise StoreReadError(f"Failed to get Chroma collection {name}: {e}") from e

    def has_schema(self, model: Model) -> bool:
        try:
            self._collection(model)
        except SchemaNotFoundError:
            return False
        return True

    def create_schema(self, model: Model, cfg: SchemaConfig) -> None:
        name = collection_name(model)
        if self.has_schema(model):
            raise SchemaExistsError(name)

        try:
            self._client.create_collection(
                name,
                metadata={"hnsw:space": HNSW_SPACES[cfg.distance_metric]},
                embedding_function=self._embedding_function,
                get_or_create=False,
            )
        except Exception as e:
            if "already exists" in str(e).lower():
                raise SchemaExistsError(name) from e
            raise StoreWriteError(f"Failed to create ChromaDB collection: {e}") from e

        logger.info(
            "Created Chroma collection %s (metric=%s)", name, cfg.distance_metric
        )

    def drop_schema(self, model: Model) -> None:
        name = collection_name(model)
        self._collection(model)
        try:
            self._client.delete_collection(name)
        except Exception as e:
            raise StoreWriteError(f"Failed to delete ChromaDB collection: {e}") from e
        logger.info("Dropped Chroma collection %s", name)

    def insert_documents(self, model: Model, docs: Iterable[Document]) -> List[Document]:
        collection = self._collection(model)
        stored = [self.ensure_embedded(doc) for doc in docs]
        if not stored:
            return stored

        # Chroma rejects repeated ids within one call; the last one wins
        latest = {doc.file_id: doc for doc in stored}

        # Parallel sequences, aligned by position
        ids = list(latest)
        texts = [doc.text for doc in latest.values()]
        embeddings = [_float32(doc.embedding) for doc in latest.values()]

        try:
            collection.upsert(ids=ids, embeddings=embeddings, documents=texts)
        except Exception as e:
            raise StoreWriteError(f"Failed to add documents: {e}") from e
        return stored

    def _existing_ids(self, collection, ids: Optional[List[str]] = None) -> List[str]:
        try:
            return list(collection.get(ids=ids, include=[])["ids"])
        except Exception as e:
            raise StoreReadError(f"Failed to list Chroma ids: {e}") from e

    def delete_document(self, model: Model, file_id: str, missing_ok: bool = True) -> bool:
        collection = self._collection(model)
        if not self._existing_ids(collection, [file_id]):
            if not missing_ok:
                raise NotFoundError(file_id)
            return False
        try:
            collection.delete(ids=[file_id])
        except Exception as e:
            raise StoreWriteError(f"Failed to delete document {file_id}: {e}") from e
        return True

    def delete_all_documents(self, model: Model) -> DeleteReport:
        collection = self._collection(model)
        ids = self._existing_ids(collection)

        report = DeleteReport()
        if not ids:
            return report
        try:
            collection.delete(ids=ids)
        except Exception as e:
            logger.warning("Failed to delete %d documents: %s", len(ids), e)
            report.failed = {doc_id: str(e) for doc_id in ids}
        else:
            report.deleted = len(ids)

        logger.info("Deleted %d documents", report.deleted)
        return report

    def find_k_nearest(self, model: Model, doc: Document, k: int = 3) -> List[SearchHit]:
        check_k(k)
        collection = self._collection(model)

        try:
            count = collection.count()
        except Exception as e:
            raise QueryError(f"Failed to count Chroma collection: {e}") from e
        if count == 0:
            return []

        if doc.has_embedding:
            target = {"query_embeddings": [_float32(doc.embedding)]}
        else:
            # Chroma embeds the text through EmbedderFunction
            target = {"query_texts": [doc.text]}

        try:
            result = collection.query(
                n_results=min(k, count),
                include=["documents", "distances"],
                **target,
            )
        except EmbeddingError:
            raise
        except Exception as e:
            raise QueryError(f"Failed to execute search query: {e}") from e

        hits = self._flatten(result)
        logger.debug("KNN query on %s returned %d hits", collection_name(model), len(hits))
        return hits

    def _flatten(self, result) -> List[SearchHit]:
        """Take the single query's row out of Chroma's per-query arrays."""
        try:
            ids = result["ids"][0]
            texts = (result.get("documents") or [[None] * len(ids)])[0]
            distances = (result.get("distances") or [[None] * len(ids)])[0]
        except (KeyError, IndexError, TypeError) as e:
            raise QueryError(f"Unexpected Chroma query result: {e}") from e

        return [
            SearchHit(
                file_id=file_id,
                text=text or "",
                distance=None if distance is None else float(distance),
            )
            for file_id, text, distance in zip(ids, texts, distances)
        ]

    def __repr__(self) -> str:
        return f"ChromaVectorClient(host={self.host!r}, port={self.port!r})"
