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

"""In-process vector store client using NumPy.

Brute-force search over all stored vectors. Suitable for tests and small
datasets; nothing is persisted.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

import numpy as np
from numpy.typing import NDArray

from ..documents import DeleteReport, DistanceMetric, Document, Model, SchemaConfig, SearchHit
from ..errors import (
    NotFoundError,
    QueryError,
    SchemaExistsError,
    SchemaNotFoundError,
    StoreWriteError,
)
from .base import VectorStoreClient, check_k, collection_name

logger = logging.getLogger(__name__)


class _Namespace:
    """Vectors and texts stored for one model."""

    def __init__(self, cfg: SchemaConfig):
        self.cfg = cfg
        self.embeddings: NDArray[np.float64] = np.empty((0, cfg.index_dim))
        self.file_ids: List[str] = []
        self.texts: List[str] = []
        self.id_to_idx: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self.file_ids)

    def upsert(self, doc: Document) -> None:
        vector = np.asarray(doc.embedding, dtype=np.float64)
        if vector.shape != (self.cfg.index_dim,):
            raise StoreWriteError(
                f"Embedding dimension {vector.size} of {doc.file_id!r} doesn't "
                f"match index dimension {self.cfg.index_dim}"
            )

        if doc.file_id in self.id_to_idx:
            idx = self.id_to_idx[doc.file_id]
            self.embeddings[idx] = vector
            self.texts[idx] = doc.text
        else:
            self.id_to_idx[doc.file_id] = len(self.file_ids)
            self.file_ids.append(doc.file_id)
            self.texts.append(doc.text)
            self.embeddings = np.vstack([self.embeddings, vector])

    def remove(self, file_id: str) -> bool:
        if file_id not in self.id_to_idx:
            return False

        mask = np.ones(len(self.file_ids), dtype=bool)
        mask[self.id_to_idx[file_id]] = False

        self.embeddings = self.embeddings[mask]
        self.file_ids = [f for i, f in enumerate(self.file_ids) if mask[i]]
        self.texts = [t for i, t in enumerate(self.texts) if mask[i]]
        self.id_to_idx = {f: i for i, f in enumerate(self.file_ids)}
        return True

    def distances(self, query: NDArray[np.float64]) -> NDArray[np.float64]:
        """Return the distance of every stored vector to ``query``.

        Lower is closer for every metric, matching the scores Redis reports:
            - COSINE: 1 - cosine similarity
            - L2: Euclidean distance
            - IP: 1 - inner product
        """
        metric = self.cfg.distance_metric
        if metric == DistanceMetric.COSINE:
            norms = np.linalg.norm(self.embeddings, axis=1)
            query_norm = np.linalg.norm(query)
            similarities = self.embeddings @ query / np.maximum(norms * query_norm, 1e-9)
            return 1.0 - similarities
        elif metric == DistanceMetric.L2:
            return np.linalg.norm(self.embeddings - query, axis=1)
        else:  # IP
            return 1.0 - self.embeddings @ query


class MemoryVectorClient(VectorStoreClient):
    """Vector store client keeping everything in process memory.

    Implements the same contract as the remote backends, which makes it the
    reference for their behavior in tests.

    Example:
        >>> client = MemoryVectorClient(embedder)
        >>> client.create_schema(Model.LLAMA32, SchemaConfig(index_dim=3))
        >>> client.insert_document(Model.LLAMA32, Document("a", "a", [1, 0, 0]))
        >>> client.count(Model.LLAMA32)
        1
    """

    def __init__(self, embedder):
        super().__init__(embedder)
        self._namespaces: Dict[Model, _Namespace] = {}

    @property
    def backend_name(self) -> str:
        return "memory"

    def _namespace(self, model: Model) -> _Namespace:
        model = Model(model)
        if model not in self._namespaces:
            raise SchemaNotFoundError(collection_name(model))
        return self._namespaces[model]

    def count(self, model: Model) -> int:
        """Return number of documents stored for ``model``."""
        return len(self._namespace(model))

    def has_schema(self, model: Model) -> bool:
        return Model(model) in self._namespaces

    def create_schema(self, model: Model, cfg: SchemaConfig) -> None:
        model = Model(model)
        if model in self._namespaces:
            raise SchemaExistsError(collection_name(model))
        self._namespaces[model] = _Namespace(cfg)
        logger.info(
            "Created in-memory index %s (dim=%d, metric=%s)",
            collection_name(model), cfg.index_dim, cfg.distance_metric,
        )

    def drop_schema(self, model: Model) -> None:
        self._namespace(model)
        del self._namespaces[Model(model)]
        logger.info("Dropped in-memory index %s", collection_name(model))

    def insert_documents(self, model: Model, docs: Iterable[Document]) -> List[Document]:
        namespace = self._namespace(model)
        stored = [self.ensure_embedded(doc) for doc in docs]
        for doc in stored:
            namespace.upsert(doc)
        return stored

    def delete_document(self, model: Model, file_id: str, missing_ok: bool = True) -> bool:
        removed = self._namespace(model).remove(file_id)
        if not removed and not missing_ok:
            raise NotFoundError(file_id)
        return removed

    def delete_all_documents(self, model: Model) -> DeleteReport:
        namespace = self._namespace(model)
        deleted = len(namespace)
        self._namespaces[Model(model)] = _Namespace(namespace.cfg)
        logger.info("Deleted %d documents from %s", deleted, collection_name(model))
        return DeleteReport(deleted=deleted)

    def find_k_nearest(self, model: Model, doc: Document, k: int = 3) -> List[SearchHit]:
        check_k(k)
        namespace = self._namespace(model)
        doc = self.ensure_embedded(doc)

        query = np.asarray(doc.embedding, dtype=np.float64)
        if query.shape != (namespace.cfg.index_dim,):
            raise QueryError(
                f"Query dimension {query.size} doesn't match index dimension "
                f"{namespace.cfg.index_dim}"
            )
        if len(namespace) == 0:
            return []

        distances = namespace.distances(query)
        k = min(k, len(namespace))
        # Stable sort keeps insertion order among ties
        top_indices = np.argsort(distances, kind="stable")[:k]

        return [
            SearchHit(
                file_id=namespace.file_ids[idx],
                text=namespace.texts[idx],
                distance=float(distances[idx]),
            )
            for idx in top_indices
        ]

    def __repr__(self) -> str:
        return f"MemoryVectorClient(models={[m.value for m in self._namespaces]})"
