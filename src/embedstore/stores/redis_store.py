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

"""Redis backend using the search module's vector indexes.

Documents are stored as hashes and indexed by an ``FT.CREATE`` index with an
HNSW vector field. Queries pass the query vector as a binary parameter.

Requires:
    - Redis Stack, or Redis 8+ with the query engine
    - pip install redis

Naming, for model ``mxbai-embed-large``:
    - index: ``idx:embeddings-mxbai-embed-large``
    - key prefix: ``embeddings-mxbai-embed-large:``
    - document key: ``embeddings-mxbai-embed-large:{<file_id>}``

The braces make ``file_id`` the cluster hash tag of the key.

Example:
    >>> from embedstore.stores import RedisVectorClient
    >>>
    >>> client = RedisVectorClient(embedder, url="redis://localhost:6379")
    >>> client.create_schema(Model.LLAMA32, SchemaConfig(index_dim=3072))
    >>> client.insert_document(Model.LLAMA32, Document("a.txt", "some text"))
    >>> client.find_k_nearest(Model.LLAMA32, Document(text="text"), k=3)
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from ..codec import encode
from ..documents import DeleteReport, Document, Model, SchemaConfig, SearchHit
from ..errors import (
    ConnectionError,
    NotFoundError,
    QueryError,
    SchemaExistsError,
    SchemaNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from .base import VectorStoreClient, check_k, collection_name

logger = logging.getLogger(__name__)

# Alias the KNN clause binds the distance to
SCORE_FIELD = "vector_score"
VECTOR_PARAM = "vec_param"


def index_name(model: Model) -> str:
    return f"idx:{collection_name(model)}"


def key_prefix(model: Model) -> str:
    return f"{collection_name(model)}:"


def document_key(model: Model, file_id: str) -> str:
    return f"{key_prefix(model)}{{{file_id}}}"


def _text(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


def _lookup(mapping: dict, name: str) -> Any:
    """Get ``name`` from a reply map whose keys may be str or bytes."""
    if name in mapping:
        return mapping[name]
    return mapping.get(name.encode("utf-8"))


def _is_missing_index(error: Exception) -> bool:
    message = str(error).lower()
    return "unknown index" in message or "no such index" in message


class RedisVectorClient(VectorStoreClient):
    """Vector store client over the Redis search module.

    Features:
        - HNSW index with FLOAT64 vectors
        - COSINE, L2 and IP distance metrics
        - Upserts by key, pipelined batch inserts
        - Best-effort namespace sweeps

    Attributes:
        url: Redis URL the client connected to, if it created the connection
    """

    def __init__(
        self,
        embedder,
        url: str = "redis://localhost:6379",
        connection=None,
        socket_timeout: Optional[float] = None,
    ):
        """Initialize the Redis client.

        Args:
            embedder: Embedder used for documents without a vector
            url: Redis URL, ignored if ``connection`` is given
            connection: Existing ``redis.Redis`` connection to use
            socket_timeout: Timeout in seconds for every command

        Raises:
            ImportError: If redis is not installed
            ConnectionError: If the server does not answer PING
        """
        try:
            import redis
            from redis.commands.search.field import TextField, VectorField
            from redis.commands.search.query import Query
        except ImportError as e:
            raise ImportError(
                "RedisVectorClient requires redis. "
                "Install with: pip install redis"
            ) from e

        super().__init__(embedder)
        self._redis = redis
        self._TextField = TextField
        self._VectorField = VectorField
        self._Query = Query

        self.url = url if connection is None else None
        if connection is None:
            connection = redis.Redis.from_url(url, socket_timeout=socket_timeout)
        self._conn = connection

        try:
            self._conn.ping()
        except redis.exceptions.RedisError as e:
            raise ConnectionError(f"Failed to ping redis: {e}") from e

    @property
    def backend_name(self) -> str:
        return "redis"

    def _index_definition(self, model: Model):
        # Module was renamed from indexDefinition in redis-py 6
        try:
            from redis.commands.search.index_definition import IndexDefinition, IndexType
        except ImportError:
            from redis.commands.search.indexDefinition import IndexDefinition, IndexType
        return IndexDefinition(
            prefix=[key_prefix(model)],
            index_type=IndexType.HASH,
            score=1.0,
        )

    def has_schema(self, model: Model) -> bool:
        try:
            self._conn.ft(index_name(model)).info()
        except self._redis.exceptions.ResponseError as e:
            if _is_missing_index(e):
                return False
            raise StoreReadError(f"Failed to fetch redis index info: {e}") from e
        except self._redis.exceptions.RedisError as e:
            raise StoreReadError(f"Failed to fetch redis index info: {e}") from e
        return True

    def create_schema(self, model: Model, cfg: SchemaConfig) -> None:
        index = index_name(model)
        if self.has_schema(model):
            raise SchemaExistsError(index)

        fields = [
            self._TextField("file_id", weight=1.0, no_stem=True),
            self._TextField("text", weight=1.0, no_stem=True),
            self._VectorField(
                "embedding",
                "HNSW",
                {
                    "TYPE": "FLOAT64",
                    "DIM": cfg.index_dim,
                    "DISTANCE_METRIC": cfg.distance_metric.value,
                },
            ),
        ]
        try:
            self._conn.ft(index).create_index(
                fields, definition=self._index_definition(model)
            )
        except self._redis.exceptions.ResponseError as e:
            if "already exists" in str(e).lower():
                raise SchemaExistsError(index) from e
            raise StoreWriteError(f"Failed to create redis index: {e}") from e
        except self._redis.exceptions.RedisError as e:
            raise StoreWriteError(f"Failed to create redis index: {e}") from e

        logger.info(
            "Created redis index %s (dim=%d, metric=%s)",
            index, cfg.index_dim, cfg.distance_metric,
        )

    def drop_schema(self, model: Model) -> None:
        index = index_name(model)
        try:
            self._conn.ft(index).dropindex(delete_documents=True)
        except self._redis.exceptions.ResponseError as e:
            if _is_missing_index(e):
                raise SchemaNotFoundError(index) from e
            raise StoreWriteError(f"Failed to drop index: {e}") from e
        except self._redis.exceptions.RedisError as e:
            raise StoreWriteError(f"Failed to drop index: {e}") from e
        logger.info("Dropped redis index %s", index)

    def insert_documents(self, model: Model, docs: Iterable[Document]) -> List[Document]:
        if not self.has_schema(model):
            raise SchemaNotFoundError(index_name(model))

        stored = [self.ensure_embedded(doc) for doc in docs]
        pipe = self._conn.pipeline(transaction=False)
        for doc in stored:
            pipe.hset(
                document_key(model, doc.file_id),
                mapping={
                    "file_id": doc.file_id,
                    "text": doc.text,
                    "embedding": encode(doc.embedding),
                },
            )
        try:
            pipe.execute()
        except self._redis.exceptions.RedisError as e:
            raise StoreWriteError(f"Failed to insert documents to redis: {e}") from e
        return stored

    def delete_document(self, model: Model, file_id: str, missing_ok: bool = True) -> bool:
        key = document_key(model, file_id)
        try:
            removed = self._conn.delete(key)
        except self._redis.exceptions.RedisError as e:
            raise StoreWriteError(f"Failed to delete key {key}: {e}") from e
        if not removed and not missing_ok:
            raise NotFoundError(key)
        return bool(removed)

    def delete_all_documents(self, model: Model) -> DeleteReport:
        pattern = f"{key_prefix(model)}*"
        try:
            keys = [_text(key) for key in self._conn.scan_iter(match=pattern)]
        except self._redis.exceptions.RedisError as e:
            raise StoreReadError(f"Failed to list keys: {e}") from e

        report = DeleteReport()
        for key in keys:
            try:
                self._conn.delete(key)
            except self._redis.exceptions.RedisError as e:
                logger.warning("Failed to delete key %s: %s", key, e)
                report.failed[key] = str(e)
            else:
                report.deleted += 1

        logger.info("Deleted %d keys", report.deleted)
        return report

    def find_k_nearest(self, model: Model, doc: Document, k: int = 3) -> List[SearchHit]:
        check_k(k)
        doc = self.ensure_embedded(doc)
        index = index_name(model)

        query = (
            self._Query(f"*=>[KNN {k} @embedding ${VECTOR_PARAM} AS {SCORE_FIELD}]")
            .sort_by(SCORE_FIELD)
            .return_fields("file_id", "text", SCORE_FIELD)
            .paging(0, k)
            .dialect(2)
        )
        try:
            reply = self._conn.ft(index).search(
                query, query_params={VECTOR_PARAM: encode(doc.embedding)}
            )
        except self._redis.exceptions.ResponseError as e:
            if _is_missing_index(e):
                raise SchemaNotFoundError(index) from e
            raise QueryError(f"Failed to execute search query: {e}") from e
        except self._redis.exceptions.RedisError as e:
            raise QueryError(f"Failed to execute search query: {e}") from e

        hits = self._parse_hits(reply)
        logger.debug("KNN query on %s returned %d hits", index, len(hits))
        return hits

    def _parse_hits(self, reply: Any) -> List[SearchHit]:
        """Translate a search reply into hits.

        RESP2 connections get a ``Result`` object whose ``docs`` carry the
        returned fields as attributes. RESP3 connections get the raw map::

            {"results": [{"id": ..., "extra_attributes": {...}}, ...], ...}
        """
        if isinstance(reply, dict):
            results = _lookup(reply, "results")
            if not isinstance(results, list):
                raise QueryError(f"Unexpected search reply: {reply!r}")
            attributes = []
            for hit in results:
                extra = _lookup(hit, "extra_attributes") if isinstance(hit, dict) else None
                if not isinstance(extra, dict):
                    raise QueryError(f"Unexpected search hit: {hit!r}")
                attributes.append({_text(k): v for k, v in extra.items()})
        elif hasattr(reply, "docs"):
            attributes = [vars(d) for d in reply.docs]
        else:
            raise QueryError(f"Unexpected search reply: {reply!r}")

        hits = []
        for attrs in attributes:
            try:
                file_id = _text(attrs["file_id"])
                text = _text(attrs["text"])
            except KeyError as e:
                raise QueryError(f"Search hit is missing field {e}") from e
            score = attrs.get(SCORE_FIELD)
            hits.append(SearchHit(
                file_id=file_id,
                text=text,
                distance=None if score is None else float(_text(score)),
            ))
        return hits

    def close(self) -> None:
        """Close the connection pool."""
        self._conn.close()

    def __repr__(self) -> str:
        return f"RedisVectorClient(url={self.url!r})"
