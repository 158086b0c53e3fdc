"""Tests for RedisVectorClient.

The unit tests run against a mocked connection and check the commands the
client sends. The integration tests at the bottom require a Redis server
with the search module. Set the TEST_REDIS_URL environment variable to run
them.

Example:
    export TEST_REDIS_URL="redis://localhost:6379/0"
    pytest tests/test_redis_store.py
"""

import os
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

redis = pytest.importorskip("redis")

from embedstore import (
    ConnectionError,
    Document,
    EmbeddingError,
    Model,
    NotFoundError,
    QueryError,
    SchemaConfig,
    SchemaExistsError,
    SchemaNotFoundError,
    StoreReadError,
    StoreWriteError,
)
from embedstore.codec import decode, encode
from embedstore.stores.redis_store import (
    RedisVectorClient,
    document_key,
    index_name,
    key_prefix,
)

ResponseError = redis.exceptions.ResponseError


@pytest.fixture
def conn():
    """Mocked redis connection with no index defined."""
    conn = MagicMock()
    conn.ft.return_value.info.side_effect = ResponseError("Unknown index name")
    return conn


@pytest.fixture
def client(embedder, conn):
    return RedisVectorClient(embedder, connection=conn)


def schema_exists(conn):
    conn.ft.return_value.info.side_effect = None
    conn.ft.return_value.info.return_value = {"index_name": "idx"}


class TestNaming:
    def test_index_name(self):
        assert index_name(Model.MXBAI_EMBED_LARGE) == "idx:embeddings-mxbai-embed-large"

    def test_key_prefix(self):
        assert key_prefix(Model.LLAMA32) == "embeddings-llama3.2:"

    def test_document_key(self):
        assert document_key(Model.LLAMA32, "notes/a.txt") == "embeddings-llama3.2:{notes/a.txt}"


class TestConnect:
    def test_pings_server(self, embedder, conn):
        RedisVectorClient(embedder, connection=conn)
        conn.ping.assert_called_once()

    def test_ping_failure(self, embedder, conn):
        conn.ping.side_effect = redis.exceptions.ConnectionError("refused")
        with pytest.raises(ConnectionError, match="ping"):
            RedisVectorClient(embedder, connection=conn)

    def test_close(self, client, conn):
        with client:
            pass
        conn.close.assert_called_once()


class TestSchema:
    def test_has_schema(self, client, conn, model):
        assert client.has_schema(model) is False
        schema_exists(conn)
        assert client.has_schema(model) is True
        conn.ft.assert_called_with("idx:embeddings-mxbai-embed-large")

    def test_has_schema_other_error(self, client, conn, model):
        conn.ft.return_value.info.side_effect = ResponseError("WRONGTYPE")
        with pytest.raises(StoreReadError):
            client.has_schema(model)

    def test_create_schema(self, client, conn, model):
        client.create_schema(model, SchemaConfig(index_dim=3, distance_metric="L2"))

        args, kwargs = conn.ft.return_value.create_index.call_args
        fields = {f.name: f.redis_args() for f in args[0]}
        assert set(fields) == {"file_id", "text", "embedding"}
        assert "NOSTEM" in fields["file_id"]
        assert "NOSTEM" in fields["text"]

        vector_args = fields["embedding"]
        assert "HNSW" in vector_args
        assert vector_args[vector_args.index("TYPE") + 1] == "FLOAT64"
        assert vector_args[vector_args.index("DIM") + 1] == 3
        assert vector_args[vector_args.index("DISTANCE_METRIC") + 1] == "L2"

        assert "embeddings-mxbai-embed-large:" in kwargs["definition"].args

    def test_create_existing(self, client, conn, model, schema):
        schema_exists(conn)
        with pytest.raises(SchemaExistsError):
            client.create_schema(model, schema)
        conn.ft.return_value.create_index.assert_not_called()

    def test_create_failure(self, client, conn, model, schema):
        conn.ft.return_value.create_index.side_effect = ResponseError("bad DIM")
        with pytest.raises(StoreWriteError, match="create redis index"):
            client.create_schema(model, schema)

    def test_drop_schema_deletes_documents(self, client, conn, model):
        client.drop_schema(model)
        conn.ft.return_value.dropindex.assert_called_once_with(delete_documents=True)

    def test_drop_missing(self, client, conn, model):
        conn.ft.return_value.dropindex.side_effect = ResponseError("Unknown Index name")
        with pytest.raises(SchemaNotFoundError):
            client.drop_schema(model)


class TestInsert:
    def test_insert_hashes(self, client, conn, model):
        schema_exists(conn)
        pipe = conn.pipeline.return_value

        client.insert_document(model, Document("a.txt", "alpha", [1.0, 0.5, 0.0]))

        conn.pipeline.assert_called_once_with(transaction=False)
        key, = pipe.hset.call_args[0]
        mapping = pipe.hset.call_args[1]["mapping"]
        assert key == "embeddings-mxbai-embed-large:{a.txt}"
        assert mapping["file_id"] == "a.txt"
        assert mapping["text"] == "alpha"
        assert decode(mapping["embedding"]) == [1.0, 0.5, 0.0]
        pipe.execute.assert_called_once()

    def test_insert_embeds_missing_vector(self, client, conn, model, embedder):
        schema_exists(conn)
        stored = client.insert_document(model, Document("c.txt", "c"))

        assert stored.embedding == (0.0, 0.0, 1.0)
        assert embedder.calls == ["c"]

    def test_insert_batch_single_round_trip(self, client, conn, model, abc_documents):
        schema_exists(conn)
        pipe = conn.pipeline.return_value

        client.insert_documents(model, abc_documents)

        assert pipe.hset.call_count == 3
        pipe.execute.assert_called_once()

    def test_insert_batch_repeated_id_last_wins(self, client, conn, model):
        schema_exists(conn)
        pipe = conn.pipeline.return_value

        client.insert_documents(model, [
            Document("f", "first", [1.0, 0.0, 0.0]),
            Document("f", "second", [0.0, 1.0, 0.0]),
        ])

        # Pipelined HSETs apply in order, so the second overwrites the first
        key, = pipe.hset.call_args[0]
        assert key == "embeddings-mxbai-embed-large:{f}"
        assert pipe.hset.call_args[1]["mapping"]["text"] == "second"

    def test_insert_without_schema(self, client, conn, model, abc_documents):
        with pytest.raises(SchemaNotFoundError):
            client.insert_document(model, abc_documents[0])
        conn.pipeline.assert_not_called()

    def test_insert_embedding_failure_writes_nothing(self, client, conn, model):
        schema_exists(conn)
        with pytest.raises(EmbeddingError):
            client.insert_document(model, Document("x", "unknown"))
        conn.pipeline.return_value.execute.assert_not_called()

    def test_insert_write_failure(self, client, conn, model, abc_documents):
        schema_exists(conn)
        conn.pipeline.return_value.execute.side_effect = redis.exceptions.ConnectionError("gone")
        with pytest.raises(StoreWriteError):
            client.insert_document(model, abc_documents[0])


class TestDelete:
    def test_delete_document(self, client, conn, model):
        conn.delete.return_value = 1
        assert client.delete_document(model, "a.txt") is True
        conn.delete.assert_called_once_with("embeddings-mxbai-embed-large:{a.txt}")

    def test_delete_missing_is_noop(self, client, conn, model):
        conn.delete.return_value = 0
        assert client.delete_document(model, "a.txt") is False

    def test_delete_missing_strict(self, client, conn, model):
        conn.delete.return_value = 0
        with pytest.raises(NotFoundError):
            client.delete_document(model, "a.txt", missing_ok=False)

    def test_delete_all_counts(self, client, conn, model):
        conn.scan_iter.return_value = iter([b"embeddings-mxbai-embed-large:{a}",
                                            b"embeddings-mxbai-embed-large:{b}"])
        conn.delete.return_value = 1

        report = client.delete_all_documents(model)

        conn.scan_iter.assert_called_once_with(match="embeddings-mxbai-embed-large:*")
        assert report.deleted == 2
        assert report.complete

    def test_delete_all_partial_failure(self, client, conn, model):
        conn.scan_iter.return_value = iter([b"k1", b"k2", b"k3"])
        conn.delete.side_effect = [1, redis.exceptions.ResponseError("boom"), 1]

        report = client.delete_all_documents(model)

        assert report.deleted == 2
        assert report.failed == {"k2": "boom"}
        assert not report.complete

    def test_delete_all_listing_failure(self, client, conn, model):
        conn.scan_iter.side_effect = redis.exceptions.ConnectionError("gone")
        with pytest.raises(StoreReadError):
            client.delete_all_documents(model)


class TestFindKNearest:
    def test_query_shape(self, client, conn, model):
        conn.ft.return_value.search.return_value = {"results": []}

        client.find_k_nearest(model, Document(embedding=[0.9, 0.1, 0.0]), k=2)

        args, kwargs = conn.ft.return_value.search.call_args
        query = args[0]
        assert query.query_string() == "*=>[KNN 2 @embedding $vec_param AS vector_score]"
        assert kwargs["query_params"] == {"vec_param": encode([0.9, 0.1, 0.0])}
        conn.ft.assert_called_with("idx:embeddings-mxbai-embed-large")

    def test_parses_resp3_reply(self, client, conn, model):
        conn.ft.return_value.search.return_value = {
            b"total_results": 2,
            b"results": [
                {b"id": b"k1", b"extra_attributes": {
                    b"file_id": b"doc-a", b"text": b"a", b"vector_score": b"0.006"}},
                {b"id": b"k2", b"extra_attributes": {
                    b"file_id": b"doc-b", b"text": b"b", b"vector_score": b"0.89"}},
            ],
        }

        hits = client.find_k_nearest(model, Document(embedding=[0.9, 0.1, 0.0]), k=2)

        assert [(h.file_id, h.text) for h in hits] == [("doc-a", "a"), ("doc-b", "b")]
        assert hits[0].distance == pytest.approx(0.006)

    def test_parses_resp2_result(self, client, conn, model):
        conn.ft.return_value.search.return_value = SimpleNamespace(
            total=1,
            docs=[SimpleNamespace(id="k1", payload=None, file_id="doc-a",
                                  text="a", vector_score="0.5")],
        )

        hits = client.find_k_nearest(model, Document(embedding=[1, 0, 0]), k=1)

        assert len(hits) == 1
        assert hits[0].file_id == "doc-a"
        assert hits[0].distance == 0.5

    def test_embeds_query_text(self, client, conn, model, embedder):
        conn.ft.return_value.search.return_value = {"results": []}

        client.find_k_nearest(model, Document(text="mostly a"), k=1)

        assert embedder.calls == ["mostly a"]
        params = conn.ft.return_value.search.call_args[1]["query_params"]
        assert decode(params["vec_param"]) == [0.9, 0.1, 0.0]

    @pytest.mark.parametrize("reply", [
        None,
        {"results": "nope"},
        {"results": [{"id": "k1"}]},
        {"results": [{"extra_attributes": {"text": "no id"}}]},
    ])
    def test_malformed_reply(self, client, conn, model, reply):
        conn.ft.return_value.search.return_value = reply
        with pytest.raises(QueryError):
            client.find_k_nearest(model, Document(embedding=[1, 0, 0]), k=1)

    def test_missing_index(self, client, conn, model):
        conn.ft.return_value.search.side_effect = ResponseError("idx:embeddings-x: no such index")
        with pytest.raises(SchemaNotFoundError):
            client.find_k_nearest(model, Document(embedding=[1, 0, 0]), k=1)

    def test_query_failure(self, client, conn, model):
        conn.ft.return_value.search.side_effect = ResponseError("Syntax error")
        with pytest.raises(QueryError):
            client.find_k_nearest(model, Document(embedding=[1, 0, 0]), k=1)


# =============================================================================
# Integration tests
# =============================================================================

live = pytest.mark.skipif(
    not os.getenv("TEST_REDIS_URL"),
    reason="TEST_REDIS_URL not set. Set it to run Redis integration tests."
)


@pytest.fixture
def live_client(embedder):
    client = RedisVectorClient(embedder, url=os.getenv("TEST_REDIS_URL"))
    yield client

    # Cleanup after each test
    for model in Model:
        try:
            client.drop_schema(model)
        except SchemaNotFoundError:
            pass
    client.close()


@live
def test_live_end_to_end(live_client, model, schema, abc_documents):
    live_client.create_schema(model, schema)
    live_client.insert_documents(model, abc_documents)

    hits = live_client.find_k_nearest(model, Document(embedding=[0.9, 0.1, 0.0]), k=1)

    assert len(hits) == 1
    assert hits[0].text == "a"


@live
def test_live_schema_guard(live_client, model, schema, abc_documents):
    with pytest.raises(SchemaNotFoundError):
        live_client.insert_document(model, abc_documents[0])

    live_client.create_schema(model, schema)
    with pytest.raises(SchemaExistsError):
        live_client.create_schema(model, schema)


@live
def test_live_upsert_and_ordering(live_client, model, schema, abc_documents):
    live_client.create_schema(model, schema)
    live_client.insert_documents(model, abc_documents)
    live_client.insert_document(model, Document("doc-a", "a again", [1.0, 0.0, 0.0]))

    hits = live_client.find_k_nearest(model, Document(embedding=[0.9, 0.1, 0.0]), k=5)

    assert [h.file_id for h in hits].count("doc-a") == 1
    assert hits[0].text == "a again"
    distances = [h.distance for h in hits]
    assert distances == sorted(distances)
    assert len(hits) == 3


@live
def test_live_batch_repeated_id_last_wins(live_client, model, schema):
    live_client.create_schema(model, schema)
    live_client.insert_documents(model, [
        Document("f", "first", [1.0, 0.0, 0.0]),
        Document("f", "second", [1.0, 0.0, 0.0]),
    ])

    hits = live_client.find_k_nearest(model, Document(embedding=[1.0, 0.0, 0.0]), k=5)
    assert [(h.file_id, h.text) for h in hits] == [("f", "second")]


@live
def test_live_namespace_isolation(live_client, schema, abc_documents):
    live_client.create_schema(Model.LLAMA32, schema)
    live_client.create_schema(Model.MXBAI_EMBED_LARGE, schema)
    live_client.insert_documents(Model.LLAMA32, abc_documents)

    hits = live_client.find_k_nearest(
        Model.MXBAI_EMBED_LARGE, Document(embedding=[1.0, 0.0, 0.0]), k=3
    )
    assert hits == []


@live
def test_live_delete_all(live_client, model, schema, abc_documents):
    live_client.create_schema(model, schema)
    live_client.insert_documents(model, abc_documents)

    report = live_client.delete_all_documents(model)

    assert report.deleted == 3
    assert live_client.has_schema(model)
