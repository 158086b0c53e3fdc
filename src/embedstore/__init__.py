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

"""Store text documents as embedding vectors and query their nearest neighbors.

Quick Start:
    >>> from embedstore import Document, Model, SchemaConfig
    >>> from embedstore.embeddings import OllamaEmbedder
    >>> from embedstore.stores import RedisVectorClient
    >>>
    >>> embedder = OllamaEmbedder(Model.MXBAI_EMBED_LARGE)
    >>> client = RedisVectorClient(embedder, url="redis://localhost:6379")
    >>> client.create_schema(Model.MXBAI_EMBED_LARGE, SchemaConfig(index_dim=1024))
    >>> client.insert_document(
    ...     Model.MXBAI_EMBED_LARGE,
    ...     Document(file_id="notes.txt", text="How to fix login issues"),
    ... )
    >>> hits = client.find_k_nearest(
    ...     Model.MXBAI_EMBED_LARGE, Document(text="authentication problems"), k=3
    ... )
"""

__version__ = (0, 3, 0)


def versionstring(build=True, extra=True):
    """Returns the version number of embedstore as a string.

    :param build: Whether to include the build number in the string.
    :param extra: Whether to include alpha/beta/rc etc. tags. Only
        checked if build is True.
    :rtype: str
    """

    if build:
        first = 3
    else:
        first = 2

    s = ".".join(str(n) for n in __version__[:first])
    if build and extra:
        s += "".join(str(n) for n in __version__[3:])

    return s


from .documents import (
    DeleteReport,
    DistanceMetric,
    Document,
    Model,
    SchemaConfig,
    SearchHit,
    ensure_embedded,
)
from .errors import (
    ConfigError,
    ConnectionError,
    EmbeddingError,
    EmbedStoreError,
    NotFoundError,
    QueryError,
    SchemaExistsError,
    SchemaNotFoundError,
    StoreReadError,
    StoreWriteError,
)

__all__ = [
    "__version__",
    "versionstring",
    # Data model
    "Document",
    "Model",
    "SchemaConfig",
    "DistanceMetric",
    "SearchHit",
    "DeleteReport",
    "ensure_embedded",
    # Errors
    "EmbedStoreError",
    "ConfigError",
    "ConnectionError",
    "EmbeddingError",
    "SchemaExistsError",
    "SchemaNotFoundError",
    "StoreWriteError",
    "StoreReadError",
    "QueryError",
    "NotFoundError",
]
