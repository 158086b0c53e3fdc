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

"""Vector store clients.

This module provides the following implementations of
:class:`VectorStoreClient`:

- MemoryVectorClient: In-process NumPy store, no server needed
- RedisVectorClient: Redis search module with HNSW vector indexes
- ChromaVectorClient: ChromaDB collections

Example:
    >>> from embedstore.stores import MemoryVectorClient
    >>>
    >>> client = MemoryVectorClient(embedder)
    >>> client.create_schema(Model.LLAMA32, SchemaConfig(index_dim=3))

    >>> # Or use Redis
    >>> from embedstore.stores import RedisVectorClient
    >>>
    >>> client = RedisVectorClient(embedder, url="redis://localhost:6379")
"""

from .base import VectorStoreClient, collection_name
from .memory_store import MemoryVectorClient

__all__ = [
    "VectorStoreClient",
    "collection_name",
    "MemoryVectorClient",
    "RedisVectorClient",
    "ChromaVectorClient",
]


# Lazy import for optional backends
def __getattr__(name: str):
    if name == "RedisVectorClient":
        from .redis_store import RedisVectorClient
        return RedisVectorClient
    elif name == "ChromaVectorClient":
        from .chroma_store import ChromaVectorClient
        return ChromaVectorClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
