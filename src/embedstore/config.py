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

"""Connection settings and client construction."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .documents import Model
from .errors import ConfigError

BACKENDS = ("redis", "chroma", "memory")

DEFAULT_BACKEND = "redis"
DEFAULT_REDIS_URL = "redis://localhost:6379"
DEFAULT_CHROMA_HOST = "localhost"
DEFAULT_CHROMA_PORT = 35000
DEFAULT_OLLAMA_URL = "http://127.0.0.1:11434"
DEFAULT_OLLAMA_TIMEOUT = 60.0


@dataclass
class StoreConfig:
    """Where the vector store and the embedding server live.

    Attributes:
        backend: One of "redis", "chroma" or "memory"
        redis_url: URL of the Redis server
        chroma_host: Host of the Chroma server
        chroma_port: Port of the Chroma server
        ollama_url: Address of the Ollama server
        ollama_timeout: Timeout in seconds for embedding requests
    """
    backend: str = DEFAULT_BACKEND
    redis_url: str = DEFAULT_REDIS_URL
    chroma_host: str = DEFAULT_CHROMA_HOST
    chroma_port: int = DEFAULT_CHROMA_PORT
    ollama_url: str = DEFAULT_OLLAMA_URL
    ollama_timeout: float = DEFAULT_OLLAMA_TIMEOUT

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ConfigError(
                f"Unknown backend: {self.backend!r}. Choose from: {list(BACKENDS)}"
            )
        if self.ollama_timeout <= 0:
            raise ConfigError(f"ollama_timeout must be positive, got {self.ollama_timeout}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        """Create config from ``EMBEDSTORE_*`` environment variables."""
        env = os.environ if environ is None else environ
        try:
            return cls(
                backend=env.get("EMBEDSTORE_BACKEND", DEFAULT_BACKEND),
                redis_url=env.get("EMBEDSTORE_REDIS_URL", DEFAULT_REDIS_URL),
                chroma_host=env.get("EMBEDSTORE_CHROMA_HOST", DEFAULT_CHROMA_HOST),
                chroma_port=int(env.get("EMBEDSTORE_CHROMA_PORT", str(DEFAULT_CHROMA_PORT))),
                ollama_url=env.get("EMBEDSTORE_OLLAMA_URL", DEFAULT_OLLAMA_URL),
                ollama_timeout=float(
                    env.get("EMBEDSTORE_OLLAMA_TIMEOUT", str(DEFAULT_OLLAMA_TIMEOUT))
                ),
            )
        except ValueError as e:
            if isinstance(e, ConfigError):
                raise
            raise ConfigError(f"Invalid embedstore environment setting: {e}") from e


def open_embedder(config: StoreConfig, model: Model, check_server: bool = True):
    """Create the Ollama embedder described by ``config``."""
    from .embeddings import OllamaEmbedder

    return OllamaEmbedder(
        Model(model),
        base_url=config.ollama_url,
        timeout=config.ollama_timeout,
        check_server=check_server,
    )


def open_client(config: StoreConfig, embedder):
    """Create the store client described by ``config``.

    Raises:
        ConfigError: If the backend is unknown
        ConnectionError: If the backend cannot be reached
    """
    if config.backend == "redis":
        from .stores.redis_store import RedisVectorClient
        return RedisVectorClient(embedder, url=config.redis_url)
    elif config.backend == "chroma":
        from .stores.chroma_store import ChromaVectorClient
        return ChromaVectorClient(
            embedder, host=config.chroma_host, port=config.chroma_port
        )
    elif config.backend == "memory":
        from .stores.memory_store import MemoryVectorClient
        return MemoryVectorClient(embedder)
    raise ConfigError(f"Unknown backend: {config.backend!r}")
