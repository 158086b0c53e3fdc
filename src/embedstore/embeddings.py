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

"""Embedders turning text into vectors.

This module defines the Embedder protocol used by every store client and
an implementation backed by an Ollama server.

Remote models are not required to be deterministic: embedding the same text
twice may give slightly different vectors. The only guarantee is that every
vector produced for a given model has the same dimensionality.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Protocol, runtime_checkable

from .documents import Model, is_zero_vector
from .errors import ConnectionError, EmbeddingError

logger = logging.getLogger(__name__)


@runtime_checkable
class Embedder(Protocol):
    """Protocol for anything that can embed a text.

    Example:
        >>> class ConstantEmbedder:
        ...     def embed(self, text: str) -> List[float]:
        ...         return [1.0, 0.0, 0.0]
    """

    def embed(self, text: str) -> List[float]:
        """Return the embedding vector of ``text``.

        Raises:
            EmbeddingError: If the vector cannot be computed
        """
        ...


class BaseEmbedder(ABC):
    """Abstract base class for embedders bound to one model."""

    @property
    @abstractmethod
    def model(self) -> Model:
        """Return the model vectors are produced with."""
        pass

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """Embed a single text."""
        pass

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Embed several texts, one request each."""
        return [self.embed(text) for text in texts]

    def close(self) -> None:
        """Release any resources held by the embedder."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model.value!r})"


class OllamaEmbedder(BaseEmbedder):
    """Embedder using the Ollama REST API.

    Sends ``POST /api/embeddings`` with ``{"model", "prompt"}`` and reads
    the ``embedding`` field of the reply.

    Example:
        >>> embedder = OllamaEmbedder(Model.MXBAI_EMBED_LARGE)
        >>> vector = embedder.embed("Hello world")
        >>> len(vector)
        1024

    Requires: pip install httpx
    """

    DEFAULT_URL = "http://127.0.0.1:11434"

    def __init__(
        self,
        model: Model,
        base_url: str = DEFAULT_URL,
        timeout: float = 60.0,
        client=None,
        check_server: bool = True,
    ):
        """Initialize the Ollama embedder.

        Args:
            model: Model to embed with
            base_url: Address of the Ollama server
            timeout: Request timeout in seconds
            client: Preconfigured ``httpx.Client`` to use instead of
                creating one. Requests use relative ``/api/...`` paths,
                so it must carry the server address as ``base_url``;
                ``base_url`` above is then only used in messages
            check_server: Query the server version once to fail fast when
                the server is down

        Raises:
            ImportError: If httpx is not installed
            ConnectionError: If ``check_server`` is set and the server
                cannot be reached
        """
        try:
            import httpx
        except ImportError:
            raise ImportError(
                "httpx is required for OllamaEmbedder. "
                "Install with: pip install httpx"
            )

        self._httpx = httpx
        self._model = Model(model)
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(
                base_url=self.base_url,
                timeout=httpx.Timeout(timeout),
            )
        self._client = client

        if check_server:
            try:
                self.server_version()
            except ConnectionError:
                self.close()
                raise

    @property
    def model(self) -> Model:
        return self._model

    def server_version(self) -> str:
        """Return the version reported by the Ollama server.

        Raises:
            ConnectionError: If the server cannot be reached
        """
        try:
            response = self._client.get("/api/version")
            response.raise_for_status()
            version = response.json().get("version", "unknown")
        except (self._httpx.HTTPError, ValueError) as e:
            raise ConnectionError(
                f"Failed to get Ollama version from {self.base_url}: {e}"
            ) from e
        logger.info("Ollama version: %s", version)
        return version

    def embed(self, text: str) -> List[float]:
        """Embed ``text`` with the configured model.

        Raises:
            EmbeddingError: If the request fails or the reply carries no
                usable vector
        """
        payload = {"model": self._model.value, "prompt": text}
        try:
            response = self._client.post("/api/embeddings", json=payload)
            response.raise_for_status()
        except self._httpx.HTTPStatusError as e:
            raise EmbeddingError(
                f"Ollama returned HTTP {e.response.status_code} for model "
                f"{self._model.value}: {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except self._httpx.HTTPError as e:
            raise EmbeddingError(f"Failed to reach Ollama at {self.base_url}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingError(f"Ollama returned invalid JSON: {e}") from e

        vector = data.get("embedding") if isinstance(data, dict) else None
        if not isinstance(vector, list) or not vector:
            raise EmbeddingError(
                f"Ollama returned no embedding for model {self._model.value}"
            )
        try:
            vector = [float(x) for x in vector]
        except (TypeError, ValueError) as e:
            raise EmbeddingError(f"Ollama returned a malformed embedding: {e}") from e
        if is_zero_vector(vector):
            raise EmbeddingError(
                f"Ollama returned a zero vector for model {self._model.value}"
            )
        return vector

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
