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

"""Exceptions raised by embedstore.

Every adapter translates backend failures into one of these and chains the
original exception, so callers can catch by kind without knowing which
backend they are talking to.
"""

import builtins
from typing import Optional


class EmbedStoreError(Exception):
    """Base exception for all embedstore errors."""
    pass


class ConfigError(EmbedStoreError, ValueError):
    """Invalid model, schema or client parameters.

    Raised before any network call is made.
    """
    pass


class ConnectionError(EmbedStoreError, builtins.ConnectionError):
    """A backend or the embedding endpoint is unreachable at construction."""
    pass


class SchemaExistsError(EmbedStoreError):
    """The index or collection for a model already exists."""

    def __init__(self, name: str):
        super().__init__(f"Schema {name!r} already exists")
        self.name = name


class SchemaNotFoundError(EmbedStoreError):
    """The index or collection for a model does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Schema {name!r} does not exist")
        self.name = name


class EmbeddingError(EmbedStoreError):
    """
    The embedding endpoint failed.

    Raised when:
    - The endpoint is unreachable or times out
    - The endpoint returns an error status
    - The response carries no vector, an empty vector or an all-zero vector
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StoreWriteError(EmbedStoreError):
    """A backend write (insert, delete, schema change) failed."""
    pass


class StoreReadError(EmbedStoreError):
    """A backend read failed."""
    pass


class QueryError(StoreReadError):
    """A KNN query failed or returned a reply that could not be parsed."""
    pass


class NotFoundError(EmbedStoreError, KeyError):
    """A document to delete does not exist and the caller asked to know."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"No document with key {self.key!r}"
