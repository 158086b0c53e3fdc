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

"""Bulk loading of precomputed embeddings from JSON lines files.

Each line holds one record::

    {"file_id": "notes/a.txt", "text": "...", "embedding": [0.1, 0.2, ...]}

Records without a vector, with an empty vector or with an all-zero vector
are skipped rather than stored. What happens when an insert fails is chosen
up front with an :class:`ErrorPolicy`, so a run never stops to ask.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Union

from .documents import Document, Model, is_zero_vector
from .errors import ConfigError, EmbedStoreError, SchemaNotFoundError

logger = logging.getLogger(__name__)


class ErrorPolicy(str, Enum):
    """What to do when inserting a record fails.

    - ABORT: stop the run and raise the error
    - SKIP: record the failure and continue with the next record
    - RETRY: try the record again up to ``retries`` times, then abort
    """
    ABORT = "abort"
    SKIP = "skip"
    RETRY = "retry"


@dataclass
class IngestReport:
    """Counts of a bulk load.

    Attributes:
        inserted: Records stored
        skipped: Records left out because of their vector, keyed by
            file_id, mapped to the reason
        failed: Records whose insert failed under the SKIP policy, keyed
            by file_id, mapped to the error message
    """
    inserted: int = 0
    skipped: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)


def read_documents(path: Union[str, Path]) -> Iterator[Document]:
    """Yield the documents of a JSON lines file.

    Blank lines are ignored.

    Raises:
        ConfigError: If a line is not a JSON object
    """
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise ConfigError(f"{path}:{lineno}: invalid JSON: {e}") from e
            if not isinstance(record, dict):
                raise ConfigError(f"{path}:{lineno}: expected a JSON object")
            try:
                yield Document.from_dict(record)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"{path}:{lineno}: invalid embedding: {e}") from e


def skip_reason(doc: Document) -> Optional[str]:
    """Return why ``doc`` must not be loaded, or None if it can be."""
    if not doc.embedding:
        return "no vector"
    if is_zero_vector(doc.embedding):
        return "zero vector"
    return None


class Ingestor:
    """Load documents into a store client under one model.

    Example:
        >>> ingestor = Ingestor(client, Model.LLAMA32, policy=ErrorPolicy.SKIP)
        >>> report = ingestor.run(read_documents("embeddings.jsonl"))
        >>> report.inserted
        120
    """

    def __init__(
        self,
        client,
        model: Model,
        policy: ErrorPolicy = ErrorPolicy.ABORT,
        retries: int = 3,
    ):
        if retries < 0:
            raise ConfigError(f"retries must not be negative, got {retries}")
        self.client = client
        self.model = Model(model)
        self.policy = ErrorPolicy(policy)
        self.retries = retries

    def _insert(self, doc: Document) -> None:
        attempts = 1 + (self.retries if self.policy == ErrorPolicy.RETRY else 0)
        for attempt in range(1, attempts + 1):
            try:
                self.client.insert_document(self.model, doc)
                return
            except SchemaNotFoundError:
                raise
            except EmbedStoreError as e:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Failed to insert %s (attempt %d/%d): %s",
                    doc.file_id, attempt, attempts, e,
                )

    def run(self, documents: Iterable[Document]) -> IngestReport:
        """Insert every loadable document.

        Raises:
            SchemaNotFoundError: If the model has no schema, whatever the policy
            EmbedStoreError: The failed insert's error under ABORT, or under
                RETRY once the retries are used up
        """
        report = IngestReport()
        for doc in documents:
            reason = skip_reason(doc)
            if reason is not None:
                logger.info("Skipping %s: %s", doc.file_id, reason)
                report.skipped[doc.file_id] = reason
                continue

            try:
                self._insert(doc)
            except SchemaNotFoundError:
                raise
            except EmbedStoreError as e:
                logger.error("Failed to inject embedding %s: %s", doc.file_id, e)
                if self.policy != ErrorPolicy.SKIP:
                    raise
                report.failed[doc.file_id] = str(e)
            else:
                report.inserted += 1

        logger.info(
            "Injected %d records (%d skipped, %d failed)",
            report.inserted, len(report.skipped), len(report.failed),
        )
        return report
