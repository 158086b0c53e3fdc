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

"""Command line interface.

Usage:
    embedstore --model mxbai-embed-large create-index --index-dim 1024
    embedstore --model mxbai-embed-large inject --read-from embeddings.jsonl
    embedstore --model mxbai-embed-large search "how do I log in"
    embedstore --model mxbai-embed-large repl
    embedstore --model mxbai-embed-large drop-keys
    embedstore --model mxbai-embed-large drop-index

Connection defaults come from ``EMBEDSTORE_*`` environment variables and can
be overridden with options.
"""

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional, TextIO

from .config import BACKENDS, StoreConfig, open_client, open_embedder
from .documents import DistanceMetric, Document, Model, SchemaConfig
from .errors import EmbedStoreError
from .ingest import ErrorPolicy, Ingestor, read_documents

logger = logging.getLogger(__name__)

# Commands that compute embeddings and therefore need a live Ollama server
EMBEDDING_COMMANDS = {"inject", "search", "repl"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="embedstore",
        description="Store embeddings in a vector database and query nearest neighbors",
    )
    parser.add_argument(
        "--model", required=True, choices=[m.value for m in Model],
        help="Embedding model; also selects the index namespace",
    )
    parser.add_argument("--backend", choices=BACKENDS, help="Vector store backend")
    parser.add_argument("--redis-url", help="Redis URL")
    parser.add_argument("--chroma-host", help="Chroma server host")
    parser.add_argument("--chroma-port", type=int, help="Chroma server port")
    parser.add_argument("--ollama-url", help="Ollama address")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create-index", help="Create the index for the model")
    create.add_argument("--index-dim", type=int, default=1024, help="Index dimension")
    create.add_argument(
        "--index-dist", default="COSINE", choices=[m.value for m in DistanceMetric],
        type=str.upper, help="Index distance function",
    )

    sub.add_parser("drop-index", help="Drop the index and its documents")
    sub.add_parser("drop-keys", help="Delete all documents but keep the index")

    inject = sub.add_parser("inject", help="Load embeddings from a JSON lines file")
    inject.add_argument("--read-from", required=True, help="JSON lines file to read")
    inject.add_argument(
        "--on-error", default=ErrorPolicy.ABORT.value,
        choices=[p.value for p in ErrorPolicy],
        help="What to do when a record fails to insert",
    )
    inject.add_argument(
        "--retries", type=int, default=3, help="Retries per record with --on-error retry",
    )

    search = sub.add_parser("search", help="Print the documents nearest to a text")
    search.add_argument("text", help="Query text")
    search.add_argument("-k", type=int, default=3, help="Number of results")

    repl = sub.add_parser("repl", help="Query interactively")
    repl.add_argument("-k", type=int, default=3, help="Number of results")

    return parser


def config_from_args(args: argparse.Namespace) -> StoreConfig:
    """Overlay command line options on the environment config."""
    config = StoreConfig.from_env()
    overrides = {
        "backend": args.backend,
        "redis_url": args.redis_url,
        "chroma_host": args.chroma_host,
        "chroma_port": args.chroma_port,
        "ollama_url": args.ollama_url,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


def print_hits(client, model: Model, text: str, k: int, out: TextIO) -> None:
    for hit in client.find_k_nearest(model, Document(text=text), k=k):
        out.write(f"* {hit.text.rstrip()}\n")


def run_repl(client, model: Model, k: int, stdin: TextIO, out: TextIO) -> None:
    """Answer queries read line by line until end of input."""
    while True:
        out.write(">: ")
        out.flush()
        line = stdin.readline()
        if not line:
            out.write("\n")
            return
        text = line.strip()
        if not text:
            continue
        try:
            print_hits(client, model, text, k, out)
        except EmbedStoreError as e:
            logger.error("Failed to execute search query: %s", e)


def run_command(args: argparse.Namespace, client, model: Model) -> None:
    if args.command == "create-index":
        client.create_schema(
            model,
            SchemaConfig(
                index_dim=args.index_dim,
                distance_metric=DistanceMetric.from_name(args.index_dist),
            ),
        )
    elif args.command == "drop-index":
        client.drop_schema(model)
    elif args.command == "drop-keys":
        report = client.delete_all_documents(model)
        if not report.complete:
            raise EmbedStoreError(
                f"Deleted {report.deleted} keys, failed to delete {len(report.failed)}: "
                f"{', '.join(sorted(report.failed))}"
            )
    elif args.command == "inject":
        ingestor = Ingestor(
            client, model, policy=ErrorPolicy(args.on_error), retries=args.retries
        )
        ingestor.run(read_documents(args.read_from))
    elif args.command == "search":
        print_hits(client, model, args.text, args.k, sys.stdout)
    elif args.command == "repl":
        run_repl(client, model, args.k, sys.stdin, sys.stdout)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    model = Model.from_name(args.model)
    logger.info("Using ollama model: %s", model)

    try:
        config = config_from_args(args)
        embedder = open_embedder(
            config, model, check_server=args.command in EMBEDDING_COMMANDS
        )
        with embedder, open_client(config, embedder) as client:
            run_command(args, client, model)
    except KeyboardInterrupt:
        logger.info("Exiting...")
        return 1
    except (EmbedStoreError, OSError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
