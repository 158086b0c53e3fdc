"""Example usage of embedstore against a live backend.

This example demonstrates:
1. Connecting to Ollama and a vector store
2. Creating the index for a model
3. Inserting documents that are embedded on the way in
4. Nearest neighbor queries
5. Deleting documents and dropping the index

Requirements:
    pip install embedstore[all]

Setup:
    1. Start Ollama and pull the model: ollama pull mxbai-embed-large
    2. Start Redis Stack (docker run -p 6379:6379 redis/redis-stack-server)
       or a Chroma server (chroma run --port 35000)
    3. Choose the backend: export EMBEDSTORE_BACKEND=redis (or chroma)
    4. Run: python examples/vector_store_example.py
"""

from embedstore import Document, Model, SchemaConfig
from embedstore.config import StoreConfig, open_client, open_embedder

MODEL = Model.MXBAI_EMBED_LARGE
DIMENSION = 1024  # mxbai-embed-large

DOCUMENTS = [
    ("notes/python.txt", "Python is a high-level programming language with dynamic semantics"),
    ("notes/ml.txt", "Machine learning is a subset of artificial intelligence"),
    ("notes/redis.txt", "Redis is an in-memory data store with a search module"),
    ("notes/docker.txt", "Docker containers provide lightweight virtualization"),
    ("notes/git.txt", "Git is a distributed version control system"),
]


def main():
    print("=" * 80)
    print("embedstore Example")
    print("=" * 80)

    config = StoreConfig.from_env()

    # 1. Connect
    print(f"\n1. Connecting to Ollama at {config.ollama_url} and {config.backend}...")
    with open_embedder(config, MODEL) as embedder, open_client(config, embedder) as client:
        print(f"   ✓ {client!r}")

        # 2. Create index
        print(f"\n2. Creating index {MODEL.namespace}...")
        if client.has_schema(MODEL):
            client.drop_schema(MODEL)
        client.create_schema(MODEL, SchemaConfig(index_dim=DIMENSION))
        print("   ✓ Index created")

        # 3. Insert
        print("\n3. Inserting documents...")
        stored = client.insert_documents(
            MODEL, [Document(file_id=file_id, text=text) for file_id, text in DOCUMENTS]
        )
        print(f"   ✓ Inserted {len(stored)} documents of dimension {len(stored[0].embedding)}")

        # 4. Query
        print("\n4. Nearest neighbor search...")
        query = "programming languages"
        for i, hit in enumerate(client.find_k_nearest(MODEL, Document(text=query), k=3), 1):
            print(f"      {i}. {hit.file_id} (distance: {hit.distance:.4f})")
            print(f"         '{hit.text}'")

        # 5. Cleanup
        print("\n5. Cleaning up...")
        client.delete_document(MODEL, "notes/git.txt")
        report = client.delete_all_documents(MODEL)
        print(f"   ✓ Deleted {report.deleted} remaining documents")
        client.drop_schema(MODEL)
        print("   ✓ Index dropped")

    print("\n" + "=" * 80)
    print("Example completed successfully!")
    print("=" * 80)


if __name__ == "__main__":
    try:
        main()
    except ImportError as e:
        print(f"\nError: Missing dependency - {e}")
        print("\nInstall required packages:")
        print("  pip install embedstore[all]")
    except Exception as e:
        print(f"\nError: {e}")
        print("\nMake sure:")
        print("  1. Ollama is running and the model is pulled")
        print("  2. The vector store is running")
        print("  3. EMBEDSTORE_* variables point at both")
        raise
