"""In-process nearest neighbor search without any server.

Uses the NumPy memory backend with a toy bag-of-letters embedder, so it
runs anywhere numpy is installed:

    python examples/memory_example.py
"""

import string

from embedstore import Document, Model, SchemaConfig
from embedstore.stores import MemoryVectorClient


class LetterEmbedder:
    """Counts letters; good enough to show the mechanics."""

    def embed(self, text):
        text = text.lower()
        return [float(text.count(c)) for c in string.ascii_lowercase]


def main():
    model = Model.LLAMA32
    client = MemoryVectorClient(LetterEmbedder())
    client.create_schema(model, SchemaConfig(index_dim=26, distance_metric="COSINE"))

    for i, text in enumerate(["apple pie", "banana bread", "cherry tart", "apple crumble"]):
        client.insert_document(model, Document(file_id=f"recipe-{i}", text=text))
    print(f"Stored {client.count(model)} documents in {model.namespace}")

    for hit in client.find_k_nearest(model, Document(text="apple"), k=2):
        print(f"  {hit.file_id}: {hit.text} ({hit.distance:.3f})")


if __name__ == "__main__":
    main()
