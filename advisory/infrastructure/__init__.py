"""Infrastructure adapters: embeddings, vector storage and observability."""
