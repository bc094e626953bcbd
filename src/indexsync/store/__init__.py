"""Primary document store collaborators."""

from indexsync.store.base import DocumentStore
from indexsync.store.memory import InMemoryDocumentStore

__all__ = ["DocumentStore", "InMemoryDocumentStore"]
