"""IndexSync — Keeps a document store and a full-text search index in step.

Register a model once; every save and remove on the primary store is pushed
into the index, and searches come back index-native or hydrated from the store.
"""

__version__ = "0.1.0"

from indexsync.core.engine import IndexSyncEngine, PendingSync, SearchableModel
from indexsync.models.query import SearchOptions
from indexsync.models.results import SearchHit, SearchResults
from indexsync.models.schema import ModelOptions, SchemaDescription
from indexsync.models.signals import IndexedSignal, RemovedSignal

__all__ = [
    "IndexSyncEngine",
    "IndexedSignal",
    "ModelOptions",
    "PendingSync",
    "RemovedSignal",
    "SchemaDescription",
    "SearchHit",
    "SearchOptions",
    "SearchResults",
    "SearchableModel",
    "__version__",
]
