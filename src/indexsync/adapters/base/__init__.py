"""Base adapter interface — Abstract classes for search engine connectors."""

from indexsync.adapters.base.adapter import IndexAdapter
from indexsync.adapters.base.registry import AdapterRegistry

__all__ = ["AdapterRegistry", "IndexAdapter"]
