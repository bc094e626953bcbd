"""IndexSync Python SDK — Client library for the IndexSync API.

Provides both async and sync clients for interacting with an IndexSync server.

Quick start::

    from indexsync.client import IndexSyncClient

    client = IndexSyncClient("http://localhost:8080")

    client.save("Tweet", {"user": "john", "message": "I like Riak better"})
    response = client.search("Tweet", "riak", hydrate=True)
"""

from indexsync.client.client import AsyncIndexSyncClient, IndexSyncClient

__all__ = ["AsyncIndexSyncClient", "IndexSyncClient"]
