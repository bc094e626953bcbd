"""Index adapter layer — Pluggable connectors for search backends.

Built-in adapters:
  - elasticsearch: Elasticsearch v8+
  - opensearch: OpenSearch v2+ (AWS-compatible Elasticsearch fork)
  - memory: In-process index for tests and local development

Implement ``IndexAdapter`` to connect your own search backend.
"""
