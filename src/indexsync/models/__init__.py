"""Data models — Schemas, mappings, signals, query options and results."""
