"""Observability — Structured logging."""
