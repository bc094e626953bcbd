"""Core components — Mapping generation, synchronization, search and the engine."""
