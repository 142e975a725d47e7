"""Data stores for persistence and caching.

Stores handle:
- Relational database: engine, sessions, schema bootstrap
- Redis: caching with TTL policies

No catalog/inventory logic in stores - that belongs in services.
"""
