"""
Storage Package

Handles in-memory retention of fetched data.

Current implementation:
- RawBarCache: raw provider bars of one pair, kept so indicators and
  interval views can be recomputed without re-fetching

Each pair pipeline owns exactly one cache; caches are never shared.
"""

from storage.bar_cache import RawBarCache

__all__ = ["RawBarCache"]
