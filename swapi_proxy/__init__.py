"""
SWAPI character proxy.

Caches the people listing of swapi.tech and serves enriched, paginated
character pages (homeworld, species and films resolved per character).
"""

__version__ = "0.1.0"
