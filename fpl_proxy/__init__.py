"""
Caching, fallback-aware proxy for the Fantasy Premier League API.
"""
__version__ = "1.0.0"
