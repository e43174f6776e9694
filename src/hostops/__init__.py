"""hostops: AI administrative command pipeline for short-term-rental operations."""

__version__ = "0.1.0"
