"""Semantic-Search-Service: embedding-based document search.

This package embeds free-text queries with a local sentence-embedding model
and ranks a small document corpus by cosine similarity.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
