"""Model wrappers for text embedding.

NOTE: Import concrete classes from their subpackages (src.models.embedding).

Patterns applied:
- Repository Pattern with Protocol (src.models.protocols)
- FakeClient for testing (src.models.embedding.fakes)
"""
