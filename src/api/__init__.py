"""FastAPI routes and endpoints.

Endpoints:
- GET /health: Service health status
- GET /ready: Readiness probe (embedding model loaded)
- POST /api/search: Semantic search over stored documents
- GET /api/status: Embedding model lifecycle status
"""
