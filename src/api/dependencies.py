"""
FastAPI dependencies.

The lifecycle manager and search service are created once in src.main and
stored on app.state; routes receive them through Depends() so tests can swap
them with app.dependency_overrides.
"""

from fastapi import Request

from src.models.embedding.lifecycle import ModelLifecycleManager
from src.search.service import SearchService


def get_lifecycle_manager(request: Request) -> ModelLifecycleManager:
    """Get the application's ModelLifecycleManager."""
    return request.app.state.lifecycle


def get_search_service(request: Request) -> SearchService:
    """Get the application's SearchService."""
    return request.app.state.search_service
