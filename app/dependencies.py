from fastapi import Depends, Request

from app.config import settings
from app.services.comment_service import DirectAppender, ReviewAppender, build_appender
from app.store import ContentStore


def get_store(request: Request) -> ContentStore:
    """
    FastAPI dependency returning the content store opened by the lifespan.

    Tests replace it through ``app.dependency_overrides`` the same way
    they would swap a database session.
    """
    return request.app.state.store


def get_appender(store: ContentStore = Depends(get_store)) -> DirectAppender | ReviewAppender:
    """Append strategy selected by ``APPEND_STRATEGY``, bound to the request's store."""
    return build_appender(store, settings)
