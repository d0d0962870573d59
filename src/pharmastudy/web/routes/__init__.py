"""Route handlers for the Web API."""

from pharmastudy.web.routes.auth import router as auth_router
from pharmastudy.web.routes.chapters import router as chapters_router
from pharmastudy.web.routes.flashcards import router as flashcards_router
from pharmastudy.web.routes.health import router as health_router
from pharmastudy.web.routes.items import router as items_router
from pharmastudy.web.routes.search import router as search_router
from pharmastudy.web.routes.topics import router as topics_router

__all__ = [
    "auth_router",
    "chapters_router",
    "flashcards_router",
    "health_router",
    "items_router",
    "search_router",
    "topics_router",
]
