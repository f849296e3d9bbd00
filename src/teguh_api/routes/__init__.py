"""API routes module."""

from teguh_api.routes.admin import router as admin_router
from teguh_api.routes.ai import router as ai_router
from teguh_api.routes.api_keys import router as api_keys_router
from teguh_api.routes.auth import router as auth_router
from teguh_api.routes.downloads import router as downloads_router
from teguh_api.routes.health import router as health_router
from teguh_api.routes.system import router as system_router
from teguh_api.routes.user import router as user_router

__all__ = [
    "admin_router",
    "ai_router",
    "api_keys_router",
    "auth_router",
    "downloads_router",
    "health_router",
    "system_router",
    "user_router",
]
