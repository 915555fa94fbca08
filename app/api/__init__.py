"""API routes."""

from app.api.admin import router as admin_router
from app.api.chat import router as chat_router

__all__ = ["admin_router", "chat_router"]
