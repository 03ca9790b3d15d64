"""
Rapport API Routes Package.

This package contains all FastAPI route handlers organized by record type.
Use this module to import routers for registration with the FastAPI app.

Example:
    from api.routes import relationships_router, insights_router

    app.include_router(relationships_router)
    app.include_router(insights_router)
"""

from api.routes.relationships import router as relationships_router
from api.routes.events import router as events_router
from api.routes.insights import router as insights_router
from api.routes.messages import router as messages_router


__all__ = [
    "relationships_router",
    "events_router",
    "insights_router",
    "messages_router",
]
