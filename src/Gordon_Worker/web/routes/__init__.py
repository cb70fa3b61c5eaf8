"""FastAPI route modules for the status surface.

Re-exports all routers so the application factory can import them:
    from Gordon_Worker.web.routes import status_router, tenants_router
"""

from Gordon_Worker.web.routes.status import router as status_router
from Gordon_Worker.web.routes.tenants import router as tenants_router

__all__ = ["status_router", "tenants_router"]
