"""API routers."""
from .cron import router as cron_router
from .monitors import router as monitors_router
from .auth_profiles import router as auth_profiles_router
from .notifications import router as notifications_router

__all__ = ["cron_router", "monitors_router", "auth_profiles_router", "notifications_router"]
