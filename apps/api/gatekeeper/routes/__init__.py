"""Route modules."""

from .authentication import router as authentication_router
from .grants import router as grants_router
from .profiles import router as profiles_router

__all__ = ["authentication_router", "grants_router", "profiles_router"]
