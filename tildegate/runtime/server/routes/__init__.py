"""HTTP route groups."""

from .intent_routes import IntentRoutes

__all__ = ["IntentRoutes"]
