"""HTTP frontend."""

from cronclaw.adapters.web.routes import create_app, router

__all__ = ["create_app", "router"]
