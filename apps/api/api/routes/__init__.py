"""Route modules exposed by the API package."""

from . import auth, categories, health, tickets, users

__all__ = ["auth", "categories", "health", "tickets", "users"]
