"""Service layer exports."""

from .categories import Category, CategoryRepository, CategoryService
from .database import Database
from .users import Role, UserAccount, UserRepository, UserService

__all__ = [
    "Category",
    "CategoryRepository",
    "CategoryService",
    "Database",
    "Role",
    "UserAccount",
    "UserRepository",
    "UserService",
]
