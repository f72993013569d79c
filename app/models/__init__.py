"""
Profile Service — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.user import User, UserGender
from app.models.photo import UserPhoto
from app.models.tag import UserTag

__all__ = [
    "User",
    "UserGender",
    "UserPhoto",
    "UserTag",
]
