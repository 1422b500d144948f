"""
SQLAlchemy ORM Models Package.

- base: Base, BaseEntity and the entity ID generator
- user: User
"""

from .base import Base, BaseEntity, new_entity_id
from .user import User

__all__ = [
    "Base",
    "BaseEntity",
    "new_entity_id",
    "User",
]
