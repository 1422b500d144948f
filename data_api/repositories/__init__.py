"""
Repository Package.
Data access over entities with soft-delete filtering and structured logging.
"""

from .base import BaseRepository, EntityT, QueryTransform
from .entity import EntityRepository, repository_operation

__all__ = [
    "BaseRepository",
    "EntityRepository",
    "EntityT",
    "QueryTransform",
    "repository_operation",
]
