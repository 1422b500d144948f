"""
User model.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseEntity


class User(BaseEntity):
    """
    Application user.
    Username is unique across deleted and active rows.
    """

    __tablename__ = "app_user"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), default="", nullable=False)
