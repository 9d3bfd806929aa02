"""User ORM model (read-only mapping)."""

from sqlalchemy import Boolean, String, text
from sqlalchemy.orm import Mapped, mapped_column

from authz_cache.infrastructure.persistence.database import Base
from authz_cache.infrastructure.persistence.models.mixins import BaseModelMixin


class User(BaseModelMixin, Base):
    """User model. Table: app_user. Unique username."""

    __tablename__ = "app_user"

    username: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )
