"""
Profile Service — User model.
"""

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, String, Text, func
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class UserGender(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    surname: Mapped[str] = mapped_column(String, nullable=False)
    about_myself: Mapped[str | None] = mapped_column(Text, nullable=True)
    gender: Mapped[UserGender | None] = mapped_column(
        Enum(UserGender, name="user_gender"), nullable=True
    )
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    jung_result: Mapped[str | None] = mapped_column(
        String(4), nullable=True, comment="One of the 16 four-letter personality codes"
    )
    jung_last_attempt: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    primary_photo: Mapped[str | None] = mapped_column(
        String, nullable=True, comment="Path of the photo shown by default"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    photos: Mapped[list["UserPhoto"]] = relationship(
        "UserPhoto",
        back_populates="user",
        order_by="UserPhoto.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tags: Mapped[list["UserTag"]] = relationship(
        "UserTag",
        back_populates="user",
        order_by="UserTag.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.name!r} {self.surname!r} id={self.id}>"
