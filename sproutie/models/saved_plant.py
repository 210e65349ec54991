from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sproutie.db.base import Base


class SavedPlant(Base):
    """A Trefle plant saved into a user's personal collection."""

    __tablename__ = "saved_plants"
    __table_args__ = (
        UniqueConstraint("firebase_uid", "trefle_id", name="uq_saved_plant_user_plant"),
        Index("ix_saved_plants_user_active", "firebase_uid", "is_active"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    firebase_uid: Mapped[str] = mapped_column(String(128))

    # Trefle data
    trefle_id: Mapped[int] = mapped_column(Integer, index=True)
    slug: Mapped[str] = mapped_column(String(255))
    scientific_name: Mapped[str] = mapped_column(String(255))
    common_name: Mapped[Optional[str]] = mapped_column(String(255))
    family: Mapped[Optional[str]] = mapped_column(String(200))
    family_common_name: Mapped[Optional[str]] = mapped_column(String(200))
    genus: Mapped[Optional[str]] = mapped_column(String(200))
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    year: Mapped[Optional[int]] = mapped_column(Integer)
    author: Mapped[Optional[str]] = mapped_column(String(255))
    bibliography: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[Optional[str]] = mapped_column(String(50))
    rank: Mapped[Optional[str]] = mapped_column(String(50))
    synonyms: Mapped[list] = mapped_column(JSON, default=list)

    # User-entered
    nickname: Mapped[Optional[str]] = mapped_column(String(200))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(200))
    planted_date: Mapped[Optional[date]] = mapped_column(Date)
    harvest_date: Mapped[Optional[date]] = mapped_column(Date)

    # Embedded lists; reassign rather than mutate in place so changes are flushed
    photos: Mapped[list] = mapped_column(JSON, default=list)
    growth_stages: Mapped[list] = mapped_column(JSON, default=list)
    care_reminders: Mapped[list] = mapped_column(JSON, default=list)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    date_added: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
