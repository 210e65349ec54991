from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sproutie.db.base import Base


class FavoritePlant(Base):
    __tablename__ = "favorite_plants"
    __table_args__ = (UniqueConstraint("firebase_uid", "trefle_id", name="uq_favorite_user_plant"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    firebase_uid: Mapped[str] = mapped_column(String(128), index=True)
    trefle_id: Mapped[int] = mapped_column(Integer)
    slug: Mapped[str] = mapped_column(String(255))
    scientific_name: Mapped[str] = mapped_column(String(255))
    common_name: Mapped[Optional[str]] = mapped_column(String(255))
    family: Mapped[Optional[str]] = mapped_column(String(200))
    genus: Mapped[Optional[str]] = mapped_column(String(200))
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    date_added: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
