from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sproutie.db.base import Base


class SearchHistory(Base):
    __tablename__ = "plant_searches"
    __table_args__ = (Index("ix_plant_searches_user_date", "firebase_uid", "search_date"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    firebase_uid: Mapped[str] = mapped_column(String(128))
    query: Mapped[str] = mapped_column(String(255))
    results_count: Mapped[Optional[int]] = mapped_column(Integer)
    search_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
