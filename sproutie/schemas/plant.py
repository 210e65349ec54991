from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

_camel = {"alias_generator": to_camel, "populate_by_name": True}


# ── Trefle payloads ───────────────────────────────────────────────────────────


class TreflePlant(BaseModel):
    """
    The subset of a Trefle plant record that is copied into the collection.

    Search results carry ``family`` and ``genus`` as plain names while the
    detail endpoint nests them as objects; both shapes are accepted.
    """

    id: int
    slug: str = Field(min_length=1)
    scientific_name: str = Field(min_length=1)
    common_name: Optional[str] = None
    family: Optional[str] = None
    family_common_name: Optional[str] = None
    genus: Optional[str] = None
    image_url: Optional[str] = None
    year: Optional[int] = None
    author: Optional[str] = None
    bibliography: Optional[str] = None
    status: Optional[str] = None
    rank: Optional[str] = None
    synonyms: list[Any] = []

    model_config = {"extra": "ignore"}

    @field_validator("family", "genus", mode="before")
    @classmethod
    def _taxon_name(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return value.get("name")
        return value

    @field_validator("synonyms", mode="before")
    @classmethod
    def _synonym_names(cls, value: Any) -> Any:
        if value is None:
            return []
        return [s.get("name") if isinstance(s, dict) else s for s in value]


# ── Requests ──────────────────────────────────────────────────────────────────


class SaveToCollectionRequest(BaseModel):
    nickname: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None

    model_config = _camel


class SavePayloadRequest(SaveToCollectionRequest):
    plant_data: TreflePlant
    # Accepted for older clients; must match the authenticated user when sent
    user_id: Optional[str] = None


class SavedPlantUpdate(BaseModel):
    nickname: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    planted_date: Optional[date] = None
    harvest_date: Optional[date] = None

    model_config = _camel


class Photo(BaseModel):
    url: str
    caption: Optional[str] = None
    date_taken: Optional[datetime] = None

    model_config = _camel


class GrowthStage(BaseModel):
    stage: str
    stage_date: Optional[date] = Field(None, alias="date")
    notes: Optional[str] = None
    photo: Optional[str] = None

    model_config = _camel


class CareReminder(BaseModel):
    type: str
    frequency: Optional[str] = None
    last_done: Optional[datetime] = None
    next_due: Optional[datetime] = None

    model_config = _camel


# ── Responses ─────────────────────────────────────────────────────────────────


class SavedPlantRead(BaseModel):
    id: int
    firebase_uid: str
    trefle_id: int
    slug: str
    scientific_name: str
    common_name: Optional[str] = None
    family: Optional[str] = None
    family_common_name: Optional[str] = None
    genus: Optional[str] = None
    image_url: Optional[str] = None
    year: Optional[int] = None
    author: Optional[str] = None
    bibliography: Optional[str] = None
    status: Optional[str] = None
    rank: Optional[str] = None
    synonyms: list[Any] = []
    nickname: Optional[str] = None
    notes: Optional[str] = None
    location: Optional[str] = None
    planted_date: Optional[date] = None
    harvest_date: Optional[date] = None
    photos: list[Photo] = []
    growth_stages: list[GrowthStage] = []
    care_reminders: list[CareReminder] = []
    is_active: bool
    date_added: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {**_camel, "from_attributes": True}


class FavoritePlantRead(BaseModel):
    id: int
    firebase_uid: str
    trefle_id: int
    slug: str
    scientific_name: str
    common_name: Optional[str] = None
    family: Optional[str] = None
    genus: Optional[str] = None
    image_url: Optional[str] = None
    date_added: datetime

    model_config = {**_camel, "from_attributes": True}


class SearchHistoryRead(BaseModel):
    id: int
    query: str
    results_count: Optional[int] = None
    search_date: datetime

    model_config = {**_camel, "from_attributes": True}


class PageMeta(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int

    model_config = _camel


class SavedPlantPage(BaseModel):
    data: list[SavedPlantRead]
    meta: PageMeta


class FavoritePlantPage(BaseModel):
    data: list[FavoritePlantRead]
    meta: PageMeta


class SearchHistoryPage(BaseModel):
    data: list[SearchHistoryRead]
    meta: PageMeta


class SavedPlantList(BaseModel):
    data: list[SavedPlantRead]


class SavedPlantResponse(BaseModel):
    message: str
    plant: SavedPlantRead


class FavoritePlantResponse(BaseModel):
    message: str
    favorite: FavoritePlantRead


class MessageResponse(BaseModel):
    message: str
