"""
Plant search, collection and favorites.

Search and catalog lookups are delegated to Trefle. Saved plants, favorites
and search history are stored per Firebase user. Both SavedPlant and
FavoritePlant carry a unique (firebase_uid, trefle_id) constraint, so a save
that loses a race against an identical request surfaces as a conflict.
"""
import logging
import math
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sproutie.core.exceptions import ConflictError, NotFoundError, UpstreamError, ValidationError
from sproutie.core.security import Principal
from sproutie.models.favorite import FavoritePlant
from sproutie.models.saved_plant import SavedPlant
from sproutie.models.search import SearchHistory
from sproutie.schemas.plant import (
    CareReminder,
    GrowthStage,
    PageMeta,
    Photo,
    SavedPlantUpdate,
    SaveToCollectionRequest,
    TreflePlant,
)
from sproutie.services.trefle import TrefleClient, TrefleError, TrefleNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Helpers ───────────────────────────────────────────────────────────────────


def parse_flag(value: Optional[str]) -> Optional[bool]:
    """Only the literal string "true" enables a boolean filter."""
    return True if value == "true" else None


def page_meta(total: int, page: int, page_size: int) -> PageMeta:
    return PageMeta(
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if page_size else 0,
    )


async def _upstream(call: Awaitable[T], failure: str, not_found: Optional[str] = None) -> T:
    try:
        return await call
    except TrefleNotFoundError:
        if not_found:
            raise NotFoundError(not_found)
        raise UpstreamError(failure)
    except TrefleError as exc:
        logger.error("%s: %s", failure, exc)
        raise UpstreamError(failure)


async def _paginate(db: AsyncSession, query, page: int, page_size: int) -> tuple[list, int]:
    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    return list(result.scalars().all()), total


async def fetch_canonical(trefle: TrefleClient, trefle_id: int) -> TreflePlant:
    """Fetch the Trefle record for ``trefle_id`` as the source of truth for saving."""
    body = await _upstream(trefle.get_by_id(trefle_id), "Failed to get plant", not_found="Plant not found")
    data = body.get("data") if isinstance(body, dict) else None
    if not data:
        raise NotFoundError("Plant not found")
    try:
        return TreflePlant.model_validate(data)
    except PydanticValidationError:
        logger.error("Trefle plant %d is missing required fields", trefle_id)
        raise UpstreamError("Failed to get plant")


# ── Catalog ───────────────────────────────────────────────────────────────────


async def search_plants(
    db: AsyncSession,
    trefle: TrefleClient,
    query: Optional[str],
    page: Optional[int] = None,
    principal: Optional[Principal] = None,
) -> dict:
    query = (query or "").strip()
    if not query:
        raise ValidationError("Search query required")

    results = await _upstream(trefle.search(query, page), "Failed to search plants")

    if principal is not None:
        await _record_search(db, principal.uid, query, results)
    return results


async def _record_search(db: AsyncSession, firebase_uid: str, query: str, results: Any) -> None:
    # Best-effort; a failed history write never fails the search
    try:
        meta = results.get("meta") or {}
        count = meta.get("total")
        if count is None:
            count = len(results.get("data") or [])
        db.add(SearchHistory(firebase_uid=firebase_uid, query=query, results_count=count))
        await db.commit()
    except Exception:
        logger.warning("Failed to record search history for %s", firebase_uid, exc_info=True)
        await db.rollback()


async def list_plants(trefle: TrefleClient, filters: dict[str, Any], page: Optional[int] = None) -> dict:
    return await _upstream(trefle.list(filters, page), "Failed to get plants")


async def get_plant(trefle: TrefleClient, trefle_id: int) -> dict:
    return await _upstream(trefle.get_by_id(trefle_id), "Failed to get plant", not_found="Plant not found")


async def get_plant_species(trefle: TrefleClient, trefle_id: int, page: Optional[int] = None) -> dict:
    return await _upstream(trefle.get_species(trefle_id, page), "Failed to get species")


async def list_families(trefle: TrefleClient, page: Optional[int] = None) -> dict:
    return await _upstream(trefle.get_families(page), "Failed to get families")


async def list_plants_by_family(trefle: TrefleClient, slug: str, page: Optional[int] = None) -> dict:
    return await _upstream(trefle.get_by_family(slug, page), "Failed to get plants for family")


async def list_genera(trefle: TrefleClient, page: Optional[int] = None) -> dict:
    return await _upstream(trefle.get_genera(page), "Failed to get genera")


async def list_plants_by_genus(trefle: TrefleClient, slug: str, page: Optional[int] = None) -> dict:
    return await _upstream(trefle.get_by_genus(slug, page), "Failed to get plants for genus")


# ── Collection ────────────────────────────────────────────────────────────────


async def _insert_saved_plant(
    db: AsyncSession,
    firebase_uid: str,
    plant: TreflePlant,
    fields: SaveToCollectionRequest,
) -> SavedPlant:
    exists = await db.scalar(
        select(SavedPlant.id).where(
            SavedPlant.firebase_uid == firebase_uid,
            SavedPlant.trefle_id == plant.id,
            SavedPlant.is_active.is_(True),
        )
    )
    if exists is not None:
        raise ConflictError("Plant already saved")

    saved = SavedPlant(
        firebase_uid=firebase_uid,
        trefle_id=plant.id,
        slug=plant.slug,
        scientific_name=plant.scientific_name,
        common_name=plant.common_name,
        family=plant.family,
        family_common_name=plant.family_common_name,
        genus=plant.genus,
        image_url=plant.image_url,
        year=plant.year,
        author=plant.author,
        bibliography=plant.bibliography,
        status=plant.status,
        rank=plant.rank,
        synonyms=list(plant.synonyms),
        nickname=fields.nickname,
        notes=fields.notes,
        location=fields.location,
    )
    db.add(saved)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Plant already saved")
    await db.refresh(saved)
    logger.info("Saved plant %d (%s) for %s", saved.trefle_id, saved.scientific_name, firebase_uid)
    return saved


async def save_to_collection(
    db: AsyncSession,
    trefle: TrefleClient,
    firebase_uid: str,
    trefle_id: int,
    fields: SaveToCollectionRequest,
) -> SavedPlant:
    plant = await fetch_canonical(trefle, trefle_id)
    return await _insert_saved_plant(db, firebase_uid, plant, fields)


async def save_from_payload(
    db: AsyncSession,
    firebase_uid: str,
    plant: TreflePlant,
    fields: SaveToCollectionRequest,
) -> SavedPlant:
    """Save a plant the client already holds from a search result, without refetching it."""
    return await _insert_saved_plant(db, firebase_uid, plant, fields)


async def get_saved_plant(db: AsyncSession, firebase_uid: str, record_id: int) -> SavedPlant:
    result = await db.execute(
        select(SavedPlant).where(SavedPlant.id == record_id, SavedPlant.firebase_uid == firebase_uid)
    )
    saved = result.scalar_one_or_none()
    if saved is None:
        raise NotFoundError("Plant not found")
    return saved


async def remove_from_collection(db: AsyncSession, firebase_uid: str, record_id: int) -> SavedPlant:
    # Scoped by owner, so another user's record id reads as not found
    saved = await get_saved_plant(db, firebase_uid, record_id)
    await db.delete(saved)
    await db.commit()
    logger.info("Removed plant %d (%s) for %s", saved.id, saved.scientific_name, firebase_uid)
    return saved


async def list_collection(
    db: AsyncSession, firebase_uid: str, page: int = 1, page_size: int = 20
) -> tuple[list[SavedPlant], int]:
    query = (
        select(SavedPlant)
        .where(SavedPlant.firebase_uid == firebase_uid, SavedPlant.is_active.is_(True))
        .order_by(SavedPlant.created_at.desc(), SavedPlant.id.desc())
    )
    return await _paginate(db, query, page, page_size)


async def list_user_plants(db: AsyncSession, firebase_uid: str) -> list[SavedPlant]:
    result = await db.execute(
        select(SavedPlant)
        .where(SavedPlant.firebase_uid == firebase_uid, SavedPlant.is_active.is_(True))
        .order_by(SavedPlant.created_at.desc(), SavedPlant.id.desc())
    )
    return list(result.scalars().all())


async def update_saved_plant(
    db: AsyncSession, firebase_uid: str, record_id: int, data: SavedPlantUpdate
) -> SavedPlant:
    saved = await get_saved_plant(db, firebase_uid, record_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(saved, field, value)
    await db.commit()
    await db.refresh(saved)
    return saved


async def _append(db: AsyncSession, firebase_uid: str, record_id: int, column: str, entry: dict) -> SavedPlant:
    saved = await get_saved_plant(db, firebase_uid, record_id)
    setattr(saved, column, [*(getattr(saved, column) or []), entry])
    await db.commit()
    await db.refresh(saved)
    return saved


async def add_photo(db: AsyncSession, firebase_uid: str, record_id: int, photo: Photo) -> SavedPlant:
    if photo.date_taken is None:
        photo = photo.model_copy(update={"date_taken": datetime.now(timezone.utc)})
    return await _append(db, firebase_uid, record_id, "photos", photo.model_dump(mode="json", by_alias=True))


async def add_growth_stage(db: AsyncSession, firebase_uid: str, record_id: int, stage: GrowthStage) -> SavedPlant:
    return await _append(
        db, firebase_uid, record_id, "growth_stages", stage.model_dump(mode="json", by_alias=True)
    )


async def add_care_reminder(
    db: AsyncSession, firebase_uid: str, record_id: int, reminder: CareReminder
) -> SavedPlant:
    return await _append(
        db, firebase_uid, record_id, "care_reminders", reminder.model_dump(mode="json", by_alias=True)
    )


# ── Favorites ─────────────────────────────────────────────────────────────────


async def favorite_plant(
    db: AsyncSession, trefle: TrefleClient, firebase_uid: str, trefle_id: int
) -> FavoritePlant:
    plant = await fetch_canonical(trefle, trefle_id)

    existing = await db.scalar(
        select(FavoritePlant.id).where(
            FavoritePlant.firebase_uid == firebase_uid,
            FavoritePlant.trefle_id == trefle_id,
        )
    )
    if existing is not None:
        raise ConflictError("Plant already in favorites")

    favorite = FavoritePlant(
        firebase_uid=firebase_uid,
        trefle_id=plant.id,
        slug=plant.slug,
        scientific_name=plant.scientific_name,
        common_name=plant.common_name,
        family=plant.family,
        genus=plant.genus,
        image_url=plant.image_url,
    )
    db.add(favorite)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Plant already in favorites")
    await db.refresh(favorite)
    return favorite


async def unfavorite_plant(db: AsyncSession, firebase_uid: str, trefle_id: int) -> bool:
    """Remove a favorite. Returns whether anything was removed; absence is not an error."""
    result = await db.execute(
        delete(FavoritePlant).where(
            FavoritePlant.firebase_uid == firebase_uid,
            FavoritePlant.trefle_id == trefle_id,
        )
    )
    await db.commit()
    return bool(result.rowcount)


async def list_favorites(
    db: AsyncSession, firebase_uid: str, page: int = 1, page_size: int = 20
) -> tuple[list[FavoritePlant], int]:
    query = (
        select(FavoritePlant)
        .where(FavoritePlant.firebase_uid == firebase_uid)
        .order_by(FavoritePlant.date_added.desc(), FavoritePlant.id.desc())
    )
    return await _paginate(db, query, page, page_size)


# ── Search history ────────────────────────────────────────────────────────────


async def list_search_history(
    db: AsyncSession, firebase_uid: str, page: int = 1, page_size: int = 20
) -> tuple[list[SearchHistory], int]:
    query = (
        select(SearchHistory)
        .where(SearchHistory.firebase_uid == firebase_uid)
        .order_by(SearchHistory.search_date.desc(), SearchHistory.id.desc())
    )
    return await _paginate(db, query, page, page_size)
