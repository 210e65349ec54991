from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sproutie.core.deps import CurrentPrincipal, OptionalPrincipal, Trefle, get_db
from sproutie.core.exceptions import ForbiddenError
from sproutie.schemas.plant import (
    CareReminder,
    FavoritePlantPage,
    FavoritePlantRead,
    FavoritePlantResponse,
    GrowthStage,
    MessageResponse,
    Photo,
    SavedPlantList,
    SavedPlantPage,
    SavedPlantRead,
    SavedPlantResponse,
    SavedPlantUpdate,
    SavePayloadRequest,
    SaveToCollectionRequest,
    SearchHistoryPage,
    SearchHistoryRead,
)
from sproutie.services import collection_service as plants

router = APIRouter(prefix="/plants", tags=["plants"])

Page = Annotated[int, Query(ge=1)]
PageSize = Annotated[int, Query(ge=1, le=100, alias="pageSize")]
UpstreamPage = Annotated[Optional[int], Query(ge=1)]


# ── Trefle catalog ────────────────────────────────────────────────────────────


@router.get("/search")
async def search_plants(
    trefle: Trefle,
    principal: OptionalPrincipal,
    db: AsyncSession = Depends(get_db),
    q: Optional[str] = Query(None, description="Plant name to search for"),
    page: UpstreamPage = None,
):
    return await plants.search_plants(db, trefle, q, page, principal)


@router.get("")
async def list_plants(
    trefle: Trefle,
    common_name: Optional[str] = Query(None, alias="commonName"),
    family: Optional[str] = Query(None),
    genus: Optional[str] = Query(None),
    edible: Optional[str] = Query(None, description='"true" to only list edible plants'),
    vegetable: Optional[str] = Query(None, description='"true" to only list vegetables'),
    flower_conspicuous: Optional[str] = Query(None, alias="flowerConspicuous"),
    page: UpstreamPage = None,
):
    filters = {
        "common_name": common_name,
        "family": family,
        "genus": genus,
        "edible": plants.parse_flag(edible),
        "vegetable": plants.parse_flag(vegetable),
        "flower_conspicuous": plants.parse_flag(flower_conspicuous),
    }
    return await plants.list_plants(trefle, filters, page)


@router.get("/families")
async def list_families(trefle: Trefle, page: UpstreamPage = None):
    return await plants.list_families(trefle, page)


@router.get("/families/{slug}/plants")
async def list_plants_by_family(slug: str, trefle: Trefle, page: UpstreamPage = None):
    return await plants.list_plants_by_family(trefle, slug, page)


@router.get("/genera")
async def list_genera(trefle: Trefle, page: UpstreamPage = None):
    return await plants.list_genera(trefle, page)


@router.get("/genera/{slug}/plants")
async def list_plants_by_genus(slug: str, trefle: Trefle, page: UpstreamPage = None):
    return await plants.list_plants_by_genus(trefle, slug, page)


# ── The caller's plants ───────────────────────────────────────────────────────


@router.get("/user/collection", response_model=SavedPlantPage)
async def list_collection(
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db),
    page: Page = 1,
    page_size: PageSize = 20,
):
    items, total = await plants.list_collection(db, principal.uid, page, page_size)
    return SavedPlantPage(
        data=[SavedPlantRead.model_validate(p) for p in items],
        meta=plants.page_meta(total, page, page_size),
    )


@router.get("/user/favorites", response_model=FavoritePlantPage)
async def list_favorites(
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db),
    page: Page = 1,
    page_size: PageSize = 20,
):
    items, total = await plants.list_favorites(db, principal.uid, page, page_size)
    return FavoritePlantPage(
        data=[FavoritePlantRead.model_validate(f) for f in items],
        meta=plants.page_meta(total, page, page_size),
    )


@router.get("/user/search-history", response_model=SearchHistoryPage)
async def list_search_history(
    principal: CurrentPrincipal,
    db: AsyncSession = Depends(get_db),
    page: Page = 1,
    page_size: PageSize = 20,
):
    items, total = await plants.list_search_history(db, principal.uid, page, page_size)
    return SearchHistoryPage(
        data=[SearchHistoryRead.model_validate(s) for s in items],
        meta=plants.page_meta(total, page, page_size),
    )


@router.get("/user/{user_id}", response_model=SavedPlantList)
async def list_user_plants(user_id: str, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)):
    """Unpaginated collection, kept for older clients."""
    if user_id != principal.uid:
        raise ForbiddenError("Cannot list another user's plants")
    items = await plants.list_user_plants(db, principal.uid)
    return SavedPlantList(data=[SavedPlantRead.model_validate(p) for p in items])


@router.post("/save", response_model=SavedPlantResponse, status_code=status.HTTP_201_CREATED)
async def save_plant_payload(
    body: SavePayloadRequest, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)
):
    if body.user_id is not None and body.user_id != principal.uid:
        raise ForbiddenError("Cannot save plants for another user")
    saved = await plants.save_from_payload(db, principal.uid, body.plant_data, body)
    return SavedPlantResponse(message="Plant saved", plant=SavedPlantRead.model_validate(saved))


@router.delete("/delete/{record_id}", response_model=SavedPlantResponse)
async def remove_plant(record_id: int, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)):
    removed = await plants.remove_from_collection(db, principal.uid, record_id)
    return SavedPlantResponse(message="Plant removed successfully", plant=SavedPlantRead.model_validate(removed))


@router.patch("/collection/{record_id}", response_model=SavedPlantResponse)
async def update_saved_plant(
    record_id: int, body: SavedPlantUpdate, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)
):
    saved = await plants.update_saved_plant(db, principal.uid, record_id, body)
    return SavedPlantResponse(message="Plant updated", plant=SavedPlantRead.model_validate(saved))


@router.post(
    "/collection/{record_id}/photos", response_model=SavedPlantResponse, status_code=status.HTTP_201_CREATED
)
async def add_photo(record_id: int, body: Photo, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)):
    saved = await plants.add_photo(db, principal.uid, record_id, body)
    return SavedPlantResponse(message="Photo added", plant=SavedPlantRead.model_validate(saved))


@router.post(
    "/collection/{record_id}/growth-stages",
    response_model=SavedPlantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_growth_stage(
    record_id: int, body: GrowthStage, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)
):
    saved = await plants.add_growth_stage(db, principal.uid, record_id, body)
    return SavedPlantResponse(message="Growth stage added", plant=SavedPlantRead.model_validate(saved))


@router.post(
    "/collection/{record_id}/care-reminders",
    response_model=SavedPlantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_care_reminder(
    record_id: int, body: CareReminder, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)
):
    saved = await plants.add_care_reminder(db, principal.uid, record_id, body)
    return SavedPlantResponse(message="Care reminder added", plant=SavedPlantRead.model_validate(saved))


# ── Single Trefle plant ───────────────────────────────────────────────────────


@router.get("/{plant_id}")
async def get_plant(plant_id: int, trefle: Trefle):
    return await plants.get_plant(trefle, plant_id)


@router.get("/{plant_id}/species")
async def get_plant_species(plant_id: int, trefle: Trefle, page: UpstreamPage = None):
    return await plants.get_plant_species(trefle, plant_id, page)


@router.post("/{plant_id}/save", response_model=SavedPlantResponse)
async def save_plant(
    plant_id: int,
    principal: CurrentPrincipal,
    trefle: Trefle,
    body: Optional[SaveToCollectionRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    saved = await plants.save_to_collection(
        db, trefle, principal.uid, plant_id, body or SaveToCollectionRequest()
    )
    return SavedPlantResponse(message="Plant saved", plant=SavedPlantRead.model_validate(saved))


@router.post("/{plant_id}/favorite", response_model=FavoritePlantResponse, status_code=status.HTTP_201_CREATED)
async def favorite_plant(
    plant_id: int, principal: CurrentPrincipal, trefle: Trefle, db: AsyncSession = Depends(get_db)
):
    favorite = await plants.favorite_plant(db, trefle, principal.uid, plant_id)
    return FavoritePlantResponse(message="Plant added to favorites", favorite=FavoritePlantRead.model_validate(favorite))


@router.delete("/{plant_id}/favorite", response_model=MessageResponse)
async def unfavorite_plant(plant_id: int, principal: CurrentPrincipal, db: AsyncSession = Depends(get_db)):
    await plants.unfavorite_plant(db, principal.uid, plant_id)
    return MessageResponse(message="Plant removed from favorites")
