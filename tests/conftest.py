import os
import tempfile

# A throwaway SQLite file outside the working tree unless a server is given
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    "sqlite+aiosqlite:///" + os.path.join(tempfile.mkdtemp(prefix="sproutie-tests-"), "test.db"),
)
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("TREFLE_API_TOKEN", "test-token")

import copy
from typing import Optional

import pytest
import pytest_asyncio
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import sproutie.models  # noqa: F401
from sproutie.core.deps import bearer_scheme, get_db, get_optional_principal, get_trefle_client
from sproutie.core.security import Principal
from sproutie.db.base import Base
from sproutie.main import app
from sproutie.services.trefle import TrefleError, TrefleNotFoundError

# NullPool gives every session a fresh connection, which keeps aiosqlite and
# asyncpg connections from leaking across pytest-asyncio event loops.
engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


PLANTS = {
    1: {
        "id": 1,
        "slug": "rosa-canina",
        "scientific_name": "Rosa canina",
        "common_name": "Dog rose",
        "family": "Rosaceae",
        "family_common_name": "Rose family",
        "genus": "Rosa",
        "image_url": "https://example.com/rosa-canina.jpg",
        "year": 1753,
        "author": "L.",
        "bibliography": "Sp. Pl.: 491 (1753)",
        "status": "accepted",
        "rank": "species",
        "synonyms": ["Rosa sarmentacea"],
    },
    42: {
        "id": 42,
        "slug": "solanum-lycopersicum",
        "scientific_name": "Solanum lycopersicum",
        "common_name": "Garden tomato",
        # The detail endpoint nests taxa as objects
        "family": {"id": 7, "name": "Solanaceae", "slug": "solanaceae"},
        "family_common_name": "Potato family",
        "genus": {"id": 9, "name": "Solanum", "slug": "solanum"},
        "image_url": None,
        "year": 1753,
        "author": "L.",
        "bibliography": None,
        "status": "accepted",
        "rank": "species",
        "synonyms": [{"id": 3, "name": "Lycopersicon esculentum"}],
    },
}


class FakeTrefle:
    """In-memory stand-in for TrefleClient."""

    def __init__(self):
        self.plants = copy.deepcopy(PLANTS)
        self.calls: list[tuple] = []
        self.fail = False

    def _check(self, *call):
        self.calls.append(call)
        if self.fail:
            raise TrefleError("HTTP 503 from Trefle")

    @staticmethod
    def _page(items: list) -> dict:
        return {"data": items, "links": {}, "meta": {"total": len(items)}}

    async def search(self, query, page=None):
        self._check("search", query, page)
        needle = query.lower()
        matches = [
            p for p in self.plants.values()
            if needle in p["scientific_name"].lower() or needle in (p["common_name"] or "").lower()
        ]
        return self._page(matches)

    async def list(self, filters=None, page=None):
        self._check("list", filters, page)
        return self._page(list(self.plants.values()))

    async def get_by_id(self, plant_id):
        self._check("get_by_id", plant_id)
        if plant_id not in self.plants:
            raise TrefleNotFoundError(f"Trefle record not found: /plants/{plant_id}")
        return {"data": self.plants[plant_id], "meta": {"last_modified": "2020-10-10T00:00:00Z"}}

    async def get_species(self, plant_id, page=None):
        self._check("get_species", plant_id, page)
        return self._page([{"id": plant_id * 10, "scientific_name": "Species of %d" % plant_id}])

    async def get_families(self, page=None):
        self._check("get_families", page)
        return self._page([{"id": 7, "name": "Solanaceae", "slug": "solanaceae"}])

    async def get_by_family(self, slug, page=None):
        self._check("get_by_family", slug, page)
        return self._page([self.plants[42]])

    async def get_genera(self, page=None):
        self._check("get_genera", page)
        return self._page([{"id": 9, "name": "Solanum", "slug": "solanum"}])

    async def get_by_genus(self, slug, page=None):
        self._check("get_by_genus", slug, page)
        return self._page([self.plants[42]])


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db():
    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
def trefle():
    return FakeTrefle()


@pytest_asyncio.fixture
async def client(db: AsyncSession, trefle: FakeTrefle):
    async def override_get_db():
        yield db

    # The bearer token is taken as the caller's Firebase uid
    async def override_principal(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> Optional[Principal]:
        if credentials is None:
            return None
        uid = credentials.credentials
        return Principal(uid=uid, email=f"{uid}@example.com", email_verified=True)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_trefle_client] = lambda: trefle
    app.dependency_overrides[get_optional_principal] = override_principal

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
