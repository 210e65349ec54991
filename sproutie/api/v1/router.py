from fastapi import APIRouter

from sproutie.api.v1.endpoints import plants, users

api_router = APIRouter()

api_router.include_router(users.router)
api_router.include_router(plants.router)
