import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sproutie.api.v1.router import api_router
from sproutie.core.config import settings
from sproutie.core.deps import get_db
from sproutie.core.exceptions import register_exception_handlers
from sproutie.core.logging import configure_logging
from sproutie.db.session import engine
from sproutie.services.trefle import TrefleClient

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: refuse traffic until the database answers
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.critical("Database connection failed: %s", exc)
        raise
    logger.info("Connected to database")

    app.state.trefle = TrefleClient()
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title="Sproutie API",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next) -> Response:
    start = time.monotonic()
    response = await call_next(request)
    latency_ms = int((time.monotonic() - start) * 1000)
    logger.info(
        "%s %s -> %d (%d ms)", request.method, request.url.path, response.status_code, latency_ms
    )
    return response


@app.get("/health", tags=["health"])
async def health(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except (SQLAlchemyError, OSError):
        logger.warning("Health check could not reach the database", exc_info=True)
        database = "disconnected"
    return {"message": "OK", "database": database}


@app.get("/", tags=["health"])
async def root():
    return {
        "message": "Sproutie API Server",
        "endpoints": ["/health", "/api/v1/users", "/api/v1/plants"],
    }


app.include_router(api_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("sproutie.main:app", host="0.0.0.0", port=settings.PORT)
