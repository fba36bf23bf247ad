import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from fantasy_survivor.core.config import get_settings
from fantasy_survivor.core.database import engine, Base
from fantasy_survivor.api import scoring, standings, predictions

# Import all models so Base.metadata is populated for create_all
import fantasy_survivor.models.models  # noqa: F401

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # create_all is idempotent: existing tables are skipped
    logger.info("Starting up, creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully.")
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Fantasy Survivor league scoring: episode results, predictions, and standings.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS: open for now, lock down in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routers
app.include_router(scoring.router)
app.include_router(scoring.season_router)
app.include_router(standings.router)
app.include_router(predictions.router)
app.include_router(predictions.season_router)


@app.get("/health")
async def health():
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "score_episode": "/api/leagues/{id}/episodes/{id}/score",
            "recalculate": "/api/leagues/{id}/episodes/{id}/recalculate",
            "score_all_leagues": "/api/seasons/{id}/episodes/{id}/score",
            "standings": "/api/leagues/{id}/standings",
            "predictions": "/api/leagues/{id}/episodes/{id}/predictions/{team_id}",
            "season_predictions": "/api/leagues/{id}/season-predictions/{team_id}",
        },
    }
