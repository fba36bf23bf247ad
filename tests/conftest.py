from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fantasy_survivor.core.database import Base, get_db
from fantasy_survivor.main import app
from fantasy_survivor.models.models import (
    DraftPick, Episode, League, Player, Prediction, Season, Team,
)

CASTAWAYS = ["Cirie", "Ozzy", "Parvati", "Sandra", "Tony", "Kim", "Rob", "Amber"]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; take it over
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def season(db):
    """Season 50 with eight castaways and four unscored episodes."""
    s = Season(season_number=50, name="Survivor 50")
    db.add(s)
    await db.flush()

    players = [Player(season_id=s.id, name=name) for name in CASTAWAYS]
    episodes = [Episode(season_id=s.id, episode_number=n, title=f"Episode {n}") for n in range(1, 5)]
    db.add_all(players + episodes)
    await db.flush()
    return SimpleNamespace(season=s, players=players, episodes=episodes)


@pytest.fixture
def make_league(db, season):
    async def _make(name="Tribal Council", scoring_config=None, rosters=((0, 1, 2), (3, 4, 5))):
        league = League(season_id=season.season.id, name=name, scoring_config=scoring_config or {})
        db.add(league)
        await db.flush()

        teams = []
        for i, roster in enumerate(rosters, 1):
            team = Team(league_id=league.id, name=f"{name} Team {i}", user_id=f"user-{i}")
            db.add(team)
            await db.flush()
            for idx in roster:
                db.add(DraftPick(league_id=league.id, team_id=team.id, player_id=season.players[idx].id))
            teams.append(team)
        await db.flush()
        return SimpleNamespace(league=league, teams=teams)

    return _make


@pytest.fixture
async def league(make_league):
    return await make_league()


@pytest.fixture
def predict(db):
    """Lock in a team's vote allocation directly, bypassing the entry rules."""
    async def _predict(league_id, episode_id, team_id, allocations: dict[int, int]):
        for player_id, points in allocations.items():
            db.add(Prediction(
                league_id=league_id,
                episode_id=episode_id,
                team_id=team_id,
                player_id=player_id,
                points_allocated=points,
                locked_at=datetime.now(timezone.utc),
            ))
        await db.flush()

    return _predict


@pytest.fixture
async def client(session_factory):
    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
