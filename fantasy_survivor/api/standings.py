from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fantasy_survivor.core.database import get_db
from fantasy_survivor.schemas.standings import (
    EpisodeScoreItem, StandingsEntry, StandingsResponse, TeamHistoryResponse,
)
from fantasy_survivor.api.deps import to_http_exception
from fantasy_survivor.services.errors import ScoringError
from fantasy_survivor.services.scoring_engine import get_standings, get_team_history

router = APIRouter(prefix="/api/leagues/{league_id}", tags=["Standings"])


@router.get("/standings", response_model=StandingsResponse)
async def standings(
    league_id: int,
    episode_id: int | None = None,
    db: AsyncSession = Depends(get_db),
):
    try:
        raw = await get_standings(db, league_id, episode_id)
    except ScoringError as e:
        raise to_http_exception(e) from e

    entries = [StandingsEntry(**e) for e in raw]
    return StandingsResponse(
        league_id=league_id,
        episode_id=entries[0].episode_id if entries else episode_id,
        episode_number=entries[0].episode_number if entries else None,
        entries=entries,
    )


@router.get("/teams/{team_id}/history", response_model=TeamHistoryResponse)
async def team_history(
    league_id: int,
    team_id: int,
    db: AsyncSession = Depends(get_db),
):
    try:
        raw = await get_team_history(db, league_id, team_id)
    except ScoringError as e:
        raise to_http_exception(e) from e
    return TeamHistoryResponse(
        league_id=league_id,
        team_id=team_id,
        episodes=[EpisodeScoreItem(**e) for e in raw],
    )
