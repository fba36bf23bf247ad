from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fantasy_survivor.core.database import get_db
from fantasy_survivor.schemas.scoring import (
    EpisodeOutcome, LeagueScoringResult, RecalculateResponse,
    ResetEpisodeResponse, ScoreAllLeaguesResponse, ScoreEpisodeResponse,
)
from fantasy_survivor.api.deps import to_http_exception
from fantasy_survivor.services.errors import ScoringError
from fantasy_survivor.services.replicator import (
    ReplicationResult, reset_episode_all_leagues, score_episode_all_leagues,
)
from fantasy_survivor.services.scoring_actions import reset_episode, score_episode
from fantasy_survivor.services.scoring_engine import recalculate_league_scores

router = APIRouter(prefix="/api/leagues/{league_id}/episodes/{episode_id}", tags=["Scoring"])
season_router = APIRouter(prefix="/api/seasons/{season_id}/episodes/{episode_id}", tags=["Scoring"])


# ---------------------------------------------------------------------------
# Single league
# ---------------------------------------------------------------------------

@router.post("/score", response_model=ScoreEpisodeResponse)
async def score_league_episode(
    league_id: int,
    episode_id: int,
    body: EpisodeOutcome,
    db: AsyncSession = Depends(get_db),
):
    try:
        summary = await score_episode(db, league_id, episode_id, body)
    except ScoringError as e:
        raise to_http_exception(e) from e

    return ScoreEpisodeResponse(
        league_id=league_id,
        episode_id=episode_id,
        events_count=summary.events_count,
        predictions_scored=summary.predictions_scored,
        title_picks_scored=summary.title_picks_scored,
    )


@router.delete("/score", response_model=ResetEpisodeResponse)
async def reset_league_episode_score(
    league_id: int,
    episode_id: int,
    db: AsyncSession = Depends(get_db),
):
    try:
        success = await reset_episode(db, league_id, episode_id)
    except ScoringError as e:
        raise to_http_exception(e) from e
    return ResetEpisodeResponse(league_id=league_id, episode_id=episode_id, success=success)


@router.post("/recalculate", response_model=RecalculateResponse)
async def recalculate(
    league_id: int,
    episode_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Rebuild standings from the ledger without touching the ledger itself."""
    try:
        rows = await recalculate_league_scores(db, league_id, episode_id)
    except ScoringError as e:
        raise to_http_exception(e) from e
    return RecalculateResponse(league_id=league_id, episode_id=episode_id, rows_written=len(rows))


# ---------------------------------------------------------------------------
# Every league in a season
# ---------------------------------------------------------------------------

def _replication_response(report: ReplicationResult, response: Response) -> ScoreAllLeaguesResponse:
    if not report.success:
        response.status_code = 207

    results = []
    for r in report.results:
        item = LeagueScoringResult(league_id=r.league_id, success=r.success, error=r.error)
        if r.summary:
            item.events_count = r.summary.events_count
            item.predictions_scored = r.summary.predictions_scored
            item.title_picks_scored = r.summary.title_picks_scored
        results.append(item)

    return ScoreAllLeaguesResponse(
        season_id=report.season_id,
        episode_id=report.episode_id,
        leagues_count=len(report.results),
        events_count=report.events_count,
        deactivated_player_ids=report.deactivated_player_ids,
        results=results,
        failed_league_ids=report.failed_league_ids,
    )


@season_router.post("/score", response_model=ScoreAllLeaguesResponse)
async def score_all_leagues(
    season_id: int,
    episode_id: int,
    body: EpisodeOutcome,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    try:
        report = await score_episode_all_leagues(db, season_id, episode_id, body)
    except ScoringError as e:
        raise to_http_exception(e) from e
    return _replication_response(report, response)


@season_router.delete("/score", response_model=ScoreAllLeaguesResponse)
async def reset_all_leagues(
    season_id: int,
    episode_id: int,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    try:
        report = await reset_episode_all_leagues(db, season_id, episode_id)
    except ScoringError as e:
        raise to_http_exception(e) from e
    return _replication_response(report, response)
