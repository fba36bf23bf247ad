from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from fantasy_survivor.core.database import get_db
from fantasy_survivor.models.models import Season
from fantasy_survivor.schemas.predictions import (
    PredictionResponse, SeasonPredictionGrade, SeasonPredictionGradeResponse,
    SeasonPredictionManualGrade, SeasonPredictionResponse, SeasonPredictionSubmit,
    TitlePickResponse, TitlePickSubmit, VotePredictionsSubmit,
)
from fantasy_survivor.api.deps import to_http_exception
from fantasy_survivor.services.errors import ScoringError
from fantasy_survivor.services.prediction_entry import (
    submit_season_prediction, submit_title_pick, submit_vote_predictions,
)
from fantasy_survivor.services.season_effects import (
    default_season_prediction_points, grade_season_predictions, grade_team_season_prediction,
)

router = APIRouter(prefix="/api/leagues/{league_id}", tags=["Predictions"])
season_router = APIRouter(prefix="/api/seasons/{season_id}", tags=["Predictions"])


async def _get_season_or_404(db: AsyncSession, season_id: int) -> Season:
    result = await db.execute(select(Season).where(Season.id == season_id))
    season = result.scalar_one_or_none()
    if not season:
        raise HTTPException(status_code=404, detail="Season not found")
    return season


@router.put(
    "/episodes/{episode_id}/predictions/{team_id}",
    response_model=list[PredictionResponse],
)
async def put_vote_predictions(
    league_id: int,
    episode_id: int,
    team_id: int,
    body: VotePredictionsSubmit,
    db: AsyncSession = Depends(get_db),
):
    try:
        rows = await submit_vote_predictions(db, league_id, episode_id, team_id, body.allocations)
    except ScoringError as e:
        raise to_http_exception(e) from e
    return [PredictionResponse.model_validate(r) for r in rows]


@router.put("/episodes/{episode_id}/title-picks/{team_id}", response_model=TitlePickResponse)
async def put_title_pick(
    league_id: int,
    episode_id: int,
    team_id: int,
    body: TitlePickSubmit,
    db: AsyncSession = Depends(get_db),
):
    try:
        pick = await submit_title_pick(
            db, league_id, episode_id, team_id,
            player_id=body.player_id, is_host_pick=body.is_host_pick,
        )
    except ScoringError as e:
        raise to_http_exception(e) from e
    return TitlePickResponse.model_validate(pick)


@router.put("/season-predictions/{team_id}", response_model=SeasonPredictionResponse)
async def put_season_prediction(
    league_id: int,
    team_id: int,
    body: SeasonPredictionSubmit,
    db: AsyncSession = Depends(get_db),
):
    try:
        row = await submit_season_prediction(db, league_id, team_id, body.category, body.answer)
    except ScoringError as e:
        raise to_http_exception(e) from e
    return SeasonPredictionResponse.model_validate(row)


@router.put("/season-predictions/{team_id}/grade", response_model=SeasonPredictionResponse)
async def grade_team_answer(
    league_id: int,
    team_id: int,
    body: SeasonPredictionManualGrade,
    db: AsyncSession = Depends(get_db),
):
    """Commissioner grades one free-text answer by hand."""
    try:
        row = await grade_team_season_prediction(
            db, league_id, team_id, body.category, body.is_correct, body.points_earned
        )
    except ScoringError as e:
        raise to_http_exception(e) from e
    return SeasonPredictionResponse.model_validate(row)


@season_router.post("/season-predictions/grade", response_model=SeasonPredictionGradeResponse)
async def grade_season_question(
    season_id: int,
    body: SeasonPredictionGrade,
    db: AsyncSession = Depends(get_db),
):
    """Commissioner declares the true answer; every league in the season is graded."""
    await _get_season_or_404(db, season_id)
    points = body.points if body.points is not None else default_season_prediction_points(body.category)
    graded = await grade_season_predictions(db, season_id, body.category, body.correct_answer, points)
    return SeasonPredictionGradeResponse(
        season_id=season_id,
        category=body.category,
        graded_count=len(graded),
        correct_count=sum(1 for r in graded if r.is_correct),
    )
