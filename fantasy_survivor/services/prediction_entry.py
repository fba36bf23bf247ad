"""
What teams submit before an episode (or season) airs.

Vote predictions and title picks stay editable until the episode's deadline
passes or the episode is scored. Season predictions lock once Episode 1 has
been scored.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from fantasy_survivor.core.config import get_settings
from fantasy_survivor.models.models import (
    Episode, League, Prediction, SeasonPrediction, Team, TitlePick,
)
from fantasy_survivor.schemas.predictions import PredictionAllocation
from fantasy_survivor.services.errors import LockedError, NotFoundError, ScoringValidationError
from fantasy_survivor.services.scoring_engine import get_episode, get_league
from fantasy_survivor.services.season_effects import get_season_players


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def ensure_episode_open(episode: Episode, now: datetime | None = None) -> None:
    now = now or datetime.now(timezone.utc)
    if episode.is_scored:
        raise LockedError("Episode already scored")
    if episode.prediction_deadline and now > _as_utc(episode.prediction_deadline):
        raise LockedError("Prediction deadline has passed")


async def get_team(db: AsyncSession, league_id: int, team_id: int) -> Team:
    result = await db.execute(
        select(Team).where(Team.id == team_id, Team.league_id == league_id)
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise NotFoundError(f"Team {team_id} not found in league {league_id}")
    return team


async def _load_context(
    db: AsyncSession, league_id: int, episode_id: int, team_id: int
) -> tuple[League, Episode, Team]:
    league = await get_league(db, league_id)
    episode = await get_episode(db, episode_id, season_id=league.season_id)
    team = await get_team(db, league_id, team_id)
    return league, episode, team


async def submit_vote_predictions(
    db: AsyncSession,
    league_id: int,
    episode_id: int,
    team_id: int,
    allocations: list[PredictionAllocation],
    now: datetime | None = None,
) -> list[Prediction]:
    """
    Replace a team's vote predictions for an episode.

    The allocations must add up to exactly the prediction budget (10 by
    default). Zero allocations are dropped. The saved rows are locked
    immediately, which makes them visible to other teams and eligible for
    scoring.
    """
    league, episode, team = await _load_context(db, league_id, episode_id, team_id)

    budget = get_settings().prediction_budget
    if any(a.points_allocated < 0 for a in allocations):
        raise ScoringValidationError("Allocations cannot be negative")
    player_ids = [a.player_id for a in allocations]
    if len(set(player_ids)) != len(player_ids):
        raise ScoringValidationError("Each castaway can only appear once")
    total = sum(a.points_allocated for a in allocations)
    if total != budget:
        raise ScoringValidationError(f"Allocations must total exactly {budget} points")

    ensure_episode_open(episode, now)
    await get_season_players(db, league.season_id, player_ids)

    await db.execute(
        delete(Prediction).where(
            Prediction.league_id == league_id,
            Prediction.episode_id == episode_id,
            Prediction.team_id == team.id,
        )
    )

    locked_at = now or datetime.now(timezone.utc)
    rows = [
        Prediction(
            league_id=league_id,
            episode_id=episode_id,
            team_id=team.id,
            player_id=a.player_id,
            points_allocated=a.points_allocated,
            points_earned=0,
            locked_at=locked_at,
        )
        for a in allocations
        if a.points_allocated > 0
    ]
    db.add_all(rows)
    await db.flush()
    return rows


async def submit_title_pick(
    db: AsyncSession,
    league_id: int,
    episode_id: int,
    team_id: int,
    player_id: int | None = None,
    is_host_pick: bool = False,
    now: datetime | None = None,
) -> TitlePick:
    """Upsert a team's title pick: a castaway, or the host."""
    if is_host_pick and player_id is not None:
        raise ScoringValidationError("A title pick is either a castaway or the host, not both")

    league, episode, team = await _load_context(db, league_id, episode_id, team_id)
    ensure_episode_open(episode, now)
    if player_id is not None:
        await get_season_players(db, league.season_id, [player_id])

    result = await db.execute(
        select(TitlePick).where(
            TitlePick.league_id == league_id,
            TitlePick.episode_id == episode_id,
            TitlePick.team_id == team.id,
        )
    )
    pick = result.scalar_one_or_none()
    if pick is None:
        pick = TitlePick(league_id=league_id, episode_id=episode_id, team_id=team.id)
        db.add(pick)

    pick.player_id = player_id
    pick.is_host_pick = is_host_pick
    pick.is_correct = None
    pick.points_earned = 0
    await db.flush()
    return pick


async def season_predictions_locked(db: AsyncSession, season_id: int) -> bool:
    result = await db.execute(
        select(Episode.is_scored).where(
            Episode.season_id == season_id, Episode.episode_number == 1
        )
    )
    return bool(result.scalar_one_or_none())


async def submit_season_prediction(
    db: AsyncSession,
    league_id: int,
    team_id: int,
    category: str,
    answer: str | None,
) -> SeasonPrediction:
    """Upsert one season question answer. Locked after Episode 1 is scored."""
    if not category:
        raise ScoringValidationError("category is required")

    league = await get_league(db, league_id)
    team = await get_team(db, league_id, team_id)
    if await season_predictions_locked(db, league.season_id):
        raise LockedError("Season predictions are locked after Episode 1 airs")

    result = await db.execute(
        select(SeasonPrediction).where(
            SeasonPrediction.league_id == league_id,
            SeasonPrediction.team_id == team.id,
            SeasonPrediction.category == category,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = SeasonPrediction(league_id=league_id, team_id=team.id, category=category)
        db.add(row)

    row.answer = answer
    row.is_correct = None
    row.points_earned = 0
    await db.flush()
    return row
