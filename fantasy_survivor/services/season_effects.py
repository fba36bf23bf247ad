"""
Season-wide side effects of a real-world episode.

A castaway is voted out once, and a season question like "tribe swap?" has
one true answer, no matter how many fantasy leagues draft that season. These
functions take a season id, touch every affected row, and hand the rows back.
Call them once per scoring action, never from inside a per-league loop.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from fantasy_survivor.core.config import get_settings
from fantasy_survivor.models.models import League, Player, SeasonPrediction
from fantasy_survivor.services.errors import NotFoundError

logger = logging.getLogger(__name__)

WINNER_CATEGORY = "winner"


def default_season_prediction_points(category: str) -> int:
    settings = get_settings()
    if category == WINNER_CATEGORY:
        return settings.winner_prediction_points
    return settings.season_prediction_points


async def get_season_players(db: AsyncSession, season_id: int, player_ids: list[int]) -> list[Player]:
    """Load the given castaways, failing if any is missing from the season."""
    if not player_ids:
        return []
    result = await db.execute(
        select(Player).where(Player.season_id == season_id, Player.id.in_(player_ids))
    )
    players = result.scalars().all()
    missing = set(player_ids) - {p.id for p in players}
    if missing:
        raise NotFoundError(f"Players not found in season {season_id}: {sorted(missing)}")
    return list(players)


async def get_active_player_ids(
    db: AsyncSession, season_id: int, episode_number: int | None = None
) -> list[int]:
    """
    Castaways still in the game. With an episode number, castaways voted out
    in that episode or later also count, so re-scoring an episode after its
    boot was recorded sees the same cast as the first pass.
    """
    still_playing = Player.is_active == True
    if episode_number is not None:
        still_playing = or_(still_playing, Player.vote_out_episode >= episode_number)
    result = await db.execute(
        select(Player.id)
        .where(Player.season_id == season_id, still_playing)
        .order_by(Player.id)
    )
    return [row[0] for row in result.all()]


async def deactivate_players(
    db: AsyncSession,
    season_id: int,
    player_ids: list[int],
    episode_number: int | None = None,
) -> list[Player]:
    """Mark voted-out castaways inactive. Returns the castaways changed."""
    players = await get_season_players(db, season_id, player_ids)
    changed = []
    for player in players:
        if player.is_active:
            player.is_active = False
            player.vote_out_episode = episode_number
            changed.append(player)
    await db.flush()
    if changed:
        logger.info(
            "Season %s: voted out %s",
            season_id, ", ".join(p.name for p in changed),
        )
    return changed


async def _season_predictions_for_category(
    db: AsyncSession, season_id: int, category: str
) -> list[SeasonPrediction]:
    result = await db.execute(
        select(SeasonPrediction)
        .join(League, SeasonPrediction.league_id == League.id)
        .where(League.season_id == season_id, SeasonPrediction.category == category)
        .order_by(SeasonPrediction.id)
    )
    return list(result.scalars().all())


async def grade_season_predictions(
    db: AsyncSession,
    season_id: int,
    category: str,
    correct_answer: str,
    points: int,
) -> list[SeasonPrediction]:
    """
    Auto-grade one season question across every league in the season.

    Matching answers are marked correct and earn `points`; other answers are
    marked wrong and earn 0. Unanswered rows stay ungraded.
    """
    rows = await _season_predictions_for_category(db, season_id, category)
    graded = []
    for row in rows:
        if row.answer is None:
            continue
        row.is_correct = row.answer == correct_answer
        row.points_earned = points if row.is_correct else 0
        graded.append(row)
    await db.flush()
    logger.info(
        "Season %s: graded %d '%s' predictions against %r",
        season_id, len(graded), category, correct_answer,
    )
    return graded


async def grade_team_season_prediction(
    db: AsyncSession,
    league_id: int,
    team_id: int,
    category: str,
    is_correct: bool | None,
    points_earned: int = 0,
) -> SeasonPrediction:
    """Manual grade for one team's answer (free-text categories)."""
    result = await db.execute(
        select(SeasonPrediction).where(
            SeasonPrediction.league_id == league_id,
            SeasonPrediction.team_id == team_id,
            SeasonPrediction.category == category,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise NotFoundError(f"No '{category}' season prediction for team {team_id}")
    row.is_correct = is_correct
    row.points_earned = points_earned
    await db.flush()
    return row


async def grade_winner_predictions(
    db: AsyncSession, season_id: int, winner_player_id: int, points: int
) -> list[SeasonPrediction]:
    """Winner picks store the castaway id as their answer."""
    return await grade_season_predictions(
        db, season_id, WINNER_CATEGORY, str(winner_player_id), points
    )
