"""
Prediction Resolution — grades weekly vote predictions and episode title picks
for one league once the commissioner declares what happened.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from fantasy_survivor.core.config import get_settings
from fantasy_survivor.models.models import Prediction, TitlePick
from fantasy_survivor.services.ledger import add_prediction_event

logger = logging.getLogger(__name__)


async def resolve_vote_predictions(
    db: AsyncSession,
    league_id: int,
    episode_id: int,
    voted_out_player_ids: list[int],
) -> int:
    """
    Score every locked prediction for the league/episode.

    A prediction earns its full allocation if it named a castaway who went
    home, otherwise 0. A team that split its budget across several castaways
    earns for each one that matched. Every earning prediction is mirrored
    into the ledger as a voted_out_prediction event so player stat pages and
    standings agree. Returns the number of predictions scored.
    """
    result = await db.execute(
        select(Prediction)
        .where(
            Prediction.league_id == league_id,
            Prediction.episode_id == episode_id,
            Prediction.locked_at.is_not(None),
        )
        .order_by(Prediction.id)
    )
    predictions = result.scalars().all()

    voted_out = set(voted_out_player_ids)
    for pred in predictions:
        earned = pred.points_allocated if pred.player_id in voted_out else 0
        pred.points_earned = earned
        if earned > 0:
            await add_prediction_event(
                db, league_id, episode_id, pred.player_id, pred.team_id, earned
            )

    await db.flush()
    return len(predictions)


def is_title_pick_correct(pick: TitlePick, speaker: int | str | None) -> bool:
    if speaker is None:
        return False
    if speaker == get_settings().host_pick_sentinel:
        return bool(pick.is_host_pick)
    return not pick.is_host_pick and pick.player_id == speaker


async def resolve_title_picks(
    db: AsyncSession,
    league_id: int,
    episode_id: int,
    speaker: int | str | None,
    points: int,
) -> int:
    """
    Grade title picks against the declared speaker. Returns picks graded.

    With no declared speaker the picks go back to ungraded, so re-scoring an
    episode without a title speaker drops any points from an earlier pass.
    """
    result = await db.execute(
        select(TitlePick)
        .where(TitlePick.league_id == league_id, TitlePick.episode_id == episode_id)
        .order_by(TitlePick.id)
    )
    picks = result.scalars().all()

    for pick in picks:
        if speaker is None:
            pick.is_correct = None
            pick.points_earned = 0
            continue
        correct = is_title_pick_correct(pick, speaker)
        pick.is_correct = correct
        pick.points_earned = points if correct else 0

    await db.flush()
    return len(picks) if speaker is not None else 0


async def clear_episode_predictions(db: AsyncSession, league_id: int, episode_id: int) -> None:
    """Zero earned points on predictions and title picks (episode reset)."""
    await db.execute(
        update(Prediction)
        .where(Prediction.league_id == league_id, Prediction.episode_id == episode_id)
        .values(points_earned=0)
    )
    await db.execute(
        update(TitlePick)
        .where(TitlePick.league_id == league_id, TitlePick.episode_id == episode_id)
        .values(points_earned=0, is_correct=None)
    )
    await db.flush()
    logger.debug("Cleared prediction results for league %s episode %s", league_id, episode_id)
