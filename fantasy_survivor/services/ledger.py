"""
Scoring Event Ledger — the source of truth for what happened and what it was worth.

Scoring an episode never patches the ledger: the whole (league, episode)
slice is deleted and written again, so scoring the same outcome twice
leaves exactly the same rows behind.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from fantasy_survivor.models.models import DraftPick, ScoringEvent
from fantasy_survivor.schemas.scoring import EpisodeOutcome
from fantasy_survivor.services.scoring_values import ScoringCategory, get_category_points


@dataclass
class PendingEvent:
    player_id: int
    category: str
    points: int
    note: str | None = None


def build_outcome_events(
    outcome: EpisodeOutcome,
    scoring_config: dict | None,
    merge_player_ids: list[int] | None = None,
) -> list[PendingEvent]:
    """
    Turn a declared episode outcome into point awards for one league.

    Values come from the league's own config, so two leagues can score the
    same episode differently. Awards worth 0 or less are not recorded; a
    league disables a category by overriding it to 0.
    """
    events: list[PendingEvent] = []

    def add(player_id, category: ScoringCategory, points: int | None = None, note: str | None = None):
        value = points if points is not None else get_category_points(category, scoring_config)
        if player_id and value > 0:
            events.append(PendingEvent(player_id, category.value, value, note))

    # Challenges
    for pid in outcome.found_idol_players:
        add(pid, ScoringCategory.FOUND_IDOL)
    for pid in outcome.successful_idol_play_players:
        add(pid, ScoringCategory.SUCCESSFUL_IDOL_PLAY)
    for pid in outcome.tribe_reward_winners:
        add(pid, ScoringCategory.TRIBE_REWARD)
    if outcome.individual_reward_winner:
        add(outcome.individual_reward_winner, ScoringCategory.INDIVIDUAL_REWARD)
    for pid in outcome.tribe_immunity_winners:
        add(pid, ScoringCategory.TRIBE_IMMUNITY)
    if outcome.individual_immunity_winner:
        add(outcome.individual_immunity_winner, ScoringCategory.INDIVIDUAL_IMMUNITY)
    if outcome.tribe_immunity_second:
        add(outcome.tribe_immunity_second, ScoringCategory.SECOND_PLACE_IMMUNITY)
    # The host saying the title line earns nobody challenge points
    if isinstance(outcome.episode_title_speaker, int):
        add(outcome.episode_title_speaker, ScoringCategory.EPISODE_TITLE)
    for pid, votes in outcome.votes_received_counts.items():
        if votes > 0:
            add(pid, ScoringCategory.VOTES_RECEIVED, points=votes, note=f"{votes} vote(s) received")

    # Milestones
    for pid in merge_player_ids or []:
        add(pid, ScoringCategory.MERGE)
    if outcome.is_final_three:
        for pid in outcome.final_three_players:
            add(pid, ScoringCategory.FINAL_THREE)
    if outcome.winner_player:
        add(outcome.winner_player, ScoringCategory.WINNER)

    return events


async def get_player_team_map(db: AsyncSession, league_id: int) -> dict[int, int]:
    """{player_id: team_id} for every drafted castaway in a league."""
    result = await db.execute(
        select(DraftPick.player_id, DraftPick.team_id).where(DraftPick.league_id == league_id)
    )
    return {player_id: team_id for player_id, team_id in result.all()}


async def delete_episode_events(db: AsyncSession, league_id: int, episode_id: int) -> int:
    result = await db.execute(
        delete(ScoringEvent).where(
            ScoringEvent.league_id == league_id,
            ScoringEvent.episode_id == episode_id,
        )
    )
    await db.flush()
    return result.rowcount or 0


async def replace_episode_events(
    db: AsyncSession,
    league_id: int,
    episode_id: int,
    events: list[PendingEvent],
    player_team_map: dict[int, int] | None = None,
) -> list[ScoringEvent]:
    """Delete the league/episode slice of the ledger and write `events` in its place."""
    if player_team_map is None:
        player_team_map = await get_player_team_map(db, league_id)

    await delete_episode_events(db, league_id, episode_id)

    rows = [
        ScoringEvent(
            league_id=league_id,
            episode_id=episode_id,
            player_id=e.player_id,
            team_id=player_team_map.get(e.player_id),
            category=e.category,
            points=e.points,
            note=e.note,
        )
        for e in events
    ]
    db.add_all(rows)
    await db.flush()
    return rows


async def add_prediction_event(
    db: AsyncSession,
    league_id: int,
    episode_id: int,
    player_id: int,
    team_id: int,
    points: int,
) -> ScoringEvent:
    """Audit copy of an earned vote prediction, credited to the predicting team."""
    row = ScoringEvent(
        league_id=league_id,
        episode_id=episode_id,
        player_id=player_id,
        team_id=team_id,
        category=ScoringCategory.VOTED_OUT_PREDICTION.value,
        points=points,
        note="Correct vote prediction",
    )
    db.add(row)
    await db.flush()
    return row


async def list_league_events(
    db: AsyncSession,
    league_id: int,
    episode_ids: list[int] | None = None,
) -> list[ScoringEvent]:
    query = select(ScoringEvent).where(ScoringEvent.league_id == league_id)
    if episode_ids is not None:
        query = query.where(ScoringEvent.episode_id.in_(episode_ids))
    result = await db.execute(query.order_by(ScoringEvent.id))
    return list(result.scalars().all())
