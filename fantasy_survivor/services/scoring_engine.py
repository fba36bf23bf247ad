"""
Scoring Engine — The brain of the league standings.

Rebuilds every EpisodeTeamScore row of a league from the scoring ledger,
vote predictions and title picks. Nothing is ever incremented: each run
recomputes every scored episode from episode 1 forward, so running it twice
gives the same rows, and zeroing one episode automatically shrinks the
cumulative totals of every episode after it.
"""

import logging
from collections import defaultdict

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_

from fantasy_survivor.models.models import (
    Episode, EpisodeTeamScore, League, Prediction, Team, TitlePick,
)
from fantasy_survivor.services.errors import NotFoundError
from fantasy_survivor.services.ledger import list_league_events
from fantasy_survivor.services.scoring_values import ScoreBucket, classify_category

logger = logging.getLogger(__name__)


async def get_league(db: AsyncSession, league_id: int) -> League:
    result = await db.execute(select(League).where(League.id == league_id))
    league = result.scalar_one_or_none()
    if league is None:
        raise NotFoundError(f"League {league_id} not found")
    return league


async def get_episode(db: AsyncSession, episode_id: int, season_id: int | None = None) -> Episode:
    query = select(Episode).where(Episode.id == episode_id)
    if season_id is not None:
        query = query.where(Episode.season_id == season_id)
    result = await db.execute(query)
    episode = result.scalar_one_or_none()
    if episode is None:
        raise NotFoundError(f"Episode {episode_id} not found")
    return episode


async def get_league_teams(db: AsyncSession, league_id: int) -> list[Team]:
    result = await db.execute(
        select(Team).where(Team.league_id == league_id).order_by(Team.id)
    )
    return list(result.scalars().all())


async def get_recalc_episodes(
    db: AsyncSession, season_id: int, target: Episode, league_id: int | None = None
) -> list[Episode]:
    """
    Scored episodes of the season in airing order, plus the target episode.

    The target is included even when it is not flagged scored yet, because
    the scoring action only sets is_scored after the recompute finishes.
    Episodes that already have standings rows for the league (a reset
    episode, say) are carried along so their rows never go stale.
    """
    in_play = Episode.is_scored == True
    if league_id is not None:
        has_rows = select(EpisodeTeamScore.episode_id).where(EpisodeTeamScore.league_id == league_id)
        in_play = or_(in_play, Episode.id.in_(has_rows))
    result = await db.execute(
        select(Episode)
        .where(Episode.season_id == season_id, in_play)
        .order_by(Episode.episode_number)
    )
    episodes = list(result.scalars().all())
    if target.id not in {e.id for e in episodes}:
        episodes.append(target)
        episodes.sort(key=lambda e: e.episode_number)
    return episodes


async def _sum_earned(db: AsyncSession, model, league_id: int, episode_ids: list[int]) -> dict:
    result = await db.execute(
        select(model.episode_id, model.team_id, model.points_earned).where(
            model.league_id == league_id,
            model.episode_id.in_(episode_ids),
        )
    )
    totals = defaultdict(int)
    for episode_id, team_id, earned in result.all():
        totals[(episode_id, team_id)] += earned or 0
    return totals


async def recalculate_league_scores(
    db: AsyncSession, league_id: int, episode_id: int
) -> list[EpisodeTeamScore]:
    """
    Recompute every EpisodeTeamScore row for a league.

    For each team, walking episodes in order with a running total:
      challenge / milestone / other = ledger points owned by the team, by bucket
      prediction = vote predictions earned + title pick earned
      total = sum of the four, cumulative += total
    then upsert the (league, episode, team) row and rank every episode.

    Prediction-bucket ledger rows are audit copies of Prediction.points_earned
    and are not summed a second time.
    """
    league = await get_league(db, league_id)
    target = await get_episode(db, episode_id, season_id=league.season_id)

    teams = await get_league_teams(db, league_id)
    if not teams:
        return []

    episodes = await get_recalc_episodes(db, league.season_id, target, league_id)
    episode_ids = [e.id for e in episodes]

    buckets = {
        ScoreBucket.CHALLENGE: defaultdict(int),
        ScoreBucket.MILESTONE: defaultdict(int),
        ScoreBucket.PREDICTION: defaultdict(int),
        ScoreBucket.UNCLASSIFIED: defaultdict(int),
    }
    for event in await list_league_events(db, league_id, episode_ids):
        if event.team_id is None:
            continue  # Undrafted castaway, stats only
        key = (event.episode_id, event.team_id)
        buckets[classify_category(event.category)][key] += event.points

    vote_points = await _sum_earned(db, Prediction, league_id, episode_ids)
    title_points = await _sum_earned(db, TitlePick, league_id, episode_ids)

    existing_result = await db.execute(
        select(EpisodeTeamScore).where(
            EpisodeTeamScore.league_id == league_id,
            EpisodeTeamScore.episode_id.in_(episode_ids),
        )
    )
    existing = {(r.episode_id, r.team_id): r for r in existing_result.scalars().all()}

    rows = []
    for team in teams:
        cumulative = 0
        for episode in episodes:
            key = (episode.id, team.id)
            challenge = buckets[ScoreBucket.CHALLENGE][key]
            milestone = buckets[ScoreBucket.MILESTONE][key]
            other = buckets[ScoreBucket.UNCLASSIFIED][key]
            prediction = vote_points[key] + title_points[key]
            total = challenge + milestone + prediction + other
            cumulative += total

            if vote_points[key] != buckets[ScoreBucket.PREDICTION][key]:
                logger.warning(
                    "League %s episode %s team %s: predictions earned %s but ledger has %s",
                    league_id, episode.episode_number, team.id,
                    vote_points[key], buckets[ScoreBucket.PREDICTION][key],
                )

            row = existing.get(key)
            if row is None:
                row = EpisodeTeamScore(league_id=league_id, episode_id=episode.id, team_id=team.id)
                db.add(row)
            row.challenge_points = challenge
            row.milestone_points = milestone
            row.prediction_points = prediction
            row.other_points = other
            row.total_points = total
            row.cumulative_total = cumulative
            await db.flush()
            rows.append(row)

    await assign_ranks(db, league_id, episode_ids)
    logger.info(
        "Recalculated league %s through episode %s: %d teams x %d episodes",
        league_id, target.episode_number, len(teams), len(episodes),
    )
    return rows


async def assign_ranks(db: AsyncSession, league_id: int, episode_ids: list[int]) -> None:
    """
    Rank each episode's rows by cumulative total, highest first.

    Ties get distinct adjacent ranks, broken by team id (i.e. team creation
    order) so the result never depends on fetch order.
    """
    for episode_id in episode_ids:
        result = await db.execute(
            select(EpisodeTeamScore)
            .where(
                EpisodeTeamScore.league_id == league_id,
                EpisodeTeamScore.episode_id == episode_id,
            )
            .order_by(EpisodeTeamScore.cumulative_total.desc(), EpisodeTeamScore.team_id)
        )
        for i, row in enumerate(result.scalars().all(), 1):
            row.rank = i
    await db.flush()


def _score_dict(row: EpisodeTeamScore, episode: Episode, team: Team) -> dict:
    return {
        "episode_id": episode.id,
        "episode_number": episode.episode_number,
        "team_id": team.id,
        "team_name": team.name,
        "challenge_points": row.challenge_points,
        "milestone_points": row.milestone_points,
        "prediction_points": row.prediction_points,
        "other_points": row.other_points,
        "total_points": row.total_points,
        "cumulative_total": row.cumulative_total,
        "rank": row.rank,
    }


async def _league_episodes_with_rows(db: AsyncSession, league_id: int) -> list[Episode]:
    """Episodes that have standings rows for this league, in airing order."""
    result = await db.execute(
        select(Episode)
        .join(EpisodeTeamScore, EpisodeTeamScore.episode_id == Episode.id)
        .where(EpisodeTeamScore.league_id == league_id)
        .distinct()
        .order_by(Episode.episode_number)
    )
    return list(result.scalars().all())


async def get_standings(db: AsyncSession, league_id: int, episode_id: int | None = None) -> list[dict]:
    """
    Leaderboard for one episode (default: the latest scored episode), sorted
    by rank. rank_change is positive when a team climbed since the previous
    scored episode, None when there is nothing to compare against.

    An explicit episode_id may name any episode with standings rows, including
    one that has been reset.
    """
    await get_league(db, league_id)
    episodes = await _league_episodes_with_rows(db, league_id)
    scored = [e for e in episodes if e.is_scored]

    if episode_id is None:
        if not scored:
            return []
        current = scored[-1]
    else:
        matches = [e for e in episodes if e.id == episode_id]
        if not matches:
            raise NotFoundError(f"No standings for episode {episode_id} in league {league_id}")
        current = matches[0]

    previous = None
    for e in scored:
        if e.episode_number < current.episode_number:
            previous = e

    result = await db.execute(
        select(EpisodeTeamScore, Team)
        .join(Team, EpisodeTeamScore.team_id == Team.id)
        .where(
            EpisodeTeamScore.league_id == league_id,
            EpisodeTeamScore.episode_id == current.id,
        )
    )
    pairs = result.all()

    previous_ranks = {}
    if previous is not None:
        prev_result = await db.execute(
            select(EpisodeTeamScore.team_id, EpisodeTeamScore.rank).where(
                EpisodeTeamScore.league_id == league_id,
                EpisodeTeamScore.episode_id == previous.id,
            )
        )
        previous_ranks = dict(prev_result.all())

    standings = []
    for row, team in pairs:
        entry = _score_dict(row, current, team)
        prev_rank = previous_ranks.get(team.id)
        entry["previous_rank"] = prev_rank
        entry["rank_change"] = (
            prev_rank - row.rank if prev_rank is not None and row.rank is not None else None
        )
        standings.append(entry)

    standings.sort(key=lambda x: (x["rank"] is None, x["rank"] or 0, x["team_id"]))
    return standings


async def get_team_history(db: AsyncSession, league_id: int, team_id: int) -> list[dict]:
    """A team's standings rows across the season, in episode order."""
    result = await db.execute(
        select(EpisodeTeamScore, Episode, Team)
        .join(Episode, EpisodeTeamScore.episode_id == Episode.id)
        .join(Team, EpisodeTeamScore.team_id == Team.id)
        .where(
            EpisodeTeamScore.league_id == league_id,
            EpisodeTeamScore.team_id == team_id,
        )
        .order_by(Episode.episode_number)
    )
    rows = result.all()
    if not rows:
        team_result = await db.execute(
            select(Team).where(Team.id == team_id, Team.league_id == league_id)
        )
        if team_result.scalar_one_or_none() is None:
            raise NotFoundError(f"Team {team_id} not found in league {league_id}")
    return [_score_dict(score, episode, team) for score, episode, team in rows]
