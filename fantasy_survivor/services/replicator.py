"""
Cross-league replication: one real-world episode, every league in the season.

Each league is scored inside its own savepoint. If one league blows up, its
partial writes are rolled back, the failure is recorded, and the remaining
leagues still get scored. Scoring is delete-then-reinsert, so the caller can
simply re-run the action (or the single-league action) for the failed ones.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from fantasy_survivor.models.models import League
from fantasy_survivor.schemas.scoring import EpisodeOutcome
from fantasy_survivor.services.errors import NotFoundError
from fantasy_survivor.services.scoring_actions import (
    LeagueScoringSummary, apply_outcome_to_league, apply_season_effects,
    clear_episode_flags, mark_episode_scored, prepare_outcome, reset_league_episode,
)
from fantasy_survivor.services.scoring_engine import get_episode

logger = logging.getLogger(__name__)


@dataclass
class LeagueResult:
    league_id: int
    success: bool
    summary: LeagueScoringSummary | None = None
    error: str | None = None


@dataclass
class ReplicationResult:
    season_id: int
    episode_id: int
    results: list[LeagueResult] = field(default_factory=list)
    deactivated_player_ids: list[int] = field(default_factory=list)

    @property
    def failed_league_ids(self) -> list[int]:
        return [r.league_id for r in self.results if not r.success]

    @property
    def events_count(self) -> int:
        return sum(r.summary.events_count for r in self.results if r.summary)

    @property
    def success(self) -> bool:
        return not self.failed_league_ids


async def get_season_leagues(db: AsyncSession, season_id: int) -> list[League]:
    result = await db.execute(
        select(League).where(League.season_id == season_id).order_by(League.id)
    )
    leagues = list(result.scalars().all())
    if not leagues:
        raise NotFoundError(f"No leagues found for season {season_id}")
    return leagues


async def score_episode_all_leagues(
    db: AsyncSession, season_id: int, episode_id: int, outcome: EpisodeOutcome
) -> ReplicationResult:
    """
    Apply one declared outcome to every league drafting the season.

    Each league resolves point values from its own scoring_config. Castaway
    deactivation and winner season-prediction grading happen once, after the
    league loop, and the episode is flagged scored once. When every league
    fails, neither happens.
    """
    episode = await get_episode(db, episode_id, season_id=season_id)
    leagues = await get_season_leagues(db, season_id)
    # Same merge recipients for every league
    merge_player_ids = await prepare_outcome(db, season_id, episode, outcome)
    episode_number = episode.episode_number

    report = ReplicationResult(season_id=season_id, episode_id=episode_id)
    for league in leagues:
        league_id = league.id
        try:
            async with db.begin_nested():
                summary = await apply_outcome_to_league(db, league, episode, outcome, merge_player_ids)
        except Exception as e:
            logger.exception("Scoring episode %s failed for league %s", episode_number, league_id)
            report.results.append(LeagueResult(league_id=league_id, success=False, error=str(e)))
            continue
        report.results.append(LeagueResult(league_id=league_id, success=True, summary=summary))

    if not any(r.success for r in report.results):
        # Nothing was scored, so the season and the episode stay as they were
        logger.error("Episode %s failed in every league (%d)", episode_number, len(leagues))
        return report

    deactivated = await apply_season_effects(db, season_id, episode, outcome)
    report.deactivated_player_ids = [p.id for p in deactivated]

    mark_episode_scored(episode, outcome)
    await db.flush()

    if report.failed_league_ids:
        logger.warning(
            "Episode %s scored in %d/%d leagues; failed: %s",
            episode_number, len(leagues) - len(report.failed_league_ids),
            len(leagues), report.failed_league_ids,
        )
    else:
        logger.info(
            "Episode %s scored across %d leagues (%d events)",
            episode_number, len(leagues), report.events_count,
        )
    return report


async def reset_episode_all_leagues(
    db: AsyncSession, season_id: int, episode_id: int
) -> ReplicationResult:
    """Reset the episode in every league of the season, isolated per league."""
    episode = await get_episode(db, episode_id, season_id=season_id)
    leagues = await get_season_leagues(db, season_id)
    episode_number = episode.episode_number

    clear_episode_flags(episode)
    await db.flush()

    report = ReplicationResult(season_id=season_id, episode_id=episode_id)
    for league in leagues:
        league_id = league.id
        try:
            async with db.begin_nested():
                await reset_league_episode(db, league, episode)
        except Exception as e:
            logger.exception("Reset of episode %s failed for league %s", episode_number, league_id)
            report.results.append(LeagueResult(league_id=league_id, success=False, error=str(e)))
            continue
        report.results.append(LeagueResult(league_id=league_id, success=True))

    logger.info("Reset episode %s across %d leagues", episode_number, len(leagues))
    return report
