"""
Commissioner scoring actions for a single league: score an episode, reset it.

Everything here is a thin sequence over the ledger, prediction resolution and
the recalculation engine. Season-wide effects (voted-out castaways, winner
season predictions) are applied once per action, outside the league work.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from fantasy_survivor.core.config import get_settings
from fantasy_survivor.models.models import Episode, League, Player
from fantasy_survivor.schemas.scoring import EpisodeOutcome
from fantasy_survivor.services.errors import ScoringValidationError
from fantasy_survivor.services.ledger import (
    build_outcome_events, delete_episode_events, get_player_team_map, replace_episode_events,
)
from fantasy_survivor.services.prediction_resolution import (
    clear_episode_predictions, resolve_title_picks, resolve_vote_predictions,
)
from fantasy_survivor.services.scoring_engine import get_episode, get_league, recalculate_league_scores
from fantasy_survivor.services.scoring_values import ScoringCategory, get_category_points
from fantasy_survivor.services.season_effects import (
    deactivate_players, get_active_player_ids, get_season_players, grade_winner_predictions,
)

logger = logging.getLogger(__name__)


@dataclass
class LeagueScoringSummary:
    league_id: int
    events_count: int = 0
    predictions_scored: int = 0
    title_picks_scored: int = 0


def validate_outcome(outcome: EpisodeOutcome) -> None:
    """Reject inconsistent outcomes before anything is written."""
    if outcome.winner_player and not outcome.is_final_three:
        raise ScoringValidationError("Must mark Final Three before declaring a winner")
    if outcome.is_final_three and not outcome.final_three_players:
        raise ScoringValidationError("Final Three players are required when marking Final Three")
    if outcome.winner_player and outcome.winner_player not in outcome.final_three_players:
        raise ScoringValidationError("The winner must be one of the Final Three")

    speaker = outcome.episode_title_speaker
    if isinstance(speaker, str) and speaker != get_settings().host_pick_sentinel:
        raise ScoringValidationError(f"Unknown episode title speaker: {speaker!r}")
    if any(votes < 0 for votes in outcome.votes_received_counts.values()):
        raise ScoringValidationError("Vote counts cannot be negative")


def outcome_player_ids(outcome: EpisodeOutcome) -> list[int]:
    """Every castaway the outcome mentions."""
    ids = set(outcome.tribe_reward_winners)
    ids.update(outcome.tribe_immunity_winners)
    ids.update(outcome.voted_out_players)
    ids.update(outcome.final_three_players)
    ids.update(outcome.found_idol_players)
    ids.update(outcome.successful_idol_play_players)
    ids.update(outcome.votes_received_counts)
    for single in (
        outcome.individual_reward_winner,
        outcome.individual_immunity_winner,
        outcome.tribe_immunity_second,
        outcome.winner_player,
    ):
        if single:
            ids.add(single)
    if isinstance(outcome.episode_title_speaker, int):
        ids.add(outcome.episode_title_speaker)
    return sorted(ids)


async def prepare_outcome(
    db: AsyncSession, season_id: int, episode: Episode, outcome: EpisodeOutcome
) -> list[int]:
    """
    Validate the outcome against the season and return the merge bonus
    recipients (castaways still in the game when this episode aired).
    """
    validate_outcome(outcome)
    await get_season_players(db, season_id, outcome_player_ids(outcome))
    if outcome.is_merge:
        return await get_active_player_ids(db, season_id, episode.episode_number)
    return []


async def apply_outcome_to_league(
    db: AsyncSession,
    league: League,
    episode: Episode,
    outcome: EpisodeOutcome,
    merge_player_ids: list[int],
) -> LeagueScoringSummary:
    """Replace the league's ledger slice, grade its predictions, recompute standings."""
    events = build_outcome_events(outcome, league.scoring_config, merge_player_ids)
    player_team_map = await get_player_team_map(db, league.id)
    await replace_episode_events(db, league.id, episode.id, events, player_team_map)

    predictions_scored = await resolve_vote_predictions(
        db, league.id, episode.id, outcome.voted_out_players
    )
    title_points = get_category_points(ScoringCategory.EPISODE_TITLE, league.scoring_config)
    title_picks_scored = await resolve_title_picks(
        db, league.id, episode.id, outcome.episode_title_speaker, title_points
    )

    await recalculate_league_scores(db, league.id, episode.id)

    return LeagueScoringSummary(
        league_id=league.id,
        events_count=len(events),
        predictions_scored=predictions_scored,
        title_picks_scored=title_picks_scored,
    )


async def apply_season_effects(
    db: AsyncSession, season_id: int, episode: Episode, outcome: EpisodeOutcome
) -> list[Player]:
    """Once per real-world episode: boot castaways, grade winner season picks."""
    deactivated = await deactivate_players(
        db, season_id, outcome.voted_out_players, episode.episode_number
    )
    if outcome.winner_player:
        await grade_winner_predictions(
            db, season_id, outcome.winner_player, get_settings().winner_prediction_points
        )
    return deactivated


def mark_episode_scored(episode: Episode, outcome: EpisodeOutcome) -> None:
    episode.is_scored = True
    episode.is_merge = outcome.is_merge
    episode.is_finale = outcome.is_final_three


def clear_episode_flags(episode: Episode) -> None:
    episode.is_scored = False
    episode.is_merge = False
    episode.is_finale = False


async def score_episode(
    db: AsyncSession, league_id: int, episode_id: int, outcome: EpisodeOutcome
) -> LeagueScoringSummary:
    """
    Score one episode for one league. Safe to repeat: the ledger slice is
    replaced and standings are recomputed from scratch every time.
    """
    league = await get_league(db, league_id)
    episode = await get_episode(db, episode_id, season_id=league.season_id)
    merge_player_ids = await prepare_outcome(db, league.season_id, episode, outcome)

    summary = await apply_outcome_to_league(db, league, episode, outcome, merge_player_ids)
    await apply_season_effects(db, league.season_id, episode, outcome)

    mark_episode_scored(episode, outcome)
    await db.flush()

    logger.info(
        "Scored episode %s for league %s: %d events, %d predictions, %d title picks",
        episode.episode_number, league_id, summary.events_count,
        summary.predictions_scored, summary.title_picks_scored,
    )
    return summary


async def reset_league_episode(db: AsyncSession, league: League, episode: Episode) -> None:
    """Drop a league's results for the episode and recompute its standings."""
    await delete_episode_events(db, league.id, episode.id)
    await clear_episode_predictions(db, league.id, episode.id)
    await recalculate_league_scores(db, league.id, episode.id)


async def reset_episode(db: AsyncSession, league_id: int, episode_id: int) -> bool:
    """
    Undo a scoring action for one league/episode.

    Standings rows for the episode are recomputed to zero rather than deleted,
    and later episodes' cumulative totals shrink with them. Voted-out
    castaways stay inactive and season prediction grades stay as they are;
    fixing those is up to the caller.
    """
    league = await get_league(db, league_id)
    episode = await get_episode(db, episode_id, season_id=league.season_id)

    clear_episode_flags(episode)
    await db.flush()
    await reset_league_episode(db, league, episode)

    logger.info("Reset episode %s for league %s", episode.episode_number, league_id)
    return True
