import pytest
from sqlalchemy import select

from fantasy_survivor.models.models import EpisodeTeamScore, ScoringEvent
from fantasy_survivor.schemas.scoring import EpisodeOutcome
from fantasy_survivor.services.errors import NotFoundError
from fantasy_survivor.services.scoring_actions import reset_episode, score_episode
from fantasy_survivor.services.scoring_engine import (
    get_standings, get_team_history, recalculate_league_scores,
)


async def _rows(db, league_id):
    result = await db.execute(
        select(EpisodeTeamScore)
        .where(EpisodeTeamScore.league_id == league_id)
        .order_by(EpisodeTeamScore.episode_id, EpisodeTeamScore.team_id)
    )
    return [
        (r.episode_id, r.team_id, r.challenge_points, r.milestone_points,
         r.prediction_points, r.other_points, r.total_points, r.cumulative_total, r.rank)
        for r in result.scalars().all()
    ]


async def test_recalculation_is_idempotent(db, season, league, predict):
    p = season.players
    ep1 = season.episodes[0]
    await predict(league.league.id, ep1.id, league.teams[1].id, {p[0].id: 10})
    await score_episode(db, league.league.id, ep1.id, EpisodeOutcome(
        tribe_reward_winners=[p[0].id, p[1].id],
        individual_immunity_winner=p[3].id,
        voted_out_players=[p[0].id],
    ))

    first = await _rows(db, league.league.id)
    await recalculate_league_scores(db, league.league.id, ep1.id)
    await recalculate_league_scores(db, league.league.id, ep1.id)
    assert await _rows(db, league.league.id) == first


async def test_cumulative_total_never_decreases(db, season, league):
    p = season.players
    await score_episode(db, league.league.id, season.episodes[0].id, EpisodeOutcome(
        tribe_immunity_winners=[p[0].id, p[1].id], voted_out_players=[p[6].id],
    ))
    await score_episode(db, league.league.id, season.episodes[1].id, EpisodeOutcome(
        individual_reward_winner=p[4].id, voted_out_players=[p[7].id],
    ))

    for team in league.teams:
        history = await get_team_history(db, league.league.id, team.id)
        totals = [h["cumulative_total"] for h in history]
        assert totals == sorted(totals)
        assert len(totals) == 2

    t1 = await get_team_history(db, league.league.id, league.teams[0].id)
    t2 = await get_team_history(db, league.league.id, league.teams[1].id)
    assert [h["cumulative_total"] for h in t1] == [2, 2]
    assert [h["cumulative_total"] for h in t2] == [0, 2]


async def test_higher_cumulative_total_ranks_first(db, season, league):
    p = season.players
    await score_episode(db, league.league.id, season.episodes[0].id, EpisodeOutcome(
        individual_immunity_winner=p[4].id,
    ))
    rows = await _rows(db, league.league.id)
    ranks = {team_id: (cumulative, rank) for _, team_id, *_, cumulative, rank in rows}
    assert ranks[league.teams[1].id] == (4, 1)
    assert ranks[league.teams[0].id] == (0, 2)


async def test_ties_are_broken_by_team_id(db, season, make_league):
    tied = await make_league(rosters=((0,), (1,), (2,)))
    await recalculate_league_scores(db, tied.league.id, season.episodes[0].id)

    rows = await _rows(db, tied.league.id)
    assert [(team_id, rank) for _, team_id, *_, rank in rows] == [
        (tied.teams[0].id, 1), (tied.teams[1].id, 2), (tied.teams[2].id, 3),
    ]


async def test_unclassified_categories_land_in_other_points(db, season, league):
    ep1 = season.episodes[0]
    db.add(ScoringEvent(
        league_id=league.league.id, episode_id=ep1.id, player_id=season.players[0].id,
        team_id=league.teams[0].id, category="custom_bonus", points=2, note="Fire-making",
    ))
    await db.flush()

    await recalculate_league_scores(db, league.league.id, ep1.id)
    row = (await _rows(db, league.league.id))[0]
    _, team_id, challenge, milestone, prediction, other, total, cumulative, _ = row
    assert team_id == league.teams[0].id
    assert (challenge, milestone, prediction, other, total, cumulative) == (0, 0, 0, 2, 2, 2)


async def test_prediction_audit_events_are_not_double_counted(db, season, league, predict):
    p = season.players
    ep1 = season.episodes[0]
    await predict(league.league.id, ep1.id, league.teams[0].id, {p[3].id: 10})
    await score_episode(db, league.league.id, ep1.id, EpisodeOutcome(voted_out_players=[p[3].id]))

    standings = await get_standings(db, league.league.id)
    assert standings[0]["team_id"] == league.teams[0].id
    assert standings[0]["prediction_points"] == 10
    assert standings[0]["total_points"] == 10


async def test_unscored_target_episode_is_included(db, season, league):
    rows = await recalculate_league_scores(db, league.league.id, season.episodes[2].id)
    assert {r.episode_id for r in rows} == {season.episodes[2].id}
    assert len(rows) == len(league.teams)


async def test_recalculate_unknown_league(db, season):
    with pytest.raises(NotFoundError):
        await recalculate_league_scores(db, 9999, season.episodes[0].id)


async def test_standings_report_rank_change(db, season, league):
    p = season.players
    await score_episode(db, league.league.id, season.episodes[0].id, EpisodeOutcome(
        individual_immunity_winner=p[0].id,
    ))
    await score_episode(db, league.league.id, season.episodes[1].id, EpisodeOutcome(
        is_merge=True, individual_immunity_winner=p[3].id, tribe_reward_winners=[p[4].id],
    ))

    standings = await get_standings(db, league.league.id)
    leader, trailer = standings
    assert leader["team_id"] == league.teams[1].id
    assert leader["episode_number"] == 2
    assert (leader["previous_rank"], leader["rank"], leader["rank_change"]) == (2, 1, 1)
    assert (trailer["previous_rank"], trailer["rank"], trailer["rank_change"]) == (1, 2, -1)

    first = await get_standings(db, league.league.id, season.episodes[0].id)
    assert first[0]["team_id"] == league.teams[0].id
    assert first[0]["rank_change"] is None


async def test_standings_for_unscored_league_are_empty(db, season, league):
    assert await get_standings(db, league.league.id) == []


async def test_reset_episode_is_not_reported_as_latest(db, season, league):
    p = season.players
    t1, t2 = league.teams
    ep1, ep2 = season.episodes[0], season.episodes[1]
    await score_episode(db, league.league.id, ep1.id, EpisodeOutcome(individual_immunity_winner=p[0].id))
    await score_episode(db, league.league.id, ep2.id, EpisodeOutcome())
    await reset_episode(db, league.league.id, ep2.id)

    await score_episode(db, league.league.id, ep1.id, EpisodeOutcome(individual_immunity_winner=p[3].id))

    latest = await get_standings(db, league.league.id)
    assert [(e["episode_id"], e["team_id"], e["cumulative_total"], e["rank"]) for e in latest] == [
        (ep1.id, t2.id, 4, 1), (ep1.id, t1.id, 0, 2),
    ]
    assert all(e["rank_change"] is None for e in latest)

    # The reset episode's rows follow the re-scored ledger
    reset_rows = await get_standings(db, league.league.id, ep2.id)
    assert [(e["team_id"], e["total_points"], e["cumulative_total"], e["rank"], e["rank_change"])
            for e in reset_rows] == [(t2.id, 0, 4, 1, 0), (t1.id, 0, 0, 2, 0)]
