import pytest
from sqlalchemy import select

from fantasy_survivor.models.models import EpisodeTeamScore, Player, ScoringEvent, SeasonPrediction
from fantasy_survivor.schemas.scoring import EpisodeOutcome
from fantasy_survivor.services import scoring_actions
from fantasy_survivor.services.errors import NotFoundError
from fantasy_survivor.services.replicator import (
    reset_episode_all_leagues, score_episode_all_leagues,
)


async def _challenge_points(db, league_id, episode_id):
    result = await db.execute(
        select(EpisodeTeamScore.team_id, EpisodeTeamScore.challenge_points)
        .where(EpisodeTeamScore.league_id == league_id, EpisodeTeamScore.episode_id == episode_id)
        .order_by(EpisodeTeamScore.team_id)
    )
    return [points for _, points in result.all()]


async def test_each_league_uses_its_own_values(db, season, make_league):
    standard = await make_league("Standard")
    generous = await make_league("Generous", scoring_config={"tribe_reward": 3})
    p = season.players
    ep1 = season.episodes[0]

    report = await score_episode_all_leagues(db, season.season.id, ep1.id, EpisodeOutcome(
        tribe_reward_winners=[p[0].id, p[1].id],
    ))

    assert report.success
    assert [r.league_id for r in report.results] == [standard.league.id, generous.league.id]
    assert await _challenge_points(db, standard.league.id, ep1.id) == [2, 0]
    assert await _challenge_points(db, generous.league.id, ep1.id) == [6, 0]
    assert ep1.is_scored is True


async def test_one_failing_league_does_not_stop_the_rest(db, season, make_league, monkeypatch):
    first = await make_league("First")
    broken = await make_league("Broken")
    last = await make_league("Last")
    p = season.players
    ep1 = season.episodes[0]

    real_recalculate = scoring_actions.recalculate_league_scores

    async def flaky_recalculate(db, league_id, episode_id):
        if league_id == broken.league.id:
            raise RuntimeError("disk full")
        return await real_recalculate(db, league_id, episode_id)

    monkeypatch.setattr(scoring_actions, "recalculate_league_scores", flaky_recalculate)

    report = await score_episode_all_leagues(db, season.season.id, ep1.id, EpisodeOutcome(
        individual_immunity_winner=p[0].id, voted_out_players=[p[5].id],
    ))

    assert not report.success
    assert report.failed_league_ids == [broken.league.id]
    failed = [r for r in report.results if not r.success][0]
    assert failed.error == "disk full"

    assert await _challenge_points(db, first.league.id, ep1.id) == [4, 0]
    assert await _challenge_points(db, last.league.id, ep1.id) == [4, 0]
    # The broken league's partial ledger writes were rolled back
    broken_events = (await db.execute(
        select(ScoringEvent).where(ScoringEvent.league_id == broken.league.id)
    )).scalars().all()
    assert broken_events == []
    assert report.deactivated_player_ids == [p[5].id]


async def test_season_effects_happen_once(db, season, make_league):
    a = await make_league("A")
    b = await make_league("B")
    p = season.players
    db.add_all([
        SeasonPrediction(league_id=a.league.id, team_id=a.teams[0].id, category="winner", answer=str(p[1].id)),
        SeasonPrediction(league_id=b.league.id, team_id=b.teams[1].id, category="winner", answer=str(p[1].id)),
    ])
    await db.flush()

    report = await score_episode_all_leagues(db, season.season.id, season.episodes[3].id, EpisodeOutcome(
        is_final_three=True,
        final_three_players=[p[0].id, p[1].id, p[3].id],
        winner_player=p[1].id,
        voted_out_players=[p[7].id],
    ))

    assert report.deactivated_player_ids == [p[7].id]
    inactive = (await db.execute(select(Player.id).where(Player.is_active == False))).scalars().all()
    assert inactive == [p[7].id]
    graded = (await db.execute(select(SeasonPrediction))).scalars().all()
    assert all(g.is_correct and g.points_earned == 10 for g in graded)


async def test_reset_all_leagues(db, season, make_league):
    a = await make_league("A")
    b = await make_league("B")
    p = season.players
    ep1 = season.episodes[0]
    await score_episode_all_leagues(db, season.season.id, ep1.id, EpisodeOutcome(
        tribe_immunity_winners=[p[0].id, p[3].id],
    ))

    report = await reset_episode_all_leagues(db, season.season.id, ep1.id)

    assert report.success
    assert len(report.results) == 2
    assert (await db.execute(select(ScoringEvent))).scalars().all() == []
    assert await _challenge_points(db, a.league.id, ep1.id) == [0, 0]
    assert await _challenge_points(db, b.league.id, ep1.id) == [0, 0]
    assert ep1.is_scored is False


async def test_season_without_leagues(db, season):
    with pytest.raises(NotFoundError):
        await score_episode_all_leagues(db, season.season.id, season.episodes[0].id, EpisodeOutcome())


async def test_episode_stays_unscored_when_every_league_fails(db, season, make_league, monkeypatch):
    await make_league("A")
    await make_league("B")
    p = season.players
    ep1 = season.episodes[0]

    async def broken_recalculate(db, league_id, episode_id):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(scoring_actions, "recalculate_league_scores", broken_recalculate)

    report = await score_episode_all_leagues(db, season.season.id, ep1.id, EpisodeOutcome(
        voted_out_players=[p[5].id],
    ))

    assert len(report.failed_league_ids) == 2
    assert report.deactivated_player_ids == []
    assert ep1.is_scored is False
    await db.refresh(p[5])
    assert p[5].is_active is True
