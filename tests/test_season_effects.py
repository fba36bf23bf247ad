import pytest
from sqlalchemy import select

from fantasy_survivor.models.models import SeasonPrediction
from fantasy_survivor.services.errors import NotFoundError
from fantasy_survivor.services.season_effects import (
    deactivate_players, default_season_prediction_points, get_active_player_ids,
    grade_season_predictions, grade_team_season_prediction,
)


async def test_deactivate_players_only_reports_changes(db, season):
    p = season.players
    changed = await deactivate_players(db, season.season.id, [p[0].id], episode_number=3)
    assert [c.id for c in changed] == [p[0].id]
    assert p[0].vote_out_episode == 3

    again = await deactivate_players(db, season.season.id, [p[0].id, p[1].id], episode_number=4)
    assert [c.id for c in again] == [p[1].id]
    assert p[0].vote_out_episode == 3

    active = await get_active_player_ids(db, season.season.id)
    assert p[0].id not in active and p[1].id not in active
    assert len(active) == 6


async def test_deactivate_unknown_player(db, season):
    with pytest.raises(NotFoundError):
        await deactivate_players(db, season.season.id, [9999])


async def test_grade_season_predictions_across_leagues(db, season, make_league):
    a = await make_league("A")
    b = await make_league("B")
    db.add_all([
        SeasonPrediction(league_id=a.league.id, team_id=a.teams[0].id, category="tribe_swap", answer="yes"),
        SeasonPrediction(league_id=a.league.id, team_id=a.teams[1].id, category="tribe_swap", answer="no"),
        SeasonPrediction(league_id=b.league.id, team_id=b.teams[0].id, category="tribe_swap", answer="yes"),
        SeasonPrediction(league_id=b.league.id, team_id=b.teams[1].id, category="tribe_swap", answer=None),
        SeasonPrediction(league_id=b.league.id, team_id=b.teams[1].id, category="rice", answer="yes"),
    ])
    await db.flush()

    graded = await grade_season_predictions(db, season.season.id, "tribe_swap", "yes", 5)

    assert len(graded) == 3
    rows = (await db.execute(select(SeasonPrediction).order_by(SeasonPrediction.id))).scalars().all()
    assert [(r.is_correct, r.points_earned) for r in rows] == [
        (True, 5), (False, 0), (True, 5), (None, 0), (None, 0),
    ]


async def test_manual_grade(db, season, league):
    team = league.teams[0]
    db.add(SeasonPrediction(league_id=league.league.id, team_id=team.id, category="immunity_necklace", answer="Ozzy"))
    await db.flush()

    row = await grade_team_season_prediction(db, league.league.id, team.id, "immunity_necklace", True, 5)
    assert (row.is_correct, row.points_earned) == (True, 5)

    with pytest.raises(NotFoundError):
        await grade_team_season_prediction(db, league.league.id, team.id, "rice", True, 5)


def test_default_season_prediction_points():
    assert default_season_prediction_points("winner") == 10
    assert default_season_prediction_points("tribe_swap") == 5


async def test_active_players_as_of_an_episode(db, season):
    p = season.players
    await deactivate_players(db, season.season.id, [p[0].id], episode_number=1)
    await deactivate_players(db, season.season.id, [p[1].id], episode_number=3)

    as_of_three = await get_active_player_ids(db, season.season.id, episode_number=3)
    assert p[0].id not in as_of_three
    assert p[1].id in as_of_three
    assert len(await get_active_player_ids(db, season.season.id)) == 6
