from pydantic import BaseModel


class EpisodeScoreItem(BaseModel):
    episode_id: int
    episode_number: int
    team_id: int
    team_name: str
    challenge_points: int
    milestone_points: int
    prediction_points: int
    other_points: int = 0
    total_points: int
    cumulative_total: int
    rank: int | None


class StandingsEntry(EpisodeScoreItem):
    previous_rank: int | None = None
    rank_change: int | None = None


class StandingsResponse(BaseModel):
    league_id: int
    episode_id: int | None
    episode_number: int | None
    entries: list[StandingsEntry]


class TeamHistoryResponse(BaseModel):
    league_id: int
    team_id: int
    episodes: list[EpisodeScoreItem]
