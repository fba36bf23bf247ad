from pydantic import BaseModel, Field


class EpisodeOutcome(BaseModel):
    """What actually happened in one episode, as declared by the commissioner."""
    tribe_reward_winners: list[int] = []
    individual_reward_winner: int | None = None
    tribe_immunity_winners: list[int] = []
    individual_immunity_winner: int | None = None
    tribe_immunity_second: int | None = None
    # A player id, the host sentinel ("host"), or nobody
    episode_title_speaker: int | str | None = None
    voted_out_players: list[int] = []
    is_merge: bool = False
    is_final_three: bool = False
    final_three_players: list[int] = []
    winner_player: int | None = None

    # Idol / vote activity
    found_idol_players: list[int] = []
    successful_idol_play_players: list[int] = []
    votes_received_counts: dict[int, int] = Field(default_factory=dict)


class ScoreEpisodeResponse(BaseModel):
    league_id: int
    episode_id: int
    events_count: int
    predictions_scored: int
    title_picks_scored: int


class ResetEpisodeResponse(BaseModel):
    league_id: int
    episode_id: int
    success: bool = True


class LeagueScoringResult(BaseModel):
    league_id: int
    success: bool
    events_count: int = 0
    predictions_scored: int = 0
    title_picks_scored: int = 0
    error: str | None = None


class ScoreAllLeaguesResponse(BaseModel):
    season_id: int
    episode_id: int
    leagues_count: int
    events_count: int
    deactivated_player_ids: list[int] = []
    results: list[LeagueScoringResult]
    failed_league_ids: list[int] = []


class RecalculateResponse(BaseModel):
    league_id: int
    episode_id: int
    rows_written: int
