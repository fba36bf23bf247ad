from pydantic import BaseModel, Field
from datetime import datetime


class PredictionAllocation(BaseModel):
    player_id: int
    points_allocated: int = Field(..., ge=0)


class VotePredictionsSubmit(BaseModel):
    allocations: list[PredictionAllocation]


class PredictionResponse(BaseModel):
    id: int
    league_id: int
    episode_id: int
    team_id: int
    player_id: int
    points_allocated: int
    points_earned: int
    locked_at: datetime | None

    model_config = {"from_attributes": True}


class TitlePickSubmit(BaseModel):
    player_id: int | None = None
    is_host_pick: bool = False


class TitlePickResponse(BaseModel):
    id: int
    league_id: int
    episode_id: int
    team_id: int
    player_id: int | None
    is_host_pick: bool
    is_correct: bool | None
    points_earned: int

    model_config = {"from_attributes": True}


class SeasonPredictionSubmit(BaseModel):
    category: str = Field(..., min_length=1, max_length=50)
    answer: str | None = None


class SeasonPredictionResponse(BaseModel):
    id: int
    league_id: int
    team_id: int
    category: str
    answer: str | None
    is_correct: bool | None
    points_earned: int

    model_config = {"from_attributes": True}


class SeasonPredictionGrade(BaseModel):
    category: str
    correct_answer: str
    points: int | None = None


class SeasonPredictionGradeResponse(BaseModel):
    season_id: int
    category: str
    graded_count: int
    correct_count: int


class SeasonPredictionManualGrade(BaseModel):
    category: str
    is_correct: bool | None
    points_earned: int = Field(0, ge=0)
