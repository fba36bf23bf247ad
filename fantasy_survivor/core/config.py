from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Fantasy Survivor League Scoring"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql://localhost:5432/survivor_fantasy"

    # Weekly vote predictions: every team spreads exactly this many points
    prediction_budget: int = 10

    # Season predictions
    season_prediction_points: int = 5
    winner_prediction_points: int = 10

    # Value sent as episode_title_speaker when the host said the title line
    host_pick_sentinel: str = "host"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
