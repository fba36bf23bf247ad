from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text,
    UniqueConstraint, Enum as SAEnum, JSON
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fantasy_survivor.core.database import Base
import enum


# --- Enums ---

class SeasonStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"         # Season airing, scoring weekly
    COMPLETED = "completed"


class DraftType(str, enum.Enum):
    SNAKE = "snake"
    AUCTION = "auction"


# --- Models ---

class Season(Base):
    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, index=True)
    season_number = Column(Integer, unique=True, nullable=False)
    name = Column(String(100), nullable=False)  # e.g. "Survivor 50"
    status = Column(SAEnum(SeasonStatus), default=SeasonStatus.UPCOMING, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    players = relationship("Player", back_populates="season", cascade="all, delete-orphan")
    episodes = relationship("Episode", back_populates="season", cascade="all, delete-orphan", order_by="Episode.episode_number")
    leagues = relationship("League", back_populates="season", cascade="all, delete-orphan")


class Player(Base):
    """A castaway. Belongs to one season and is shared by every league drafting it."""
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    name = Column(String(100), nullable=False)
    tribe = Column(String(100))
    is_active = Column(Boolean, default=True, nullable=False)  # False once voted out
    vote_out_episode = Column(Integer)  # Episode number they were voted out in
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    season = relationship("Season", back_populates="players")

    __table_args__ = (
        UniqueConstraint("season_id", "name", name="uq_player_season_name"),
    )


class Episode(Base):
    __tablename__ = "episodes"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    episode_number = Column(Integer, nullable=False)
    title = Column(String(200))
    air_date = Column(DateTime(timezone=True))
    is_merge = Column(Boolean, default=False, nullable=False)
    is_finale = Column(Boolean, default=False, nullable=False)
    is_scored = Column(Boolean, default=False, nullable=False)  # Has the commissioner entered results?
    prediction_deadline = Column(DateTime(timezone=True))

    # Relationships
    season = relationship("Season", back_populates="episodes")

    __table_args__ = (
        UniqueConstraint("season_id", "episode_number", name="uq_episode_season_number"),
    )


class League(Base):
    """
    One fantasy competition bound to a season. scoring_config is a sparse
    override map, e.g. {"tribe_reward": 2, "WINNER_BONUS": 40}. Anything not
    listed falls back to the platform defaults.
    """
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, index=True)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=False)
    name = Column(String(100), nullable=False)
    draft_type = Column(SAEnum(DraftType), default=DraftType.SNAKE, nullable=False)
    scoring_config = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    season = relationship("Season", back_populates="leagues")
    teams = relationship("Team", back_populates="league", cascade="all, delete-orphan", order_by="Team.id")


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    user_id = Column(String(100))  # Owning account, managed outside the engine
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    league = relationship("League", back_populates="teams")
    draft_picks = relationship("DraftPick", back_populates="team", cascade="all, delete-orphan")


class DraftPick(Base):
    __tablename__ = "draft_picks"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    team = relationship("Team", back_populates="draft_picks")
    player = relationship("Player")

    __table_args__ = (
        UniqueConstraint("league_id", "player_id", name="uq_draft_pick_league_player"),
    )


class ScoringEvent(Base):
    """
    The scoring ledger. Each row = one point award to one castaway in one
    league/episode. team_id is copied from the league's draft pick when the
    row is written; undrafted castaways keep team_id NULL and count for nobody.

    All rows for a (league, episode) are deleted and reinserted every time
    that episode is scored, so they are never patched in place.
    """
    __tablename__ = "scoring_events"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False, index=True)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"))
    category = Column(String(50), nullable=False)  # See services.scoring_values.ScoringCategory
    points = Column(Integer, nullable=False)
    note = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Prediction(Base):
    """Weekly vote prediction: points a team bets on one castaway going home."""
    __tablename__ = "predictions"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    points_allocated = Column(Integer, nullable=False)
    points_earned = Column(Integer, default=0, nullable=False)
    locked_at = Column(DateTime(timezone=True))  # Null = not visible, not scored
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class TitlePick(Base):
    """Which castaway (or the host) says the line the episode is named after."""
    __tablename__ = "title_picks"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"))
    is_host_pick = Column(Boolean, default=False, nullable=False)
    is_correct = Column(Boolean)  # Null until graded
    points_earned = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("league_id", "episode_id", "team_id", name="uq_title_pick"),
    )


class SeasonPrediction(Base):
    """One-time pre-season question ("tribe swap?", "winner?"). Graded season-wide."""
    __tablename__ = "season_predictions"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    category = Column(String(50), nullable=False)  # "tribe_swap", "winner", etc.
    answer = Column(String(200))
    is_correct = Column(Boolean)  # Null until graded
    points_earned = Column(Integer, default=0, nullable=False)
    locked_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("league_id", "team_id", "category", name="uq_season_prediction"),
    )


class EpisodeTeamScore(Base):
    """
    Materialized standings. Entirely derived from the ledger, predictions and
    title picks by the recalculation engine; never edited by hand.
    """
    __tablename__ = "episode_team_scores"

    id = Column(Integer, primary_key=True, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id"), nullable=False, index=True)
    episode_id = Column(Integer, ForeignKey("episodes.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False)
    challenge_points = Column(Integer, default=0, nullable=False)
    milestone_points = Column(Integer, default=0, nullable=False)
    prediction_points = Column(Integer, default=0, nullable=False)
    other_points = Column(Integer, default=0, nullable=False)  # Categories outside the three buckets
    total_points = Column(Integer, default=0, nullable=False)
    cumulative_total = Column(Integer, default=0, nullable=False)
    rank = Column(Integer)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("league_id", "episode_id", "team_id", name="uq_episode_team_score"),
    )
