"""
Scoring categories, platform default points, and the bucket each category
rolls up into.

A league only stores the values it wants to change (League.scoring_config).
Everything else falls back to DEFAULT_POINTS. Overrides may be keyed by the
category itself ("tribe_reward") or by the older constant names the first
version of the league settings page wrote ("TRIBE_REWARD_WIN").
"""

import enum


class ScoringCategory(str, enum.Enum):
    # Challenges
    TRIBE_REWARD = "tribe_reward"
    INDIVIDUAL_REWARD = "individual_reward"
    TRIBE_IMMUNITY = "tribe_immunity"
    INDIVIDUAL_IMMUNITY = "individual_immunity"
    SECOND_PLACE_IMMUNITY = "second_place_immunity"
    EPISODE_TITLE = "episode_title"
    FOUND_IDOL = "found_idol"
    SUCCESSFUL_IDOL_PLAY = "successful_idol_play"
    VOTES_RECEIVED = "votes_received"
    IDOL_PLAY = "idol_play"
    ADVANTAGE = "advantage"
    CONFESSIONAL = "confessional"
    TRIBAL_VOTE_CORRECT = "tribal_vote_correct"
    # Milestones
    MERGE = "merge"
    FINAL_THREE = "final_three"
    WINNER = "winner"
    # Audit copy of an earned vote prediction
    VOTED_OUT_PREDICTION = "voted_out_prediction"
    # Commissioner one-offs
    CUSTOM_BONUS = "custom_bonus"


class ScoreBucket(str, enum.Enum):
    CHALLENGE = "challenge"
    MILESTONE = "milestone"
    PREDICTION = "prediction"
    UNCLASSIFIED = "unclassified"


DEFAULT_POINTS: dict[str, int] = {
    ScoringCategory.TRIBE_REWARD.value: 1,
    ScoringCategory.INDIVIDUAL_REWARD.value: 2,
    ScoringCategory.TRIBE_IMMUNITY.value: 1,
    ScoringCategory.INDIVIDUAL_IMMUNITY.value: 4,
    ScoringCategory.SECOND_PLACE_IMMUNITY.value: 1,
    ScoringCategory.MERGE.value: 5,
    ScoringCategory.FINAL_THREE.value: 10,
    ScoringCategory.WINNER.value: 30,
    ScoringCategory.EPISODE_TITLE.value: 3,
    ScoringCategory.CONFESSIONAL.value: 1,
    ScoringCategory.IDOL_PLAY.value: 3,
    ScoringCategory.ADVANTAGE.value: 2,
    ScoringCategory.FOUND_IDOL.value: 2,
    ScoringCategory.SUCCESSFUL_IDOL_PLAY.value: 3,
}

# Constant names used by older league configs
LEGACY_CONFIG_KEYS: dict[str, str] = {
    ScoringCategory.TRIBE_REWARD.value: "TRIBE_REWARD_WIN",
    ScoringCategory.INDIVIDUAL_REWARD.value: "INDIVIDUAL_REWARD_WIN",
    ScoringCategory.TRIBE_IMMUNITY.value: "TRIBE_IMMUNITY_WIN",
    ScoringCategory.INDIVIDUAL_IMMUNITY.value: "INDIVIDUAL_IMMUNITY_WIN",
    ScoringCategory.SECOND_PLACE_IMMUNITY.value: "TRIBE_IMMUNITY_SECOND",
    ScoringCategory.MERGE.value: "MERGE_BONUS",
    ScoringCategory.FINAL_THREE.value: "FINAL_THREE_BONUS",
    ScoringCategory.WINNER.value: "WINNER_BONUS",
    ScoringCategory.EPISODE_TITLE.value: "EPISODE_TITLE_SPEAKER",
    ScoringCategory.CONFESSIONAL.value: "CONFESSIONAL_POINT",
    ScoringCategory.IDOL_PLAY.value: "IDOL_PLAY_POINT",
    ScoringCategory.ADVANTAGE.value: "ADVANTAGE_POINT",
}

CHALLENGE_CATEGORIES = frozenset({
    ScoringCategory.TRIBE_REWARD.value,
    ScoringCategory.INDIVIDUAL_REWARD.value,
    ScoringCategory.TRIBE_IMMUNITY.value,
    ScoringCategory.INDIVIDUAL_IMMUNITY.value,
    ScoringCategory.SECOND_PLACE_IMMUNITY.value,
    ScoringCategory.EPISODE_TITLE.value,
    ScoringCategory.FOUND_IDOL.value,
    ScoringCategory.SUCCESSFUL_IDOL_PLAY.value,
    ScoringCategory.VOTES_RECEIVED.value,
    ScoringCategory.IDOL_PLAY.value,
    ScoringCategory.ADVANTAGE.value,
    ScoringCategory.CONFESSIONAL.value,
    ScoringCategory.TRIBAL_VOTE_CORRECT.value,
})

MILESTONE_CATEGORIES = frozenset({
    ScoringCategory.MERGE.value,
    ScoringCategory.FINAL_THREE.value,
    ScoringCategory.WINNER.value,
})

PREDICTION_CATEGORIES = frozenset({
    ScoringCategory.VOTED_OUT_PREDICTION.value,
})


def _category_key(category: ScoringCategory | str) -> str:
    return category.value if isinstance(category, ScoringCategory) else category


def _override(config: dict, key: str) -> int | None:
    value = config.get(key)
    # JSON config may carry toggles like enable_idols; only numbers are points
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def get_category_points(category: ScoringCategory | str, scoring_config: dict | None) -> int:
    """
    Effective points for one category in one league.

    Precedence: league override (category key, then legacy constant name)
    -> platform default -> 0 for anything we have never heard of.
    """
    key = _category_key(category)
    config = scoring_config or {}

    value = _override(config, key)
    if value is None and key in LEGACY_CONFIG_KEYS:
        value = _override(config, LEGACY_CONFIG_KEYS[key])
    if value is None:
        value = DEFAULT_POINTS.get(key, 0)
    return value


def get_scoring_values(scoring_config: dict | None) -> dict[str, int]:
    """The full effective table for a league, keyed by category."""
    return {
        category.value: get_category_points(category, scoring_config)
        for category in ScoringCategory
    }


def classify_category(category: ScoringCategory | str) -> ScoreBucket:
    key = _category_key(category)
    if key in CHALLENGE_CATEGORIES:
        return ScoreBucket.CHALLENGE
    if key in MILESTONE_CATEGORIES:
        return ScoreBucket.MILESTONE
    if key in PREDICTION_CATEGORIES:
        return ScoreBucket.PREDICTION
    return ScoreBucket.UNCLASSIFIED
