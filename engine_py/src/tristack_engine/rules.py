"""
Game rule configuration and validation.
"""

from pydantic import BaseModel, Field, field_validator

from .constants import DEFAULT_TOTAL_ROUNDS, HAND_SIZE, MAX_ROOM_PLAYERS


class RuleConfig(BaseModel):
    """Configuration for game rules and settings."""

    hand_size: int = Field(
        default=HAND_SIZE,
        ge=1,
        le=5,
        description="Cards dealt to each player at the start of a round"
    )
    total_rounds: int = Field(
        default=DEFAULT_TOTAL_ROUNDS,
        ge=1,
        le=50,
        description="Rounds played in a match"
    )
    min_players: int = Field(
        default=2,
        ge=2,
        le=MAX_ROOM_PLAYERS,
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=MAX_ROOM_PLAYERS,
        ge=2,
        le=MAX_ROOM_PLAYERS,
        description="Maximum number of players allowed"
    )
    bot_call_threshold: int = Field(
        default=5,
        ge=0,
        description="Bots call SHOW when their hand is worth this much or less"
    )
    tie_penalty: int = Field(
        default=25,
        ge=0,
        description="Score for a caller sharing the lowest hand"
    )
    failed_call_penalty: int = Field(
        default=50,
        ge=0,
        description="Score for a caller without the lowest hand"
    )
    bot_delay: float = Field(
        default=1.5,
        ge=0,
        le=30,
        description="Seconds a bot waits before its action is submitted"
    )
    single_player_bots: int = Field(
        default=3,
        ge=1,
        le=MAX_ROOM_PLAYERS - 1,
        description="Bot opponents in single player mode"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't undercut the minimum."""
        min_players = info.data.get('min_players', 2)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    def validate_player_count(self, player_count: int) -> bool:
        """Check if a player count is valid for this configuration."""
        return self.min_players <= player_count <= self.max_players


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)
