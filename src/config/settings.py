"""Configuration and settings management using pydantic-settings."""
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings with environment variable loading."""

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_DSL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    env: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Log level")

    # Upper bounds applied by the document loader before any graph is built
    max_nodes: int = Field(default=500, description="Maximum nodes per document")
    max_edges: int = Field(default=2000, description="Maximum edges per document")

    # Mode rules
    debate_min_agents: int = Field(
        default=2,
        description="Minimum number of agent-category nodes in DEBATE mode",
    )

    # Layout geometry
    layout_node_width: float = Field(default=220.0, description="Node box width")
    layout_node_height: float = Field(default=80.0, description="Node box height")
    layout_rank_gap: float = Field(default=80.0, description="Gap between ranks")
    layout_node_gap: float = Field(default=40.0, description="Gap between nodes within a rank")

    @field_validator("max_nodes", "max_edges", "debate_min_agents")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate that limits are positive."""
        if v <= 0:
            raise ValueError("limits must be positive")
        return v

    @field_validator("layout_node_width", "layout_node_height")
    @classmethod
    def validate_node_size(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("node dimensions must be positive")
        return v

    @field_validator("layout_rank_gap", "layout_node_gap")
    @classmethod
    def validate_gap(cls, v: float) -> float:
        if v < 0:
            raise ValueError("layout gaps must not be negative")
        return v


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for testing)."""
    global _settings
    _settings = None
