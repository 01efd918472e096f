"""Configuration management using Pydantic Settings."""

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    """Ranked-data provider call parameters."""

    rpc_function: str = "get_leaderboard_by_course_week"
    timeout_seconds: float = 10.0
    max_retries: int = 3


class LeaderboardConfig(BaseModel):
    """Leaderboard view and refresh parameters."""

    refresh_interval_seconds: float = 5.0
    default_limit: int = 1000
    default_course_id: str | None = None
    default_week: str | None = None
    viewer_email: str | None = None

    @field_validator("refresh_interval_seconds")
    @classmethod
    def check_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("refresh_interval_seconds must be positive")
        return v

    @field_validator("default_limit")
    @classmethod
    def check_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("default_limit must be at least 1")
        return v


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # Provider credentials
    supabase_url: str = ""
    supabase_key: str = ""
    logfire_token: str = ""

    # Nested configuration sections
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    leaderboard: LeaderboardConfig = Field(default_factory=LeaderboardConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m quizboard init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["provider", "leaderboard"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name] or {}

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
