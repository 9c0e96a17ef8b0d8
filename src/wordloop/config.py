"""Configuration settings for wordloop."""
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)

# Reinforcement settings
REQUIRED_STREAK = 3  # correct answers in a row before a word leaves the list
MATCHING_OPTION_COUNT = 4  # correct option plus three distractors

# Review settings
REVIEW_DUE_LIMIT = 50
LEVEL_BANDS: Dict[str, Tuple[int, int]] = {
    "easy": (1, 2),
    "medium": (3, 4),
    "hard": (5, 5),
}


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///wordloop.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class ReviewSettings:
    """Review session settings."""
    due_limit: int = int(os.getenv("REVIEW_DUE_LIMIT", str(REVIEW_DUE_LIMIT)))
    direction: str = os.getenv("REVIEW_DIRECTION", "EN->TR")
    min_level: int = int(os.getenv("MIN_LEVEL", "1"))
    max_level: int = int(os.getenv("MAX_LEVEL", "5"))
    level_bands: Dict[str, Tuple[int, int]] = field(default_factory=lambda: dict(LEVEL_BANDS))


@dataclass
class ReinforcementSettings:
    """Reinforcement drill settings."""
    required_streak: int = int(os.getenv("REQUIRED_STREAK", str(REQUIRED_STREAK)))
    matching_option_count: int = int(os.getenv("MATCHING_OPTION_COUNT", str(MATCHING_OPTION_COUNT)))


def get_metrics_port() -> Optional[int]:
    """Get the metrics port from environment variable."""
    port = os.getenv("METRICS_PORT", "")
    return int(port) if port else None


@dataclass
class MonitoringSettings:
    """Metrics exporter settings."""
    metrics_port: Optional[int] = field(default_factory=get_metrics_port)


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_review_settings() -> ReviewSettings:
    """Get review settings."""
    return ReviewSettings()


def get_reinforcement_settings() -> ReinforcementSettings:
    """Get reinforcement settings."""
    return ReinforcementSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    review: ReviewSettings = field(default_factory=get_review_settings)
    reinforcement: ReinforcementSettings = field(default_factory=get_reinforcement_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.review.due_limit < 1:
            raise ValueError("REVIEW_DUE_LIMIT must be positive")

        if self.review.direction not in ("EN->TR", "TR->EN"):
            raise ValueError("REVIEW_DIRECTION must be 'EN->TR' or 'TR->EN'")

        if self.review.min_level > self.review.max_level:
            raise ValueError("MIN_LEVEL cannot be greater than MAX_LEVEL")

        for name, (low, high) in self.review.level_bands.items():
            if low > high:
                raise ValueError(f"Level band '{name}' has min greater than max")

        if self.reinforcement.required_streak < 1:
            raise ValueError("REQUIRED_STREAK must be positive")

        if self.reinforcement.matching_option_count < 2:
            raise ValueError("MATCHING_OPTION_COUNT must be at least 2")


# Create global settings instance
settings = Settings()
settings.validate()
