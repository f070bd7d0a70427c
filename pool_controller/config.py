"""Controller settings."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from pool_controller.exceptions import ConfigurationError


class Backoff(BaseModel):
    """Retry policy for conflicting node updates.

    Attempt ``n`` (n >= 1) waits ``duration * factor**(n-1)`` seconds plus up to
    ``jitter`` times that again.
    """

    steps: int = 5
    duration: float = 0.1
    factor: float = 1.0
    jitter: float = 1.0

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: int) -> int:
        if v < 1:
            raise ValueError("steps must be at least 1")
        return v

    @field_validator("duration", "factor", "jitter")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("backoff values cannot be negative")
        return v


class ControllerSettings(BaseModel):
    """Tunables of the reconciliation loop."""

    workers: int = 5
    # Settle delay before acting on pool and node events
    update_delay: float = 5.0
    # With 5ms doubling per failure the last retry waits about 82s
    max_retries: int = 15
    retry_cooldown: float = 60.0
    rate_limit_base_delay: float = 0.005
    rate_limit_max_delay: float = 1000.0
    node_update_backoff: Backoff = Field(default_factory=Backoff)
    event_namespace: str = "default"

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Validate at least one worker is configured."""
        if v < 1:
            raise ValueError("workers must be at least 1")
        return v

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries cannot be negative")
        return v

    @field_validator("update_delay", "retry_cooldown", "rate_limit_base_delay", "rate_limit_max_delay")
    @classmethod
    def validate_delay(cls, v: float) -> float:
        """Validate delays are not negative."""
        if v < 0:
            raise ValueError("delays cannot be negative")
        return v

    @field_validator("event_namespace")
    @classmethod
    def validate_event_namespace(cls, v: str) -> str:
        if not v:
            raise ValueError("event_namespace cannot be empty")
        return v

    def save(self, path: str | Path) -> None:
        """Save settings to YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False)

    @classmethod
    def load(cls, path: str | Path) -> "ControllerSettings":
        """Load settings from YAML file.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(
                f"Settings file not found: {path}",
                f"Expected location: {path.absolute()}",
            )
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse settings file {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {path} must contain a mapping")

        try:
            return cls(**data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ConfigurationError(f"Invalid settings in {path}", problems)
