"""Reconnection backoff policy."""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field

from .models import BackoffSettings

DEFAULT_RANDOMIZATION_FACTOR = 0.5


class BackoffPolicy(BaseModel):
    """Exponential backoff parameters consumed by the tunnel runtime.

    Values are taken as given, degenerate ones included. Interpreting a zero
    or negative interval is up to the retry engine.
    """

    model_config = ConfigDict(frozen=True)

    initial_interval: timedelta = Field(description="Delay before the first retry")
    multiplier: float = Field(description="Growth factor between retries")
    max_interval: timedelta = Field(description="Upper bound of a single delay")
    max_elapsed_time: timedelta = Field(description="Give up after this long")
    randomization_factor: float = Field(default=DEFAULT_RANDOMIZATION_FACTOR)


def to_policy(settings: BackoffSettings) -> BackoffPolicy:
    """Translate manifest backoff settings field by field."""
    return BackoffPolicy(
        initial_interval=settings.interval,
        multiplier=settings.multiplier,
        max_interval=settings.max_interval,
        max_elapsed_time=settings.max_time,
    )
