"""Conversation session configuration."""

from datetime import timedelta

from pydantic import BaseModel


class SessionConfig(BaseModel, frozen=True):
    """Session expiry settings."""

    ttl_minutes: int
    sweep_interval_seconds: int

    @property
    def ttl(self) -> timedelta:
        """Inactivity window after which a session is considered dead."""
        return timedelta(minutes=self.ttl_minutes)

    @property
    def sweep_enabled(self) -> bool:
        return self.sweep_interval_seconds > 0
