"""Server configuration."""

from pydantic import BaseModel


class ServerConfig(BaseModel, frozen=True):
    """Server settings."""

    host: str
    port: int
    public_url: str | None = None

    @property
    def webhook_base_url(self) -> str | None:
        """Public base URL without a trailing slash."""
        if not self.public_url:
            return None
        return self.public_url.rstrip("/")
