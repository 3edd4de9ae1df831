"""Runtime settings read from the environment (and .env, via the entry points)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Settings:
    """Service configuration.

    WEBHOOK_ALLOWED_ORIGINS: comma-separated origins allowed to post producer
        payloads. Empty means no origin check.
    LOG_LEVEL: root logging level for the API process (default INFO).
    """

    allowed_origins: frozenset[str] = field(default_factory=frozenset)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        raw_origins = os.environ.get("WEBHOOK_ALLOWED_ORIGINS", "")
        origins = frozenset(o.strip() for o in raw_origins.split(",") if o.strip())
        return cls(
            allowed_origins=origins,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

    def origin_allowed(self, origin: str | None) -> bool:
        """Requests without an Origin header (server-to-server) are always allowed."""
        if not self.allowed_origins or origin is None:
            return True
        return origin in self.allowed_origins
