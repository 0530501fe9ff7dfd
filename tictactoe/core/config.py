"""Runtime configuration. Read from environment variables only."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Self

TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8081
    database_url: Optional[str] = None
    log_level: str = "INFO"
    log_json: bool = True
    ws_send_timeout: float = 5.0

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.database_url)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Self:
        """Malformed numbers raise ValueError, which should stop the process at startup."""
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("HOST", cls.host),
            port=int(env.get("PORT", cls.port)),
            database_url=env.get("DATABASE_URL") or None,
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
            log_json=env.get("LOG_JSON", "true").strip().lower() in TRUTHY,
            ws_send_timeout=float(env.get("WS_SEND_TIMEOUT", cls.ws_send_timeout)),
        )
