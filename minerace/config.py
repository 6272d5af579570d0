"""Environment-driven server settings."""
import logging
import os
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger(__name__)

TASK_QUEUE = "minesweeper-task-queue"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {name}={os.getenv(name)!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {name}={os.getenv(name)!r}, using {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    countdown_seconds: int = 5
    countdown_interval: float = 1.0
    solo_enabled: bool = True
    task_queue: str = TASK_QUEUE
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        defaults = cls()
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            host=os.getenv("HOST", defaults.host),
            port=_env_int("PORT", defaults.port),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else defaults.cors_origins,
            countdown_seconds=max(1, _env_int("COUNTDOWN_SECONDS", defaults.countdown_seconds)),
            countdown_interval=max(0.0, _env_float("COUNTDOWN_INTERVAL", defaults.countdown_interval)),
            solo_enabled=_env_bool("SOLO_ENABLED", defaults.solo_enabled),
            task_queue=os.getenv("TEMPORAL_TASK_QUEUE", defaults.task_queue),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
