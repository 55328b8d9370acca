import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_WORKERS = "PAYMENTS_ENGINE_WORKERS"
ENV_LOG_LEVEL = "PAYMENTS_ENGINE_LOG_LEVEL"
ENV_QUEUE_SIZE = "PAYMENTS_ENGINE_QUEUE_SIZE"


@dataclass(frozen=True)
class Settings:
    num_workers: int = 1
    log_level: str = "WARNING"
    queue_size: int = 10000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables. Raises ValueError on bad values."""
        if environ is None:
            environ = os.environ

        log_level = environ.get(ENV_LOG_LEVEL, cls.log_level).strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"{ENV_LOG_LEVEL}: unknown log level {log_level!r}")

        return cls(
            num_workers=_positive_int(environ, ENV_WORKERS, cls.num_workers),
            log_level=log_level,
            queue_size=_positive_int(environ, ENV_QUEUE_SIZE, cls.queue_size),
        )


def _positive_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name}: expected an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name}: must be at least 1, got {value}")
    return value
