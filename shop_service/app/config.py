import logging
import os
from dataclasses import dataclass
from typing import Optional


def _flag(value: str) -> bool:
    return value.strip() in {"1", "true", "True", "YES", "yes"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from environment variables."""
    database_url: str
    jwt_secret: str
    token_ttl_hours: int
    bcrypt_rounds: int
    seed_catalog: bool
    rabbitmq_host: Optional[str]
    events_exchange: str
    log_level: str
    port: int


def load_settings() -> Settings:
    return Settings(
        # In-memory SQLite by default: state lives only as long as the process.
        database_url=os.getenv("DATABASE_URL", "sqlite://"),
        jwt_secret=os.getenv("JWT_SECRET", "dev-secret-key-change-me-in-production-0001"),
        token_ttl_hours=int(os.getenv("TOKEN_TTL_HOURS", "24")),
        bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "10")),
        seed_catalog=_flag(os.getenv("SEED_CATALOG", "1")),
        rabbitmq_host=os.getenv("RABBITMQ_HOST") or None,
        events_exchange=os.getenv("EVENTS_EXCHANGE", "events"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT", "3000")),
    )


settings = load_settings()


def configure_logging(level: str = settings.log_level):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
