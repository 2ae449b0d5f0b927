from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Telegram rejects longer message texts.
MESSAGE_LIMIT = 4096

load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {value}")


def _get_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {value}")


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Invalid float for {name}: {value}")


@dataclass(slots=True)
class TelegramConfig:
    token: str
    chat_id: str
    thread_id: Optional[int] = None
    min_interval_seconds: float = 1.2
    queue_size: int = 100
    message_limit: int = MESSAGE_LIMIT
    shutdown_timeout_seconds: float = 10.0


@dataclass(slots=True)
class DatabaseConfig:
    path: Path
    override_url: Optional[str] = None

    @property
    def url(self) -> str:
        if self.override_url:
            return self.override_url
        return f"sqlite+aiosqlite:///{self.path}"


@dataclass(slots=True)
class HttpServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass(slots=True)
class ScrapeConfig:
    cron: str = "*/7 * * * *"
    page_concurrency: int = 4
    page_timeout_seconds: float = 15.0
    http_max_attempts: int = 3
    http_verify_ssl: bool = True


@dataclass(slots=True)
class LoggingConfig:
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    timezone: str = field(default_factory=lambda: os.getenv("TZ", "UTC"))


@dataclass(slots=True)
class AppConfig:
    telegram: TelegramConfig
    database: DatabaseConfig
    http: HttpServerConfig
    scrape: ScrapeConfig
    logging: LoggingConfig


def load_config() -> AppConfig:
    token = os.getenv("TELEGRAM_BOT_TOKEN")
    chat_id = os.getenv("TELEGRAM_CHAT_ID")
    if not token or not chat_id:
        raise RuntimeError("TELEGRAM_BOT_TOKEN or TELEGRAM_CHAT_ID is not set")

    database_url = os.getenv("DATABASE_URL") or None
    db_path = Path(os.getenv("DB_PATH", "/data/app.db"))
    if database_url is None:
        db_path.parent.mkdir(parents=True, exist_ok=True)

    scrape = ScrapeConfig(
        cron=os.getenv("SCRAPE_CRON", "*/7 * * * *"),
        page_concurrency=max(_get_int("PAGE_CONCURRENCY", 4), 1),
        page_timeout_seconds=_get_float("PAGE_TIMEOUT_SECONDS", 15.0),
        http_max_attempts=max(_get_int("HTTP_MAX_ATTEMPTS", 3), 1),
        http_verify_ssl=_get_bool("HTTP_VERIFY_SSL", True),
    )

    return AppConfig(
        telegram=TelegramConfig(
            token=token,
            chat_id=chat_id,
            thread_id=_get_optional_int("TELEGRAM_CHAT_THREAD_ID"),
            min_interval_seconds=_get_float("TELEGRAM_MIN_INTERVAL_SECONDS", 1.2),
            queue_size=max(_get_int("TELEGRAM_QUEUE_SIZE", 100), 1),
            message_limit=min(max(_get_int("TELEGRAM_MESSAGE_LIMIT", MESSAGE_LIMIT), 1), MESSAGE_LIMIT),
            shutdown_timeout_seconds=_get_float("TELEGRAM_SHUTDOWN_TIMEOUT_SECONDS", 10.0),
        ),
        database=DatabaseConfig(path=db_path, override_url=database_url),
        http=HttpServerConfig(
            host=os.getenv("HTTP_HOST", "0.0.0.0"),
            port=_get_int("HTTP_PORT", 3000),
        ),
        scrape=scrape,
        logging=LoggingConfig(),
    )
