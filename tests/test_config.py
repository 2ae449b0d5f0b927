from __future__ import annotations

from pathlib import Path

import pytest

from freelance_radar.config import load_config


@pytest.fixture()
def base_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    for name in (
        "DATABASE_URL",
        "TELEGRAM_CHAT_THREAD_ID",
        "SCRAPE_CRON",
        "PAGE_CONCURRENCY",
        "PAGE_TIMEOUT_SECONDS",
        "TELEGRAM_MIN_INTERVAL_SECONDS",
        "HTTP_PORT",
        "TELEGRAM_MESSAGE_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)
    db_path = tmp_path / "data" / "app.db"
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "-100500")
    monkeypatch.setenv("DB_PATH", str(db_path))
    return db_path


def test_defaults(base_env: Path) -> None:
    config = load_config()
    assert config.telegram.chat_id == "-100500"
    assert config.telegram.thread_id is None
    assert config.telegram.min_interval_seconds == pytest.approx(1.2)
    assert config.telegram.message_limit == 4096
    assert config.scrape.cron == "*/7 * * * *"
    assert config.scrape.page_concurrency == 4
    assert config.scrape.page_timeout_seconds == pytest.approx(15.0)
    assert config.http.port == 3000
    assert config.database.url == f"sqlite+aiosqlite:///{base_env}"
    assert base_env.parent.is_dir()


def test_overrides(base_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_CHAT_THREAD_ID", "42")
    monkeypatch.setenv("SCRAPE_CRON", "0 * * * *")
    monkeypatch.setenv("PAGE_CONCURRENCY", "0")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    config = load_config()
    assert config.telegram.thread_id == 42
    assert config.scrape.cron == "0 * * * *"
    assert config.scrape.page_concurrency == 1
    assert config.database.url == "sqlite+aiosqlite:///:memory:"


def test_missing_token_is_fatal(base_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN")
    with pytest.raises(RuntimeError):
        load_config()


def test_malformed_integer_names_the_variable(base_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEGRAM_CHAT_THREAD_ID", "general")
    with pytest.raises(ValueError, match="TELEGRAM_CHAT_THREAD_ID"):
        load_config()


@pytest.mark.parametrize(("raw", "expected"), [("0", 1), ("-5", 1), ("9000", 4096), ("1000", 1000)])
def test_message_limit_is_clamped(base_env: Path, monkeypatch: pytest.MonkeyPatch, raw: str, expected: int) -> None:
    monkeypatch.setenv("TELEGRAM_MESSAGE_LIMIT", raw)
    assert load_config().telegram.message_limit == expected
