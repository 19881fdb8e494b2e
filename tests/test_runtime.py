from collections import deque
from typing import List, Tuple

import pytest

from src.app import runtime
from src.app.settings import AppSettings
from src.db import run_migrations_if_needed
from src.review import ReviewItemService


def test_run_migrations_if_needed_invokes_upgrade(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: List[Tuple[object, str]] = []

    def fake_upgrade(config: object, target: str) -> None:
        calls.append((config, target))

    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "true")
    monkeypatch.setattr("src.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert calls and calls[0][1] == "head"


def test_run_migrations_if_needed_skips_when_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("RUN_MIGRATIONS_ON_STARTUP", "false")

    calls: deque[str] = deque()

    def fake_upgrade(_: object, target: str) -> None:
        calls.append(target)

    monkeypatch.setattr("src.db.command.upgrade", fake_upgrade)

    run_migrations_if_needed()

    assert not calls


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_NAME", "APP_ENV", "LOG_LEVEL", "REVIEW_MAX_ATTEMPTS", "DUE_CACHE_TTL_SECONDS", "DUE_CACHE_MAX_ENTRIES"):
        monkeypatch.delenv(name, raising=False)

    settings = AppSettings.from_env()

    assert settings.app_name == "Study Review Scheduler"
    assert settings.app_env == "development"
    assert settings.log_level == "INFO"
    assert settings.review_max_attempts == 3
    assert settings.due_cache_enabled is False


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("REVIEW_MAX_ATTEMPTS", "0"),
        ("REVIEW_MAX_ATTEMPTS", "many"),
        ("DUE_CACHE_TTL_SECONDS", "-5"),
        ("DUE_CACHE_MAX_ENTRIES", "0"),
    ],
)
def test_settings_reject_invalid_numbers(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match=name):
        AppSettings.from_env()


def test_build_review_service_wires_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DUE_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("REVIEW_MAX_ATTEMPTS", "5")
    monkeypatch.setattr(runtime, "run_migrations_if_needed", lambda: None)
    monkeypatch.setattr(runtime, "get_session_factory", lambda: object())

    service = runtime.build_review_service(AppSettings.from_env())

    assert isinstance(service, ReviewItemService)
    assert service._due_cache is not None
    assert service._max_review_attempts == 5


def test_build_review_service_aborts_when_migrations_fail(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_migrations() -> None:
        raise RuntimeError("DATABASE_URL environment variable is required to connect to the database.")

    monkeypatch.setattr(runtime, "run_migrations_if_needed", failing_migrations)

    with pytest.raises(RuntimeError):
        runtime.build_review_service(AppSettings.from_env())
