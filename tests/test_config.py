import json
import logging

from lending.core.config import AppSettings, get_settings, reset_settings_cache
from lending.core.logging import JsonLogFormatter
from lending.middlewares import request_id_ctx_var


def test_database_url_defaults_to_sqlite_under_data_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DB_URL", raising=False)
    settings = AppSettings(DATA_DIR=tmp_path)
    assert settings.database_url == f"sqlite:///{tmp_path / 'lending.db'}"


def test_database_url_env_alias(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://lend:pw@db/lending")
    settings = AppSettings()
    assert settings.database_url == "postgresql+psycopg://lend:pw@db/lending"


def test_allowed_origins_parses_comma_list(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
    settings = AppSettings()
    assert settings.ALLOWED_ORIGINS == ["https://a.example", "https://b.example"]


def test_reconcile_flag_from_env(monkeypatch):
    monkeypatch.setenv("RECONCILE_ON_CLEAR_HISTORY", "true")
    assert AppSettings().RECONCILE_ON_CLEAR_HISTORY is True


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    reset_settings_cache()
    try:
        assert get_settings() is get_settings()
    finally:
        reset_settings_cache()


def test_json_formatter_includes_request_id_and_extra():
    record = logging.LogRecord("lending.test", logging.INFO, __file__, 1, "borrow.created", None, None)
    record.extra_data = {"record_id": 7}
    token = request_id_ctx_var.set("req-1")
    try:
        payload = json.loads(JsonLogFormatter().format(record))
    finally:
        request_id_ctx_var.reset(token)

    assert payload["message"] == "borrow.created"
    assert payload["level"] == "INFO"
    assert payload["request_id"] == "req-1"
    assert payload["record_id"] == 7
    assert payload["timestamp"].endswith("Z")
