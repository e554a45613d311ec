"""Tests for settings loading."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from resultscache import config
from resultscache.config import Settings, load_settings


@pytest.fixture
def project_root(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in config.ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)
    return tmp_path


def test_defaults():
    s = Settings()
    assert s.ttl_grace == timedelta(hours=1)
    assert s.log_level == "INFO"
    assert s.db_path.name == "results_cache.db"


def test_yaml_settings(project_root):
    (project_root / "settings.yaml").write_text("ttl_grace_seconds: 90\nlog_level: warning\n")
    s = load_settings()
    assert s.ttl_grace == timedelta(seconds=90)
    assert s.log_level == "WARNING"


def test_env_overrides_yaml(project_root, monkeypatch):
    (project_root / "settings.yaml").write_text("ttl_grace_seconds: 90\n")
    monkeypatch.setenv("RESULTS_CACHE_TTL_GRACE", "15")
    monkeypatch.setenv("RESULTS_CACHE_DB", str(project_root / "other.db"))
    s = load_settings()
    assert s.ttl_grace_seconds == 15
    assert s.db_path == project_root / "other.db"


def test_bad_yaml_falls_back_to_defaults(project_root):
    (project_root / "settings.yaml").write_text("ttl_grace_seconds: [unclosed\n")
    s = load_settings()
    assert s.ttl_grace_seconds == 3600


def test_default_db_in_working_directory(project_root):
    db_path = load_settings().db_path
    assert db_path.resolve() == (project_root / "results_cache.db").resolve()


def test_grace_beyond_timedelta_range_rejected():
    with pytest.raises(ValidationError):
        Settings(ttl_grace_seconds=config.MAX_GRACE_SECONDS * 2)


def test_negative_grace_rejected():
    with pytest.raises(ValidationError):
        Settings(ttl_grace_seconds=-1)


def test_unknown_log_level_rejected():
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")
