import logging
import os

import pytest

from aggregator.config import AggregatorConfig, ConfigManager, RunConfig, get_config, reset_config, validate_config
from aggregator.env_loader import get_credentials, get_env_var, load_env_file
from aggregator.exceptions import ConfigurationError


def test_defaults():
    config = ConfigManager(load_env=False).get_config()

    assert config.dedup.similarity_threshold == 0.85
    assert config.dedup.window_minutes == 180
    assert config.dedup.cross_source_only is True
    assert config.run.max_concurrent_sources == 8
    assert config.http.timeout == 20


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AGG_SIMILARITY_THRESHOLD", "0.9")
    monkeypatch.setenv("AGG_DEDUP_WINDOW_MINUTES", "60")
    monkeypatch.setenv("AGG_CROSS_SOURCE_ONLY", "false")
    monkeypatch.setenv("AGG_MAX_CONCURRENT_SOURCES", "3")
    monkeypatch.setenv("AGG_FETCH_CONTENT", "yes")
    monkeypatch.setenv("AGG_LOG_LEVEL", "debug")

    config = ConfigManager(load_env=False).get_config()

    assert config.dedup.similarity_threshold == 0.9
    assert config.dedup.window_minutes == 60
    assert config.dedup.cross_source_only is False
    assert config.run.max_concurrent_sources == 3
    assert config.run.fetch_content is True
    assert config.logging.log_level == "DEBUG"


def test_non_numeric_value_is_a_configuration_error(monkeypatch):
    monkeypatch.setenv("AGG_HTTP_TIMEOUT", "soon")

    with pytest.raises(ConfigurationError) as exc_info:
        ConfigManager(load_env=False).get_config()

    assert "AGG_HTTP_TIMEOUT" in str(exc_info.value)


def test_validation_lists_every_problem():
    config = AggregatorConfig(run=RunConfig(max_concurrent_sources=0, source_timeout=30, run_deadline=10))
    config.dedup.similarity_threshold = 1.5

    with pytest.raises(ConfigurationError) as exc_info:
        validate_config(config)

    message = str(exc_info.value)
    assert "AGG_MAX_CONCURRENT_SOURCES" in message
    assert "AGG_RUN_DEADLINE" in message
    assert "AGG_SIMILARITY_THRESHOLD" in message


def test_invalid_log_level_rejected(monkeypatch):
    monkeypatch.setenv("AGG_LOG_LEVEL", "LOUD")

    with pytest.raises(ConfigurationError):
        ConfigManager(load_env=False).get_config()


def test_global_config_is_cached_until_reset(monkeypatch):
    monkeypatch.setattr("aggregator.config.load_env_file", lambda *args, **kwargs: 0)
    first = get_config()

    assert get_config() is first
    reset_config()
    assert get_config() is not first


def test_update_logging_sets_root_level(monkeypatch):
    monkeypatch.setenv("AGG_LOG_LEVEL", "WARNING")
    root = logging.getLogger()
    previous = root.level

    try:
        ConfigManager(load_env=False).update_logging()
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)


def test_load_env_file_does_not_override_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("AGG_PRESET", "from-env")
    monkeypatch.delenv("AGG_FROM_FILE", raising=False)
    monkeypatch.delenv("AGG_QUOTED", raising=False)
    (tmp_path / ".env").write_text(
        "# comment\nAGG_PRESET=from-file\nAGG_FROM_FILE=loaded\nAGG_QUOTED=\"with spaces\"\nnot a pair\n",
        encoding="utf-8"
    )

    try:
        loaded = load_env_file(".env", root=tmp_path)

        assert loaded == 2
        assert os.environ["AGG_PRESET"] == "from-env"
        assert os.environ["AGG_FROM_FILE"] == "loaded"
        assert os.environ["AGG_QUOTED"] == "with spaces"
    finally:
        os.environ.pop("AGG_FROM_FILE", None)
        os.environ.pop("AGG_QUOTED", None)


def test_missing_env_file_loads_nothing(tmp_path):
    assert load_env_file(".env", root=tmp_path) == 0


def test_get_env_var_required(monkeypatch):
    monkeypatch.delenv("AGG_REQUIRED_THING", raising=False)

    with pytest.raises(ValueError):
        get_env_var("AGG_REQUIRED_THING", required=True)
    assert get_env_var("AGG_REQUIRED_THING", default="fallback") == "fallback"


def test_credentials_need_both_parts(monkeypatch):
    monkeypatch.setenv("EXAMPLE_SITE_USERNAME", "reader")
    monkeypatch.delenv("EXAMPLE_SITE_PASSWORD", raising=False)

    assert get_credentials("EXAMPLE_SITE") is None

    monkeypatch.setenv("EXAMPLE_SITE_PASSWORD", "secret")
    assert get_credentials("EXAMPLE_SITE") == ("reader", "secret")
