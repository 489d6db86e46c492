from pathlib import Path

import pytest
from pydantic import ValidationError

from metrics_sender.utils.config import Settings, load_settings, read_config_file

from domains.spool_ingest.inventory import SpoolOrder


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.process_interval_seconds == 5
    assert settings.reread_folder_seconds == 180
    assert settings.spool_order is SpoolOrder.OLDEST_FIRST
    assert settings.get_influx_bucket() == "metrics"
    assert settings.get_influx_token() == ""


def test_environment_variables(monkeypatch):
    monkeypatch.setenv("SOURCE_FOLDER", "/data/spool")
    monkeypatch.setenv("MAX_CONCURRENT_WORKERS", "8")
    monkeypatch.setenv("SPOOL_ORDER", "newest_first")
    monkeypatch.setenv("INFLUX_GZIP", "true")

    settings = Settings(_env_file=None)

    assert settings.source_folder == Path("/data/spool")
    assert settings.max_concurrent_workers == 8
    assert settings.spool_order is SpoolOrder.NEWEST_FIRST
    assert settings.influx_gzip is True


def test_yaml_file_flattens_influx_section(tmp_path, monkeypatch):
    monkeypatch.setenv("REREAD_FOLDER_SECONDS", "999")
    config = tmp_path / "config.yml"
    config.write_text(
        "source_folder: /var/spool/checks\n"
        "reread_folder_seconds: 30\n"
        "influx:\n"
        "  url: http://influx:8086\n"
        "  database: nagios\n"
        "  retention_policy: autogen\n"
        "  gzip: true\n"
        "  username: writer\n"
        "  password: secret\n"
    )

    assert read_config_file(config)["influx_database"] == "nagios"

    settings = load_settings(config)

    assert settings.reread_folder_seconds == 30
    assert settings.influx_url == "http://influx:8086"
    assert settings.influx_gzip is True
    assert settings.get_influx_bucket() == "nagios/autogen"
    assert settings.get_influx_token() == "writer:secret"


def test_token_wins_over_credentials():
    settings = Settings(_env_file=None, influx_token="t0k3n", influx_username="writer")

    assert settings.get_influx_token() == "t0k3n"


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_concurrent_workers": 0},
        {"spool_order": "random"},
        {"reread_folder_seconds": 0},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_non_mapping_config_file(tmp_path):
    config = tmp_path / "config.yml"
    config.write_text("- just\n- a list\n")

    with pytest.raises(ValueError):
        read_config_file(config)


def test_get_settings_is_cached():
    from metrics_sender.utils.config import get_settings

    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


def test_camel_case_config_file(tmp_path):
    config = tmp_path / "config.yml"
    config.write_text(
        "sourceFolder: /data/spool\n"
        "processIntervalSeconds: 10\n"
        "rereadFolderSeconds: 30\n"
        "logLevel: debug\n"
        "logFile: /var/log/metrics-sender.log\n"
        "influx:\n"
        "  url: http://influx:8086\n"
        "  database: nagios\n"
        "  gzip: true\n"
    )

    settings = load_settings(config)

    assert settings.source_folder == Path("/data/spool")
    assert settings.process_interval_seconds == 10
    assert settings.reread_folder_seconds == 30
    assert settings.log_level == "debug"
    assert settings.log_file == Path("/var/log/metrics-sender.log")
    assert settings.influx_database == "nagios"
    assert settings.influx_gzip is True


@pytest.mark.parametrize(
    "content",
    [
        "sourceFolderr: /data/spool\n",
        "influx:\n  uri: http://influx:8086\n",
    ],
)
def test_unknown_config_keys_are_rejected(tmp_path, content):
    config = tmp_path / "config.yml"
    config.write_text(content)

    with pytest.raises(ValueError, match="unknown keys"):
        read_config_file(config)
