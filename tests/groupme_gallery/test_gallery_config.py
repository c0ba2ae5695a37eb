"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from gallery_core.errors import ConfigurationError
from groupme_gallery.config import ENV_OVERRIDES, GalleryConfig, load_config


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    for env_var in ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.chdir(tmp_path)


def _write(tmp_path, text) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_no_file_gives_defaults(self):
        config = load_config()
        assert config.concurrency == 3
        assert config.organize == "flat"
        assert config.api_base_url == "https://api.groupme.com/v3"
        assert config.token == ""
        assert config.listing_retry.max_attempts == 5

    def test_default_instance_validates(self):
        GalleryConfig().validate()


class TestYaml:
    def test_gallery_section(self, tmp_path):
        path = _write(
            tmp_path,
            """
gallery:
  output_dir: ./pics
  concurrency: 5
  organize: date
  listing_retry:
    max_attempts: 2
  logging:
    log_level: debug
    json_logs: "false"
""",
        )
        config = load_config(path)
        assert config.output_dir == "./pics"
        assert config.concurrency == 5
        assert config.organize == "date"
        assert config.listing_retry.max_attempts == 2
        assert config.log_level == "DEBUG"
        assert config.json_logs is False

    def test_env_vars_are_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MY_TOKEN", "from-env")
        path = _write(tmp_path, "gallery:\n  token: ${MY_TOKEN}\n  store_path: ${STORE:-./q.json}\n")
        config = load_config(path)
        assert config.token == "from-env"
        assert config.store_path == "./q.json"

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "gallery: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_unknown_keys_warn(self, tmp_path, caplog):
        path = _write(tmp_path, "gallery:\n  colour: blue\n")
        load_config(path)
        assert "colour" in caplog.text


class TestPrecedence:
    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "gallery:\n  concurrency: 5\n")
        monkeypatch.setenv("GALLERY_CONCURRENCY", "7")
        assert load_config(path).concurrency == 7

    def test_overrides_beat_env(self, monkeypatch):
        monkeypatch.setenv("GROUPME_TOKEN", "env-token")
        config = load_config(overrides={"token": "cli-token", "organize": None})
        assert config.token == "cli-token"
        assert config.organize == "flat"

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("GALLERY_CONCURRENCY", "lots")
        with pytest.raises(ConfigurationError, match="GALLERY_CONCURRENCY"):
            load_config()


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"concurrency": 0},
            {"concurrency": 11},
            {"organize": "size"},
            {"api_base_url": "ftp://example.com"},
            {"download_timeout_seconds": 0},
            {"pacing_delay_seconds": -1},
            {"log_level": "LOUD"},
        ],
    )
    def test_invalid_settings(self, overrides):
        with pytest.raises(ConfigurationError):
            load_config(overrides=overrides)

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError):
            load_config(overrides={"page_limit": "many"})
