"""Tests for sift.config module."""

import json

from sift.config import DEFAULT_CONFIG, Config


class TestConfig:
    def test_defaults(self) -> None:
        config = Config()
        assert config.get("inbox.domain") == "inbox.siftly.space"
        assert config.get("extraction.fallback_chars") == 1000
        assert config.get("extraction.missing", "fallback") == "fallback"
        assert config.get("inbox.domain.deeper") is None

    def test_defaults_are_not_shared(self) -> None:
        config = Config()
        config.config["inbox"]["domain"] = "changed.example"
        assert DEFAULT_CONFIG["inbox"]["domain"] == "inbox.siftly.space"

    def test_yaml_file_is_merged(self, tmp_path) -> None:
        path = tmp_path / "sift.yaml"
        path.write_text("brand:\n  primary: '#000000'\n")
        config = Config(str(path))
        assert config.get("brand.primary") == "#000000"
        assert config.get("brand.accent") == "#1E1E1E"

    def test_unsupported_file_keeps_defaults(self, tmp_path) -> None:
        path = tmp_path / "sift.ini"
        path.write_text("[brand]\nprimary=#000000\n")
        assert Config(str(path)).get("brand.primary") == "#6C7BFF"

    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("SIFT_EXTRACTION_FALLBACK_CHARS", "500")
        monkeypatch.setenv("SIFT_INBOX_DOMAIN", "in.example.org")
        monkeypatch.setenv("SIFT_UNKNOWN_KEY", "1")
        config = Config()
        assert config.get("extraction.fallback_chars") == 500
        assert config.get("inbox.domain") == "in.example.org"
        assert config.get("unknown.key") is None

    def test_save_round_trip(self, tmp_path) -> None:
        path = tmp_path / "saved.json"
        config = Config()
        assert config.save(str(path))
        assert json.loads(path.read_text())["storage"]["database"] == "sift.db"
        assert Config(str(path)).get("storage.database") == "sift.db"

    def test_save_without_path(self) -> None:
        assert Config().save() is False
