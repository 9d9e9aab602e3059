"""Tests for settings, limit parsing and the YAML config file."""
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from config import Settings, file_config_source, limits_from_config, load_config_file


class TestLimits:
    def test_defaults(self):
        limits = limits_from_config({})
        assert (limits.five_hour_limit, limits.weekly_limit, limits.plan) == (80, 500, "Pro")

    def test_configured_values(self):
        limits = limits_from_config(
            {"five-hour-limit": 200, "weekly-limit": 1500, "plan": "Max 5x"}
        )
        assert (limits.five_hour_limit, limits.weekly_limit, limits.plan) == (200, 1500, "Max 5x")

    @pytest.mark.parametrize("bad", [0, -5, "lots", 1.5, True, None])
    def test_invalid_limit_falls_back(self, bad):
        assert limits_from_config({"five-hour-limit": bad}).five_hour_limit == 80
        assert limits_from_config({"weekly-limit": bad}).weekly_limit == 500

    def test_invalid_plan_falls_back(self):
        assert limits_from_config({"plan": 42}).plan == "Pro"
        assert limits_from_config({"plan": ""}).plan == "Pro"


class TestSettings:
    def test_paths_derive_from_claude_dir(self, tmp_path: Path):
        settings = Settings(claude_dir=tmp_path)
        assert settings.projects_dir == tmp_path / "projects"
        assert settings.history_path == tmp_path / "history.jsonl"
        assert settings.stats_cache_path == tmp_path / "stats-cache.json"

    def test_env_overrides_default_dir(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("CLAUDE_CONFIG_DIR", str(tmp_path))
        assert Settings().claude_dir == tmp_path

    def test_default_dir_is_home_claude(self, monkeypatch):
        monkeypatch.delenv("CLAUDE_CONFIG_DIR", raising=False)
        assert Settings().claude_dir == Path.home() / ".claude"

    def test_rejects_bad_first_weekday(self):
        with pytest.raises(ValidationError):
            Settings(first_weekday=7)


class TestConfigFile:
    def test_missing_file_is_empty(self, tmp_path: Path):
        assert load_config_file(tmp_path / "config.yaml") == {}

    def test_empty_file_is_empty(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config_file(path) == {}

    def test_reads_mapping(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("five-hour-limit: 120\nplan: Team\n")
        assert load_config_file(path) == {"five-hour-limit": 120, "plan": "Team"}

    def test_non_mapping_raises(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config_file(path)

    def test_invalid_yaml_raises(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("plan: [unterminated\n")
        with pytest.raises(yaml.YAMLError):
            load_config_file(path)

    def test_source_rereads_and_swallows_errors(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        source = file_config_source(path)
        assert source() == {}

        path.write_text("weekly-limit: 900\n")
        assert source() == {"weekly-limit": 900}

        path.write_text("- broken\n")
        assert source() == {}
