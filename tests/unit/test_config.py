"""Test settings loading and per-call option normalisation."""

import pytest
from pydantic import ValidationError

from prototype.config import (
    PrototypeSettings,
    configure,
    get_settings,
    load_settings,
)
from prototype.options import build_options


class TestSettingsDefaults:
    def test_default_settings(self):
        settings = PrototypeSettings()
        assert settings.tag_key == "prototype"
        assert settings.getter_prefix == ""
        assert settings.setter_prefix == ""
        assert settings.cycle_depth == 64
        assert settings.interrupt_on_error is True

    def test_cycle_depth_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            PrototypeSettings(cycle_depth=-1)


class TestSettingsLoading:
    def test_env_override(self, clean_settings, monkeypatch):
        monkeypatch.setenv("PROTOTYPE_TAG_KEY", "json")
        monkeypatch.setenv("PROTOTYPE_CYCLE_DEPTH", "8")
        settings = load_settings()
        assert settings.tag_key == "json"
        assert settings.cycle_depth == 8

    def test_toml_table(self, clean_settings, tmp_path):
        path = tmp_path / "prototype.toml"
        path.write_text('[prototype]\ntag_key = "yaml"\nsetter_prefix = "set_"\n')
        settings = load_settings(path)
        assert settings.tag_key == "yaml"
        assert settings.setter_prefix == "set_"

    def test_toml_top_level(self, clean_settings, tmp_path):
        path = tmp_path / "prototype.toml"
        path.write_text("interrupt_on_error = false\n")
        assert load_settings(path).interrupt_on_error is False

    def test_missing_file_uses_defaults(self, clean_settings, tmp_path):
        assert load_settings(tmp_path / "absent.toml").tag_key == "prototype"

    def test_overrides_win(self, clean_settings, tmp_path):
        path = tmp_path / "prototype.toml"
        path.write_text('tag_key = "yaml"\n')
        assert load_settings(path, {"tag_key": "xml"}).tag_key == "xml"

    def test_get_settings_is_cached(self, clean_settings):
        assert get_settings() is get_settings()


class TestOptionDefaults:
    def test_options_follow_settings(self, clean_settings):
        configure(PrototypeSettings(tag_key="json", getter_prefix="get_", cycle_depth=3))
        options = build_options()
        assert options.source_tag_key == "json"
        assert options.target_tag_key == "json"
        assert options.getter_prefix == "get_"
        assert options.cycle_depth == 3

    def test_explicit_options_beat_settings(self, clean_settings):
        configure(PrototypeSettings(tag_key="json"))
        options = build_options(tag_key="xml", setter_prefix="set_")
        assert options.source_tag_key == "xml"
        assert options.setter_prefix == "set_"
