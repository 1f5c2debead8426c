"""
Tests for per-user settings loading, updates and toggles.
"""
import pytest

from timeapp.preferences import AppSettings, SettingsUpdate, apply_update, load_settings, toggle_sound


class TestLoad:
    def test_defaults(self):
        prefs = load_settings(None)
        assert prefs.master_volume == 0.7
        assert prefs.time_format == "24h"
        assert prefs.start_of_week == 1
        assert prefs.sound_enabled.notify is True

    def test_partial_payload_is_merged(self):
        prefs = load_settings({"time_format": "12h", "sound_enabled": {"stop": False}})
        assert prefs.time_format == "12h"
        assert prefs.sound_enabled.stop is False
        assert prefs.sound_enabled.start is True

    def test_non_list_default_tags_replaced(self):
        assert load_settings({"default_tags": "work"}).default_tags == []

    def test_invalid_payload_falls_back(self):
        assert load_settings({"time_format": "36h"}) == AppSettings()


class TestUpdate:
    def test_volume_is_clamped(self):
        assert apply_update(AppSettings(), SettingsUpdate(master_volume=3)).master_volume == 1.0
        assert apply_update(AppSettings(), SettingsUpdate(master_volume=-1)).master_volume == 0.0

    def test_only_given_fields_change(self):
        prefs = apply_update(AppSettings(default_session_name="Focus"), SettingsUpdate(start_of_week=0))
        assert prefs.start_of_week == 0
        assert prefs.default_session_name == "Focus"

    def test_sound_merge(self):
        prefs = apply_update(AppSettings(), SettingsUpdate(sound_enabled={"notify": False}))
        assert prefs.sound_enabled.notify is False
        assert prefs.sound_enabled.start is True

    def test_unknown_sound_rejected(self):
        with pytest.raises(ValueError):
            apply_update(AppSettings(), SettingsUpdate(sound_enabled={"bell": False}))

    def test_toggle(self):
        prefs = toggle_sound(AppSettings(), "start")
        assert prefs.sound_enabled.start is False
        assert toggle_sound(prefs, "start").sound_enabled.start is True
        with pytest.raises(ValueError):
            toggle_sound(prefs, "bell")
