"""
Per-user application settings (sounds, defaults, display preferences).

Stored as a JSON payload per user; loading merges the payload over the
defaults so payloads written by older versions keep working.
"""
from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

SOUND_KINDS = ("start", "stop", "notify")


class SoundEnabled(BaseModel):
    start: bool = True
    stop: bool = True
    notify: bool = True


class AppSettings(BaseModel):
    master_volume: float = 0.7
    sound_enabled: SoundEnabled = Field(default_factory=SoundEnabled)
    default_session_name: str = ""
    time_format: Literal["12h", "24h"] = "24h"
    start_of_week: Literal[0, 1] = 1
    default_tags: list[str] = Field(default_factory=list)

    @field_validator("master_volume")
    @classmethod
    def clamp_volume(cls, v: float) -> float:
        return max(0.0, min(1.0, v))


class SettingsUpdate(BaseModel):
    master_volume: Optional[float] = None
    sound_enabled: Optional[dict[str, bool]] = None
    default_session_name: Optional[str] = None
    time_format: Optional[Literal["12h", "24h"]] = None
    start_of_week: Optional[Literal[0, 1]] = None
    default_tags: Optional[list[str]] = None


def load_settings(stored: Optional[dict[str, Any]]) -> AppSettings:
    if not stored:
        return AppSettings()
    defaults = AppSettings().model_dump()
    merged = {**defaults, **stored}
    sounds = stored.get("sound_enabled")
    merged["sound_enabled"] = {**defaults["sound_enabled"], **(sounds if isinstance(sounds, dict) else {})}
    if not isinstance(stored.get("default_tags"), list):
        merged["default_tags"] = defaults["default_tags"]
    try:
        return AppSettings.model_validate(merged)
    except ValidationError as e:
        logger.warning("Stored settings are invalid, using defaults: %s", e)
        return AppSettings()


def apply_update(current: AppSettings, update: SettingsUpdate) -> AppSettings:
    changes = update.model_dump(exclude_none=True)
    data = current.model_dump()
    if "sound_enabled" in changes:
        unknown = set(changes["sound_enabled"]) - set(SOUND_KINDS)
        if unknown:
            raise ValueError(f"Unknown sound type(s): {', '.join(sorted(unknown))}")
        data["sound_enabled"] = {**data["sound_enabled"], **changes.pop("sound_enabled")}
    data.update(changes)
    return AppSettings.model_validate(data)


def toggle_sound(current: AppSettings, kind: str) -> AppSettings:
    if kind not in SOUND_KINDS:
        raise ValueError(f"Unknown sound type: {kind}")
    data = current.model_dump()
    data["sound_enabled"][kind] = not data["sound_enabled"][kind]
    return AppSettings.model_validate(data)
