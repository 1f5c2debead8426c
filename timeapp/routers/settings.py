"""Per-user settings: read, partial update, sound toggles and reset."""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from sqlmodel import Session

from timeapp import repository
from timeapp.db import get_session
from timeapp.deps import require_user_id
from timeapp.preferences import AppSettings, SettingsUpdate, apply_update, toggle_sound

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=AppSettings)
def get_settings(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    return repository.get_settings(db, uid)


@router.patch("", response_model=AppSettings)
def update_settings(
    req: SettingsUpdate,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    """Change only the given settings. ``master_volume`` is clamped to 0..1."""
    try:
        prefs = apply_update(repository.get_settings(db, uid), req)
    except (ValidationError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return repository.save_settings(db, uid, prefs)


@router.post("/sounds/{kind}/toggle", response_model=AppSettings)
def toggle_sound_setting(
    kind: str,
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    try:
        prefs = toggle_sound(repository.get_settings(db, uid), kind)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return repository.save_settings(db, uid, prefs)


@router.post("/reset", response_model=AppSettings)
def reset_settings(
    db: Session = Depends(get_session),
    uid: str = Depends(require_user_id),
):
    return repository.save_settings(db, uid, AppSettings())
