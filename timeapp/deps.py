"""Shared FastAPI dependencies."""
from datetime import datetime, timezone
from typing import Optional

from fastapi import Header, HTTPException


def require_user_id(user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    if not user_id:
        raise HTTPException(status_code=400, detail="Missing X-User-Id header")
    return user_id


def get_now() -> datetime:
    return datetime.now(timezone.utc)
