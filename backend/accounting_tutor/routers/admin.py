from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import LoginAttempt, User
from ..state import AppState
from ..store import LoginAttemptLog
from .auth import require_admin
from .common import get_app_state

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/login-attempts", response_model=List[LoginAttempt])
async def login_attempts(
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
):
	"""
	Student logins, newest first.

	Each entry carries `passwordHash` (pbkdf2_sha256), not the password the
	student typed, so the typed password can no longer be displayed. An admin
	can still check a suspected password with passlib's verify().
	"""
	return LoginAttemptLog(db, limit=app_state.settings.login_attempt_limit).attempts()


@router.delete("/login-attempts", status_code=204)
async def clear_login_attempts(
	admin: User = Depends(require_admin),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
):
	LoginAttemptLog(db, limit=app_state.settings.login_attempt_limit).clear()
