from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..db import get_db
from ..schemas import Language, Preferences, Theme, User
from ..state import AppState
from ..store import PreferenceStore
from .auth import get_current_user
from .common import get_app_state

router = APIRouter(prefix="/preferences", tags=["preferences"])


class PreferencesUpdate(BaseModel):
	theme: Optional[Theme] = None
	language: Optional[Language] = None


@router.get("", response_model=Preferences)
async def read_preferences(
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
):
	return PreferenceStore(db, user.username, app_state.settings.default_language).load()


@router.put("", response_model=Preferences)
async def update_preferences(
	req: PreferencesUpdate,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
):
	store = PreferenceStore(db, user.username, app_state.settings.default_language)
	return store.save(theme=req.theme, language=req.language)
