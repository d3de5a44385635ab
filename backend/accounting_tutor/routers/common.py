from __future__ import annotations
from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..gemini_client import GeminiClient
from ..schemas import User
from ..state import AppState
from ..store import PreferenceStore


def get_app_state(request: Request) -> AppState:
	return request.app.state.tutor


async def get_gemini_client() -> AsyncIterator[GeminiClient]:
	client = GeminiClient()
	try:
		yield client
	finally:
		await client.aclose()


def resolve_language(request: Request, requested: Optional[str], user: User, db: Session, app_state: AppState) -> str:
	"""Explicit request language wins, then the stored preference."""
	lang = requested or PreferenceStore(db, user.username, app_state.settings.default_language).load().language
	# Read by the error handlers to localize the failure message
	request.state.lang = lang
	return lang
