from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .. import generation, prompts
from ..audio import TTS_CHANNELS, TTS_SAMPLE_RATE
from ..db import get_db
from ..gemini_client import GeminiClient
from ..playback import PlaybackController
from ..schemas import Language, Solution, User
from ..state import AppState
from .auth import get_current_user
from .common import get_app_state, get_gemini_client, resolve_language

router = APIRouter(prefix="/speech", tags=["speech"])


class SpeechRequest(BaseModel):
	text: Optional[str] = None
	# A solution is read section by section with localized headings
	solution: Optional[Solution] = None
	lang: Optional[Language] = None


class SpeechResponse(BaseModel):
	audio: str
	mime_type: str = Field(default=f"audio/L16;rate={TTS_SAMPLE_RATE}", serialization_alias="mimeType")
	sample_rate: int = Field(default=TTS_SAMPLE_RATE, serialization_alias="sampleRate")
	channels: int = TTS_CHANNELS


class PlaybackStatus(BaseModel):
	state: str
	active: bool


def _speech_text(req: SpeechRequest, lang: str) -> str:
	if req.solution is not None:
		return prompts.build_read_aloud_text(req.solution, lang)
	return generation.require_text(req.text, "text")


def _playback(app_state: AppState) -> PlaybackController:
	if app_state.playback is None:
		raise HTTPException(status_code=503, detail="Server-side audio output is disabled")
	return app_state.playback


def _status(controller: PlaybackController) -> PlaybackStatus:
	return PlaybackStatus(state=controller.state.value, active=controller.is_active)


@router.post("/synthesize", response_model=SpeechResponse)
async def synthesize(
	req: SpeechRequest,
	request: Request,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
	client: GeminiClient = Depends(get_gemini_client),
):
	"""Return base64 PCM (16-bit LE, 24 kHz, mono) for the browser to play."""
	lang = resolve_language(request, req.lang, user, db, app_state)
	text = _speech_text(req, lang)
	with app_state.gate.hold(user.username, "speech"):
		audio = await generation.generate_speech(client, text)
	return SpeechResponse(audio=audio)


@router.post("/play", response_model=PlaybackStatus)
async def play(
	req: SpeechRequest,
	request: Request,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
):
	controller = _playback(app_state)
	lang = resolve_language(request, req.lang, user, db, app_state)
	await controller.read_aloud(_speech_text(req, lang))
	return _status(controller)


@router.post("/stop", response_model=PlaybackStatus)
async def stop(user: User = Depends(get_current_user), app_state: AppState = Depends(get_app_state)):
	controller = _playback(app_state)
	controller.stop()
	return _status(controller)


@router.get("/state", response_model=PlaybackStatus)
async def state(user: User = Depends(get_current_user), app_state: AppState = Depends(get_app_state)):
	return _status(_playback(app_state))
