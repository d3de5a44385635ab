from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import generation
from ..db import get_db
from ..gemini_client import GeminiClient
from ..schemas import Language, QuizQuestion, User
from ..state import AppState
from .auth import get_current_user
from .common import get_app_state, get_gemini_client, resolve_language

router = APIRouter(prefix="/quiz", tags=["quiz"])


class QuizRequest(BaseModel):
	topic: str
	lang: Optional[Language] = None


class QuizResponse(BaseModel):
	topic: str
	questions: List[QuizQuestion]


@router.post("", response_model=QuizResponse)
async def create_quiz(
	req: QuizRequest,
	request: Request,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
	client: GeminiClient = Depends(get_gemini_client),
):
	lang = resolve_language(request, req.lang, user, db, app_state)
	topic = generation.require_text(req.topic, "topic")
	with app_state.gate.hold(user.username, "quiz"):
		questions = await generation.generate_quiz(client, topic, lang)
	return QuizResponse(topic=topic, questions=questions)
