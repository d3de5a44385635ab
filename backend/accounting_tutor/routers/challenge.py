from __future__ import annotations
import logging
import random
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import generation
from ..db import get_db
from ..errors import GenerationError, user_message
from ..gemini_client import GeminiClient
from ..schemas import ChallengeFeedback, DailyChallenge, Language, User
from ..state import AppState
from ..store import DailyChallengeCache
from .auth import get_current_user
from .common import get_app_state, get_gemini_client, resolve_language

router = APIRouter(prefix="/challenge", tags=["challenge"])

logger = logging.getLogger(__name__)

# Offered as a quiz topic when no challenge can be generated
FALLBACK_TOPICS: Dict[str, List[str]] = {
	"en": ["Depreciation", "Inventory", "Adjusting entries", "Financial statements", "Receivables"],
	"ar": ["الإهلاك", "المخزون", "قيود التسوية", "القوائم المالية", "المدينون"],
}


class PublicChallenge(BaseModel):
	date: str
	question: str


class EvaluateRequest(BaseModel):
	answer: str
	question: Optional[str] = None
	lang: Optional[Language] = None


@router.get("/daily", response_model=PublicChallenge)
async def daily_challenge(
	request: Request,
	lang: Optional[Language] = None,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
	client: GeminiClient = Depends(get_gemini_client),
):
	"""Today's challenge; generated on the first visit of the day, then reused."""
	lang = resolve_language(request, lang, user, db, app_state)
	cache = DailyChallengeCache(db, user.username)
	try:
		with app_state.gate.hold(user.username, "daily_challenge"):
			challenge: DailyChallenge = await cache.current(lambda: generation.generate_daily_challenge(client, lang))
	except GenerationError:
		topic = random.choice(FALLBACK_TOPICS[lang])
		logger.info("daily challenge unavailable for %s; suggesting quiz topic %r", user.username, topic)
		raise HTTPException(status_code=502, detail={"message": user_message(lang), "fallback_topic": topic})
	# The ideal answer stays server-side for grading
	return PublicChallenge(date=challenge.date, question=challenge.question)


@router.post("/evaluate", response_model=ChallengeFeedback)
async def evaluate(
	req: EvaluateRequest,
	request: Request,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
	client: GeminiClient = Depends(get_gemini_client),
):
	lang = resolve_language(request, req.lang, user, db, app_state)
	answer = generation.require_text(req.answer, "answer")
	question = (req.question or "").strip()
	if not question:
		cached = DailyChallengeCache(db, user.username).cached()
		if cached is None:
			raise HTTPException(status_code=404, detail="No daily challenge to evaluate")
		question = cached.question
	with app_state.gate.hold(user.username, "challenge_evaluation"):
		return await generation.evaluate_challenge_answer(client, question, answer, lang)
