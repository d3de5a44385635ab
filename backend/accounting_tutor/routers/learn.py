from __future__ import annotations
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import generation
from ..db import get_db
from ..gemini_client import GeminiClient
from ..schemas import Language, User
from ..state import AppState
from .auth import get_current_user
from .common import get_app_state, get_gemini_client, resolve_language

router = APIRouter(prefix="/learn", tags=["learn"])

FORMULAS: Dict[str, Dict[str, str]] = {
	"formula_accounting_equation": {
		"en": "The Accounting Equation",
		"ar": "المعادلة المحاسبية",
	},
	"formula_net_income": {
		"en": "Net Income",
		"ar": "صافي الربح",
	},
	"formula_cost_of_goods_sold": {
		"en": "Cost of Goods Sold",
		"ar": "تكلفة البضاعة المباعة",
	},
	"formula_retained_earnings": {
		"en": "Retained Earnings",
		"ar": "الأرباح المحتجزة",
	},
	"formula_current_ratio": {
		"en": "Current Ratio",
		"ar": "نسبة التداول",
	},
}


class TopicRequest(BaseModel):
	topic: str
	lang: Optional[Language] = None


class FormulaRequest(BaseModel):
	formula: str
	lang: Optional[Language] = None


class TextResponse(BaseModel):
	text: str


class FormulaItem(BaseModel):
	key: str
	title: str


@router.post("/lesson", response_model=TextResponse)
async def lesson(
	req: TopicRequest,
	request: Request,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
	client: GeminiClient = Depends(get_gemini_client),
):
	lang = resolve_language(request, req.lang, user, db, app_state)
	topic = generation.require_text(req.topic, "topic")
	with app_state.gate.hold(user.username, "lesson"):
		text = await generation.generate_lesson(client, topic, lang)
	return TextResponse(text=text)


@router.post("/summary", response_model=TextResponse)
async def summary(
	req: TopicRequest,
	request: Request,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
	client: GeminiClient = Depends(get_gemini_client),
):
	lang = resolve_language(request, req.lang, user, db, app_state)
	topic = generation.require_text(req.topic, "topic")
	with app_state.gate.hold(user.username, "summary"):
		text = await generation.generate_summary(client, topic, lang)
	return TextResponse(text=text)


@router.get("/formulas", response_model=List[FormulaItem])
async def formulas(
	request: Request,
	lang: Optional[Language] = None,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
):
	lang = resolve_language(request, lang, user, db, app_state)
	return [FormulaItem(key=key, title=titles[lang]) for key, titles in FORMULAS.items()]


@router.post("/formula", response_model=TextResponse)
async def formula(
	req: FormulaRequest,
	request: Request,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
	client: GeminiClient = Depends(get_gemini_client),
):
	lang = resolve_language(request, req.lang, user, db, app_state)
	name = generation.require_text(req.formula, "formula")
	# Accept a built-in key as well as a free-form formula name
	if name in FORMULAS:
		name = FORMULAS[name][lang]
	with app_state.gate.hold(user.username, "formula"):
		text = await generation.explain_formula(client, name, lang)
	return TextResponse(text=text)
