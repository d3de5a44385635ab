from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from .. import generation
from ..db import get_db
from ..errors import ValidationError
from ..gemini_client import GeminiClient
from ..schemas import Dialect, HistoryItem, ImageInput, User
from ..state import AppState
from ..store import HistoryStore
from .auth import get_current_user
from .common import get_app_state, get_gemini_client, resolve_language

router = APIRouter(prefix="/solve", tags=["solve"])

# Inline image data is capped well below Gemini's 20 MB request limit
MAX_IMAGE_BYTES = 15 * 1024 * 1024


async def _read_image(image: Optional[UploadFile]) -> Optional[ImageInput]:
	if image is None or not image.filename:
		return None
	content_type = image.content_type or ""
	if not content_type.startswith("image/"):
		raise ValidationError("image", "only image uploads are supported")
	data = await image.read()
	if not data:
		raise ValidationError("image", "uploaded image is empty")
	if len(data) > MAX_IMAGE_BYTES:
		raise ValidationError("image", "uploaded image is too large")
	return ImageInput(data=data, mime_type=content_type, filename=image.filename)


@router.post("", response_model=HistoryItem)
async def solve(
	request: Request,
	problem: str = Form(""),
	dialect: Dialect = Form("formal"),
	image: Optional[UploadFile] = File(None),
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	app_state: AppState = Depends(get_app_state),
	client: GeminiClient = Depends(get_gemini_client),
):
	"""Solve one problem from text, an image, or both, and record it in the history."""
	resolve_language(request, None, user, db, app_state)
	upload = await _read_image(image)
	text = problem.strip()
	if not text and upload is None:
		raise ValidationError("problem", "enter a problem or upload an image")
	with app_state.gate.hold(user.username, "solve"):
		solution = await generation.solve_problem(client, text, dialect, upload)
	label = text or f"Image: {upload.filename}"
	return HistoryStore(db, user.username).add(label, solution)


@router.get("/history", response_model=List[HistoryItem])
async def history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	return HistoryStore(db, user.username).items()


@router.get("/history/{item_id}", response_model=HistoryItem)
async def history_item(item_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	item = HistoryStore(db, user.username).get(item_id)
	if item is None:
		raise HTTPException(status_code=404, detail="History item not found")
	return item


@router.delete("/history", status_code=204)
async def clear_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	HistoryStore(db, user.username).clear()
