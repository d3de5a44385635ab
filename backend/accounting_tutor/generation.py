"""
Generation client: one coroutine per tutor feature.

Every feature builds its prompt, calls Gemini with the feature's model and
output mode, and runs the raw response through the contract parser. This is
the single boundary where failures are caught: whatever goes wrong below
(transport, auth, upstream, parsing, decoding) leaves here as one
GenerationError carrying the feature name.
"""

from __future__ import annotations
import base64
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from . import prompts
from .audio import decode_base64
from .errors import GenerationError, ValidationError
from .gemini_client import GeminiClient
from .parsing import parse_question_list, parse_structured
from .schemas import ChallengeFeedback, ImageInput, QuizQuestion, Solution
from .settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOLUTION_FIELDS: Dict[str, Any] = {"analysis": "", "application": "", "result": "", "explanation": ""}
DAILY_CHALLENGE_FIELDS: Dict[str, Any] = {"question": "", "idealAnswer": ""}
FEEDBACK_FIELDS: Dict[str, Any] = {"isCorrect": False, "feedback": ""}


def require_text(value: Optional[str], field: str) -> str:
	"""Caller-side check: reject empty or whitespace-only input before dispatch."""
	if value is None or not value.strip():
		raise ValidationError(field)
	return value.strip()


def generation_boundary(feature: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
	def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
		@functools.wraps(func)
		async def wrapper(*args: Any, **kwargs: Any) -> T:
			try:
				return await func(*args, **kwargs)
			except GenerationError:
				raise
			except Exception as err:
				logger.exception("%s generation failed", feature)
				raise GenerationError(feature, err) from err
		return wrapper
	return decorator


def _image_part(image: ImageInput) -> Dict[str, Any]:
	return {
		"inline_data": {
			"mime_type": image.mime_type,
			"data": base64.b64encode(image.data).decode("ascii"),
		}
	}


@generation_boundary("solve")
async def solve_problem(
	client: GeminiClient,
	problem_text: str,
	dialect: str = "formal",
	image: Optional[ImageInput] = None,
) -> Solution:
	parts: List[Dict[str, Any]] = [{"text": prompts.build_solve_prompt(problem_text, dialect)}]
	if image is not None:
		# The image goes ahead of the text part
		parts.insert(0, _image_part(image))
	raw = await client.generate_multimodal(
		parts,
		model=settings.gemini_model_pro,
		response_schema=prompts.SOLUTION_SCHEMA,
	)
	return Solution(**parse_structured(raw, SOLUTION_FIELDS))


@generation_boundary("lesson")
async def generate_lesson(client: GeminiClient, topic: str, lang: str) -> str:
	return await client.generate(prompts.build_lesson_prompt(topic, lang), model=settings.gemini_model)


@generation_boundary("quiz")
async def generate_quiz(client: GeminiClient, topic: str, lang: str) -> List[QuizQuestion]:
	raw = await client.generate(
		prompts.build_quiz_prompt(topic, lang),
		model=settings.gemini_model_pro,
		response_schema=prompts.QUIZ_SCHEMA,
	)
	questions = parse_question_list(raw)
	if not questions:
		raise GenerationError("quiz", RuntimeError("model returned no usable questions"))
	return questions


@generation_boundary("summary")
async def generate_summary(client: GeminiClient, topic: str, lang: str) -> str:
	return await client.generate(prompts.build_summary_prompt(topic, lang), model=settings.gemini_model_pro)


@generation_boundary("formula")
async def explain_formula(client: GeminiClient, formula: str, lang: str) -> str:
	return await client.generate(prompts.build_formula_prompt(formula, lang), model=settings.gemini_model_pro)


@generation_boundary("daily_challenge")
async def generate_daily_challenge(client: GeminiClient, lang: str) -> Dict[str, str]:
	raw = await client.generate(
		prompts.build_daily_challenge_prompt(lang),
		model=settings.gemini_model,
		response_schema=prompts.DAILY_CHALLENGE_SCHEMA,
	)
	data = parse_structured(raw, DAILY_CHALLENGE_FIELDS)
	if not data["question"].strip():
		raise GenerationError("daily_challenge", RuntimeError("model returned an empty question"))
	return data


@generation_boundary("challenge_evaluation")
async def evaluate_challenge_answer(client: GeminiClient, challenge: str, answer: str, lang: str) -> ChallengeFeedback:
	raw = await client.generate(
		prompts.build_challenge_evaluation_prompt(challenge, answer, lang),
		model=settings.gemini_model,
		response_schema=prompts.CHALLENGE_FEEDBACK_SCHEMA,
	)
	data = parse_structured(raw, FEEDBACK_FIELDS)
	return ChallengeFeedback(is_correct=data["isCorrect"], feedback=data["feedback"])


@generation_boundary("speech")
async def generate_speech(client: GeminiClient, text: str) -> str:
	payload = await client.generate_speech(prompts.build_speech_prompt(text), model=settings.gemini_model_tts)
	# Fail here rather than at playback time
	decode_base64(payload)
	return payload
