"""
Response contract parsing for model output.

The upstream model is asked for JSON but its output is not guaranteed to
match the requested schema. Policy: an unparseable body fails the call,
while missing or mistyped fields are filled with defaults one by one.
"""

from __future__ import annotations
import json
import logging
from typing import Any, Dict, List, Mapping, Set

from .errors import MalformedResponseError
from .schemas import QuizQuestion

logger = logging.getLogger(__name__)

_FENCE = "```"


def strip_code_fence(text: str) -> str:
	"""Remove a leading ``` / ```json marker line and a trailing ``` if present."""
	stripped = text.strip()
	if not stripped.startswith(_FENCE):
		return stripped
	body = stripped[len(_FENCE):]
	newline = body.find("\n")
	if newline == -1:
		# Single-line fence: ```json {...}```
		if body.lower().startswith("json"):
			body = body[4:]
	else:
		tag = body[:newline].strip()
		if not tag or tag.isalnum():
			body = body[newline + 1:]
	if body.rstrip().endswith(_FENCE):
		body = body.rstrip()[: -len(_FENCE)]
	return body.strip()


def _load_object(raw_text: str) -> Dict[str, Any]:
	candidate = strip_code_fence(raw_text or "")
	try:
		data = json.loads(candidate)
	except (json.JSONDecodeError, TypeError) as err:
		raise MalformedResponseError(f"model output is not valid JSON: {err}") from err
	if not isinstance(data, dict):
		raise MalformedResponseError(f"expected a JSON object, got {type(data).__name__}")
	return data


def _coerce(value: Any, default: Any) -> Any:
	if value is None:
		return default
	if isinstance(default, bool):
		if isinstance(value, bool):
			return value
		if isinstance(value, str) and value.strip().lower() in ("true", "false"):
			return value.strip().lower() == "true"
		return default
	if isinstance(default, str):
		if isinstance(value, str):
			return value
		if isinstance(value, (dict, list)):
			return json.dumps(value, ensure_ascii=False)
		return str(value)
	if isinstance(default, int):
		if isinstance(value, int) and not isinstance(value, bool):
			return value
		if isinstance(value, float) and value.is_integer():
			return int(value)
		try:
			return int(str(value).strip())
		except ValueError:
			return default
	if isinstance(default, list):
		return value if isinstance(value, list) else default
	return value


def fill_fields(data: Mapping[str, Any], fields: Mapping[str, Any]) -> Dict[str, Any]:
	filled: Dict[str, Any] = {}
	missing: List[str] = []
	for name, default in fields.items():
		if data.get(name) is None:
			missing.append(name)
		filled[name] = _coerce(data.get(name), default)
	if missing:
		logger.warning("model response missing fields %s; using defaults", ", ".join(missing))
	return filled


def parse_structured(raw_text: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
	"""
	Parse a JSON object out of model text and fill the required fields.

	Args:
		raw_text: Raw model output, optionally wrapped in a code fence
		fields: Required field names mapped to their default values

	Returns:
		Dict[str, Any]: Exactly the keys of `fields`

	Raises:
		MalformedResponseError: If the text is not a JSON object
	"""
	return fill_fields(_load_object(raw_text), fields)


_QUESTION_FIELDS: Dict[str, Any] = {
	"id": "",
	"question": "",
	"options": [],
	"correctAnswerIndex": -1,
	"explanation": "",
	"type": "mcq",
}


def parse_question_list(raw_text: str, container: str = "questions") -> List[QuizQuestion]:
	"""Parse quiz questions; an absent container yields an empty list."""
	data = _load_object(raw_text)
	items = data.get(container)
	if not isinstance(items, list):
		return []
	questions: List[QuizQuestion] = []
	seen_ids: Set[str] = set()
	for idx, item in enumerate(items, start=1):
		if not isinstance(item, dict):
			logger.warning("dropping quiz item %d: not an object", idx)
			continue
		q = fill_fields(item, _QUESTION_FIELDS)
		text = q["question"].strip()
		if not text:
			logger.warning("dropping quiz item %d: empty question", idx)
			continue
		options = [str(o).strip() for o in q["options"]]
		answer = q["correctAnswerIndex"]
		if not options or not 0 <= answer < len(options):
			logger.warning("dropping quiz item %d: answer index %s outside %d options", idx, answer, len(options))
			continue
		# Generated ids may clash with ones the model chose
		qid = base_id = q["id"].strip() or f"q{idx}"
		suffix = 1
		while qid in seen_ids:
			suffix += 1
			qid = f"{base_id}-{suffix}"
		seen_ids.add(qid)
		questions.append(
			QuizQuestion(
				id=qid,
				question=text,
				options=options,
				correct_answer_index=answer,
				explanation=q["explanation"].strip(),
				type=q["type"] if q["type"] in ("mcq", "tf") else "mcq",
			)
		)
	return questions
