import json

import pytest

from accounting_tutor.errors import MalformedResponseError
from accounting_tutor.parsing import parse_question_list, parse_structured, strip_code_fence

SOLUTION_FIELDS = {"analysis": "", "application": "", "result": "", "explanation": ""}


def test_fenced_partial_solution_defaults_missing_fields():
	raw = '```json\n{"analysis":"a"}\n```'
	assert parse_structured(raw, SOLUTION_FIELDS) == {
		"analysis": "a",
		"application": "",
		"result": "",
		"explanation": "",
	}


def test_non_json_raises():
	with pytest.raises(MalformedResponseError):
		parse_structured("not json", SOLUTION_FIELDS)


def test_json_array_is_not_an_object():
	with pytest.raises(MalformedResponseError):
		parse_structured("[1, 2]", SOLUTION_FIELDS)


@pytest.mark.parametrize(
	"raw",
	[
		'{"a": 1}',
		'  {"a": 1}  \n',
		'```json\n{"a": 1}\n```',
		'```\n{"a": 1}\n```',
		'```JSON\n{"a": 1}```',
		'```json {"a": 1}```',
	],
)
def test_strip_code_fence_variants(raw):
	assert json.loads(strip_code_fence(raw)) == {"a": 1}


def test_types_are_coerced_to_defaults():
	raw = json.dumps({"isCorrect": "true", "feedback": 42, "extra": "ignored"})
	assert parse_structured(raw, {"isCorrect": False, "feedback": ""}) == {"isCorrect": True, "feedback": "42"}


def test_null_and_unusable_values_fall_back():
	raw = json.dumps({"isCorrect": "maybe", "feedback": None})
	assert parse_structured(raw, {"isCorrect": False, "feedback": ""}) == {"isCorrect": False, "feedback": ""}


def test_question_list_empty_and_missing_container():
	assert parse_question_list('{"questions": []}') == []
	assert parse_question_list('{"items": [{"question": "x"}]}') == []
	assert parse_question_list('{"questions": "nope"}') == []


def test_question_list_parses_and_fills_defaults():
	raw = json.dumps({
		"questions": [
			{
				"id": "1",
				"question": "Assets = Liabilities + ?",
				"options": ["Equity", "Revenue", "Expenses"],
				"correctAnswerIndex": 0,
				"explanation": "The accounting equation.",
				"type": "mcq",
			},
			{
				"question": "Depreciation reduces cash.",
				"options": ["True", "False"],
				"correctAnswerIndex": 1.0,
				"type": "true/false",
			},
		]
	})
	questions = parse_question_list(raw)
	assert [q.id for q in questions] == ["1", "q2"]
	assert questions[1].correct_answer_index == 1
	assert questions[1].type == "mcq"
	assert questions[1].explanation == ""
	assert questions[0].model_dump(by_alias=True)["correctAnswerIndex"] == 0


def test_question_list_drops_items_breaking_answer_index():
	raw = json.dumps({
		"questions": [
			{"id": "a", "question": "q", "options": ["x", "y"], "correctAnswerIndex": 2},
			{"id": "b", "question": "q", "options": [], "correctAnswerIndex": 0},
			{"id": "c", "question": "q", "options": ["x"]},
			"not an object",
			{"id": "d", "question": "q", "options": ["x", "y"], "correctAnswerIndex": 1},
		]
	})
	assert [q.id for q in parse_question_list(raw)] == ["d"]


def test_question_list_non_json_raises():
	with pytest.raises(MalformedResponseError):
		parse_question_list("```json\n{oops\n```")


def test_question_list_drops_blank_questions_and_keeps_ids_unique():
	raw = json.dumps({
		"questions": [
			{"id": "q2", "question": "Cash is an asset.", "options": ["True", "False"], "correctAnswerIndex": 0},
			{"question": "", "options": ["x", "y"], "correctAnswerIndex": 0},
			{"question": "   ", "options": ["x", "y"], "correctAnswerIndex": 1},
			{"question": "Rent is an expense.", "options": ["True", "False"], "correctAnswerIndex": 0},
			{"id": "q2", "question": "Loans are liabilities.", "options": ["True", "False"], "correctAnswerIndex": 0},
		]
	})
	questions = parse_question_list(raw)
	ids = [q.id for q in questions]
	assert [q.question for q in questions] == ["Cash is an asset.", "Rent is an expense.", "Loans are liabilities."]
	assert len(set(ids)) == len(ids)
	assert ids == ["q2", "q4", "q2-2"]
