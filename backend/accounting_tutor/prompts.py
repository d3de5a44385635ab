"""
Prompt construction for every tutor feature.

All builders are pure: same inputs, same prompt. Emptiness of the user's
text is checked by the caller before anything reaches this module.
"""

from __future__ import annotations
from typing import Any, Dict

from .schemas import Solution

BOOK = '"The Comprehensive Book of Accounting"'

SOLVER_PERSONA = (
	'You are "the Smart Accounting Assistant", an accounting expert trained in depth on '
	f"{BOOK}. Your knowledge is precise, and you are very good at reading photos of "
	"complex accounting problems, including handwritten ones. Your job is to give clear, "
	'detailed solutions that focus on the "why" and the "how".'
)

# Two variants per directive: formal/standard first, colloquial/simple second.
SOLVE_DIALECTS: Dict[str, str] = {
	"formal": "Your answer must be written in clear, simple Modern Standard Arabic.",
	"egyptian": (
		"Your answer must be written in colloquial Egyptian Arabic, simple and clear, "
		"as if you were explaining it to a classmate."
	),
}

LESSON_LANGUAGES: Dict[str, str] = {
	"en": "Explain the lesson in clear, simple, and engaging English suitable for a university student.",
	"ar": "Explain the lesson in colloquial Egyptian Arabic, in a simple and enjoyable way suitable for a university student.",
}

QUIZ_LANGUAGES: Dict[str, str] = {
	"en": "Formulate questions, answers, and explanations in English.",
	"ar": (
		"Questions, answers and explanations must be in Arabic "
		"(with a light, easy-to-follow Egyptian colloquial touch where possible)."
	),
}

SUMMARY_LANGUAGES: Dict[str, str] = {
	"en": "The summary must be in clear and simple English, suitable for a university student preparing for an exam.",
	"ar": (
		"The summary must be entirely in colloquial Egyptian Arabic, in a simple, direct style "
		"for a university student revising the night before the exam."
	),
}

FORMULA_LANGUAGES: Dict[str, str] = {
	"en": "The explanation must be in simple, clear, and direct English.",
	"ar": "The explanation must be in colloquial Egyptian Arabic, simple, direct and very clear.",
}

CHALLENGE_LANGUAGES: Dict[str, str] = {
	"en": "The question and answer must be in English.",
	"ar": "The question and answer must be in Arabic.",
}

FEEDBACK_LANGUAGES: Dict[str, str] = {
	"en": "Provide constructive and concise feedback in English.",
	"ar": "Provide a constructive, concise evaluation and feedback in colloquial Egyptian Arabic.",
}

SECTION_LABELS: Dict[str, Dict[str, str]] = {
	"en": {
		"analysis": "Problem analysis",
		"application": "Practical application",
		"result": "Final result",
		"explanation": "Explanation",
	},
	"ar": {
		"analysis": "تحليل المسألة",
		"application": "التطبيق العملي",
		"result": "النتيجة النهائية",
		"explanation": "الشرح والتفسير",
	},
}

QUIZ_SIZE = 5


def _pick(variants: Dict[str, str], key: str) -> str:
	# Unknown keys fall back to the first variant
	return variants.get(key, next(iter(variants.values())))


def build_solve_prompt(problem_text: str, dialect: str = "formal") -> str:
	return (
		f"{SOLVER_PERSONA}\n"
		f"{_pick(SOLVE_DIALECTS, dialect)}\n\n"
		"The student's accounting problem:\n"
		"---\n"
		f"{problem_text}\n"
		"---\n\n"
		"Give a solution in four steps: problem analysis, practical application, final result, "
		"and explanation. Return ONLY a JSON object with the string fields "
		"analysis, application, result and explanation."
	)


def build_lesson_prompt(topic: str, lang: str) -> str:
	return (
		f"You are an expert accounting teacher whose knowledge comes from {BOOK}. "
		f'Your task is to teach the following topic: "{topic}".\n'
		f"{_pick(LESSON_LANGUAGES, lang)}\n"
		"Make the explanation detailed and use simple practical examples to clarify the hard points. "
		"Organize the lesson in clear paragraphs."
	)


def build_quiz_prompt(topic: str, lang: str, count: int = QUIZ_SIZE) -> str:
	return (
		f"You are an expert accounting examiner and rely on {BOOK}. "
		f'Generate {count} questions about the following topic: "{topic}".\n'
		f"{_pick(QUIZ_LANGUAGES, lang)}\n"
		"The questions must mix multiple choice (mcq) and true/false (tf). "
		"For every question give a short, useful explanation of the correct answer.\n"
		"Return ONLY a JSON object with a `questions` array; each item has id, question, "
		"options (array of strings), correctAnswerIndex (0-based index into options), "
		"explanation and type (\"mcq\" or \"tf\")."
	)


def build_summary_prompt(topic: str, lang: str) -> str:
	return (
		"You are an expert accounting teacher who specializes in simplifying complex concepts; "
		f"your knowledge is built on {BOOK}.\n"
		f'Your task is to write a long, detailed and comprehensive summary of the topic: "{topic}".\n'
		f"{_pick(SUMMARY_LANGUAGES, lang)}\n"
		"The summary must fully cover every main aspect of the topic. "
		"Organize it with clear sub-headings and bullet points so it is easy to study. "
		"Make it long enough to serve as the student's only reference for final revision."
	)


def build_formula_prompt(formula: str, lang: str) -> str:
	return (
		f'You are "the Smart Accounting Assistant", an accounting expert trained on {BOOK}.\n'
		f'Your task is to explain the following accounting law or formula: "{formula}".\n'
		f"{_pick(FORMULA_LANGUAGES, lang)}\n"
		"The explanation must include:\n"
		"1. The formula itself, written clearly at the start.\n"
		"2. A simple explanation of every element of the formula.\n"
		"3. A worked numeric example applying the formula step by step.\n"
		"4. Why the formula matters and how an accountant uses it in practice."
	)


def build_daily_challenge_prompt(lang: str) -> str:
	return (
		'You are an expert accounting teacher. Create a unique and fun "daily challenge" '
		"for a university student.\n"
		"The challenge is a short problem or a conceptual question that can be answered in a few sentences.\n"
		f"{_pick(CHALLENGE_LANGUAGES, lang)}\n"
		"Provide the question and a concise ideal answer for grading. "
		"Return ONLY a JSON object with the string fields question and idealAnswer."
	)


def build_challenge_evaluation_prompt(challenge: str, answer: str, lang: str) -> str:
	return (
		"You are an expert accounting teacher. The student was given this challenge:\n"
		"---\n"
		f'Challenge: "{challenge}"\n'
		"---\n"
		f'Student answer: "{answer}"\n'
		"---\n"
		"Your task is to evaluate the student's answer. Is it generally correct?\n"
		f"{_pick(FEEDBACK_LANGUAGES, lang)}\n"
		"Be encouraging in your feedback. Return ONLY a JSON object with the fields "
		"isCorrect (boolean) and feedback (string)."
	)


def build_speech_prompt(text: str) -> str:
	return f"Say clearly: {text}"


def build_read_aloud_text(solution: Solution, lang: str) -> str:
	labels = SECTION_LABELS.get(lang, SECTION_LABELS["en"])
	return "\n".join(
		f"{labels[name]}: {getattr(solution, name)}."
		for name in ("analysis", "application", "result", "explanation")
	)


# Structured-output schemas (Gemini OpenAPI subset)

SOLUTION_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"analysis": {"type": "STRING"},
		"application": {"type": "STRING"},
		"result": {"type": "STRING"},
		"explanation": {"type": "STRING"},
	},
	"required": ["analysis", "application", "result", "explanation"],
}

QUIZ_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"questions": {
			"type": "ARRAY",
			"items": {
				"type": "OBJECT",
				"properties": {
					"id": {"type": "STRING"},
					"question": {"type": "STRING"},
					"options": {"type": "ARRAY", "items": {"type": "STRING"}},
					"correctAnswerIndex": {"type": "INTEGER"},
					"explanation": {"type": "STRING"},
					"type": {"type": "STRING", "enum": ["mcq", "tf"]},
				},
				"required": ["id", "question", "options", "correctAnswerIndex", "explanation", "type"],
			},
		}
	},
	"required": ["questions"],
}

DAILY_CHALLENGE_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"question": {"type": "STRING", "description": "The daily challenge question for the student."},
		"idealAnswer": {"type": "STRING", "description": "The ideal, correct answer to the question for evaluation."},
	},
	"required": ["question", "idealAnswer"],
}

CHALLENGE_FEEDBACK_SCHEMA: Dict[str, Any] = {
	"type": "OBJECT",
	"properties": {
		"isCorrect": {"type": "BOOLEAN", "description": "Whether the student's answer is generally correct."},
		"feedback": {"type": "STRING", "description": "Concise and helpful feedback for the student."},
	},
	"required": ["isCorrect", "feedback"],
}
