from __future__ import annotations
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Language = Literal["ar", "en"]
Dialect = Literal["formal", "egyptian"]
Theme = Literal["light", "dark"]
Role = Literal["admin", "student"]
QuestionType = Literal["mcq", "tf"]


class _WireModel(BaseModel):
	# camelCase on the wire, snake_case in Python
	model_config = ConfigDict(populate_by_name=True)


class Solution(_WireModel):
	analysis: str = ""
	application: str = ""
	result: str = ""
	explanation: str = ""


class HistoryItem(_WireModel):
	id: str
	problem: str
	solution: Solution
	timestamp: int


class QuizQuestion(_WireModel):
	id: str
	question: str
	options: List[str]
	correct_answer_index: int = Field(alias="correctAnswerIndex")
	explanation: str = ""
	type: QuestionType = "mcq"


class DailyChallenge(_WireModel):
	date: str
	question: str
	ideal_answer: str = Field(alias="idealAnswer")


class ChallengeFeedback(_WireModel):
	is_correct: bool = Field(alias="isCorrect")
	feedback: str = ""


class LoginAttempt(_WireModel):
	username: str
	password_hash: str = Field(alias="passwordHash")
	timestamp: str


class Preferences(_WireModel):
	theme: Theme = "light"
	language: Language = "ar"


class User(BaseModel):
	username: str
	role: Role


class ImageInput(BaseModel):
	data: bytes
	mime_type: str
	filename: Optional[str] = None
