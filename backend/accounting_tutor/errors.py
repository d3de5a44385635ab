from __future__ import annotations
from typing import Optional


class TutorError(Exception):
	"""Base class for every error raised by the tutor core."""


class DecodeError(TutorError):
	"""Malformed base64 or PCM payload."""


class MalformedResponseError(TutorError):
	"""Model text was expected to be JSON but could not be parsed."""


class ValidationError(TutorError):
	"""User input rejected before anything is dispatched."""

	def __init__(self, field: str, message: Optional[str] = None) -> None:
		self.field = field
		super().__init__(message or f"{field} is required")


class FeatureBusyError(TutorError):
	"""A trigger fired while the same feature was still in flight."""

	def __init__(self, feature: str) -> None:
		self.feature = feature
		super().__init__(f"{feature} is already in progress")


class GenerationError(TutorError):
	"""Uniform failure of one generation feature call.

	`cause` keeps the underlying exception for logging; it is never shown to
	the end user.
	"""

	def __init__(self, feature: str, cause: Optional[BaseException] = None) -> None:
		self.feature = feature
		self.cause = cause
		super().__init__(f"{feature} generation failed")


ERROR_MESSAGES = {
	"ar": "حدث خطأ ما. يرجى المحاولة مرة أخرى.",
	"en": "Something went wrong. Please try again.",
}


def user_message(lang: Optional[str]) -> str:
	return ERROR_MESSAGES.get(lang or "", ERROR_MESSAGES["en"])
