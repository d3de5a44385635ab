"""
Local persistence on top of a small key-value table.

Each record is one JSON document stored under (scope, key), mirroring what a
browser would keep in localStorage: the solve history, the admin's log of
student login attempts, the cached daily challenge and the user's
preferences.
"""

from __future__ import annotations
import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session

from .models import KeyValueEntry
from .schemas import DailyChallenge, HistoryItem, LoginAttempt, Preferences, Solution
from .state import pwd_context

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"

HISTORY_KEY = "accountingHistory"
LOGIN_ATTEMPTS_KEY = "studentLoginAttempts"
DAILY_CHALLENGE_KEY = "dailyChallengeRecord"
THEME_KEY = "themePreference"
LANGUAGE_KEY = "languagePreference"


class KeyValueStore:
	def __init__(self, db: Session, scope: str) -> None:
		self.db = db
		self.scope = scope

	def _row(self, key: str) -> Optional[KeyValueEntry]:
		return self.db.get(KeyValueEntry, (self.scope, key))

	def get_raw(self, key: str) -> Optional[str]:
		row = self._row(key)
		return row.value_json if row is not None else None

	def get_json(self, key: str) -> Any:
		"""Return the decoded value, or None when absent. Corrupt JSON raises ValueError."""
		raw = self.get_raw(key)
		if raw is None:
			return None
		return json.loads(raw)

	def set_json(self, key: str, value: Any) -> None:
		row = self._row(key)
		encoded = json.dumps(value, ensure_ascii=False)
		if row is None:
			row = KeyValueEntry(scope=self.scope, key=key, value_json=encoded)
		else:
			row.value_json = encoded
		self.db.add(row)
		self.db.commit()

	def delete(self, key: str) -> None:
		row = self._row(key)
		if row is not None:
			self.db.delete(row)
			self.db.commit()


def _now_ms() -> int:
	return int(datetime.now(timezone.utc).timestamp() * 1000)


class HistoryStore:
	"""Solved problems for one user, newest first."""

	def __init__(self, db: Session, username: str) -> None:
		self.kv = KeyValueStore(db, username)

	def items(self) -> List[HistoryItem]:
		try:
			raw = self.kv.get_json(HISTORY_KEY) or []
			return [HistoryItem.model_validate(entry) for entry in raw]
		except (ValueError, TypeError, SchemaError):
			logger.warning("history for %s is unreadable; starting empty", self.kv.scope)
			return []

	def push(self, item: HistoryItem) -> None:
		entries = [item] + self.items()
		self.kv.set_json(HISTORY_KEY, [e.model_dump(by_alias=True) for e in entries])

	def add(self, problem: str, solution: Solution, *, timestamp_ms: Optional[int] = None) -> HistoryItem:
		ts = timestamp_ms if timestamp_ms is not None else _now_ms()
		item_id = datetime.fromtimestamp(ts / 1000, tz=timezone.utc).isoformat(timespec="milliseconds")
		item = HistoryItem(id=item_id, problem=problem, solution=solution, timestamp=ts)
		self.push(item)
		return item

	def get(self, item_id: str) -> Optional[HistoryItem]:
		for item in self.items():
			if item.id == item_id:
				return item
		return None

	def clear(self) -> None:
		self.kv.delete(HISTORY_KEY)


class LoginAttemptLog:
	"""Student login attempts, newest first, capped at `limit` entries."""

	def __init__(self, db: Session, limit: int = 100) -> None:
		self.kv = KeyValueStore(db, GLOBAL_SCOPE)
		self.limit = limit

	def attempts(self) -> List[LoginAttempt]:
		try:
			raw = self.kv.get_json(LOGIN_ATTEMPTS_KEY) or []
			return [LoginAttempt.model_validate(entry) for entry in raw]
		except (ValueError, TypeError, SchemaError):
			logger.warning("login attempt log is unreadable; starting empty")
			return []

	def record(self, username: str, password: str, at: Optional[datetime] = None) -> LoginAttempt:
		when = at or datetime.now(timezone.utc)
		attempt = LoginAttempt(
			username=username,
			password_hash=pwd_context.hash(password),
			timestamp=when.isoformat(),
		)
		entries = ([attempt] + self.attempts())[: self.limit]
		self.kv.set_json(LOGIN_ATTEMPTS_KEY, [e.model_dump(by_alias=True) for e in entries])
		return attempt

	def trim(self) -> int:
		entries = self.attempts()
		if len(entries) <= self.limit:
			return 0
		self.kv.set_json(LOGIN_ATTEMPTS_KEY, [e.model_dump(by_alias=True) for e in entries[: self.limit]])
		return len(entries) - self.limit

	def clear(self) -> None:
		self.kv.delete(LOGIN_ATTEMPTS_KEY)


class DailyChallengeCache:
	"""At most one challenge per calendar day per user."""

	def __init__(self, db: Session, username: str) -> None:
		self.kv = KeyValueStore(db, username)

	def cached(self) -> Optional[DailyChallenge]:
		try:
			raw = self.kv.get_json(DAILY_CHALLENGE_KEY)
			return DailyChallenge.model_validate(raw) if raw is not None else None
		except (ValueError, TypeError, SchemaError):
			# Corrupt record: treat as absent so the caller regenerates
			logger.warning("cached daily challenge for %s is corrupt; regenerating", self.kv.scope)
			return None

	async def current(
		self,
		generate: Callable[[], Awaitable[Dict[str, str]]],
		today: Optional[date] = None,
	) -> DailyChallenge:
		day = (today or datetime.now(timezone.utc).date()).isoformat()
		challenge = self.cached()
		if challenge is not None and challenge.date == day:
			return challenge
		data = await generate()
		challenge = DailyChallenge(date=day, question=data["question"], ideal_answer=data["idealAnswer"])
		self.kv.set_json(DAILY_CHALLENGE_KEY, challenge.model_dump(by_alias=True))
		return challenge


class PreferenceStore:
	def __init__(self, db: Session, username: str, default_language: str = "ar") -> None:
		self.kv = KeyValueStore(db, username)
		self.default_language = default_language

	def load(self) -> Preferences:
		values: Dict[str, Any] = {"language": self.default_language}
		try:
			theme = self.kv.get_json(THEME_KEY)
			language = self.kv.get_json(LANGUAGE_KEY)
		except ValueError:
			logger.warning("preferences for %s are unreadable; using defaults", self.kv.scope)
			theme = language = None
		if theme is not None:
			values["theme"] = theme
		if language is not None:
			values["language"] = language
		try:
			return Preferences(**values)
		except SchemaError:
			return Preferences(language=self.default_language if self.default_language in ("ar", "en") else "ar")

	def save(self, theme: Optional[str] = None, language: Optional[str] = None) -> Preferences:
		if theme is not None:
			self.kv.set_json(THEME_KEY, theme)
		if language is not None:
			self.kv.set_json(LANGUAGE_KEY, language)
		return self.load()
