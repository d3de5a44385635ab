import os

# Settings are read at import time
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_USERNAME", "Teacher")
os.environ.setdefault("ADMIN_PASSWORD", "s3cret")
os.environ.setdefault("DEFAULT_LANGUAGE", "en")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from accounting_tutor import models  # noqa: F401  registers tables
from accounting_tutor.db import Base


class FakeGemini:
	"""Stands in for GeminiClient; replies are queued per test."""

	def __init__(self):
		self.replies = []
		self.calls = []

	def queue(self, *replies):
		self.replies.extend(replies)

	def _next(self):
		reply = self.replies.pop(0)
		if isinstance(reply, BaseException):
			raise reply
		return reply

	async def generate(self, prompt, *, model=None, response_schema=None, thinking_budget=None):
		self.calls.append({"kind": "text", "prompt": prompt, "model": model, "schema": response_schema})
		return self._next()

	async def generate_multimodal(self, parts, *, role="user", model=None, response_schema=None, thinking_budget=None, fallback_prompt=None):
		self.calls.append({"kind": "multimodal", "parts": parts, "model": model, "schema": response_schema})
		return self._next()

	async def generate_speech(self, text, *, voice=None, model=None):
		self.calls.append({"kind": "speech", "prompt": text, "model": model})
		return self._next()

	async def aclose(self):
		pass


@pytest.fixture
def engine():
	eng = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(bind=eng)
	yield eng
	eng.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
	session = session_factory()
	yield session
	session.close()


@pytest.fixture
def fake_gemini():
	return FakeGemini()
