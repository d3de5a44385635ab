from __future__ import annotations
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol, Set, Tuple

from passlib.context import CryptContext

from . import generation
from .errors import FeatureBusyError
from .gemini_client import GeminiClient
from .playback import PlaybackController, SoundDeviceOutput
from .settings import Settings

logger = logging.getLogger(__name__)

logging.getLogger("passlib").setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class BusyGate:
	"""One in-flight call per (owner, feature); checked before dispatch."""

	def __init__(self) -> None:
		self._busy: Set[Tuple[str, str]] = set()

	def is_busy(self, owner: str, feature: str) -> bool:
		return (owner, feature) in self._busy

	@contextmanager
	def hold(self, owner: str, feature: str) -> Iterator[None]:
		key = (owner, feature)
		if key in self._busy:
			raise FeatureBusyError(feature)
		self._busy.add(key)
		try:
			yield
		finally:
			self._busy.discard(key)


class AuthStrategy(Protocol):
	def verify(self, username: str, password: str) -> Optional[str]: ...


class ConfiguredAdminStrategy:
	"""
	Admin is the configured username (case-insensitive) with the configured
	password. Any other non-empty username with a non-empty password logs in
	as a student.
	"""

	def __init__(self, admin_username: str, admin_password: Optional[str]) -> None:
		self.admin_username = admin_username.strip().lower()
		# No admin password configured means nobody can log in as admin
		self._admin_hash = pwd_context.hash(admin_password) if admin_password else None

	def is_admin_name(self, username: str) -> bool:
		return username.strip().lower() == self.admin_username

	def verify(self, username: str, password: str) -> Optional[str]:
		name = username.strip()
		if not name or not password:
			return None
		if self.is_admin_name(name):
			if self._admin_hash and pwd_context.verify(password, self._admin_hash):
				return "admin"
			return None
		return "student"


@dataclass
class AppState:
	settings: Settings
	auth: AuthStrategy
	gate: BusyGate = field(default_factory=BusyGate)
	playback: Optional[PlaybackController] = None

	def close(self) -> None:
		if self.playback is not None:
			self.playback.close()


def build_app_state(settings: Settings) -> AppState:
	state = AppState(
		settings=settings,
		auth=ConfiguredAdminStrategy(settings.admin_username, settings.admin_password),
	)
	if settings.audio_output_enabled:
		state.playback = _build_playback(settings)
	return state


def _build_playback(settings: Settings) -> PlaybackController:
	async def synthesize(text: str) -> str:
		client = GeminiClient()
		try:
			return await generation.generate_speech(client, text)
		finally:
			await client.aclose()

	logger.info("server-side audio output enabled (device=%s)", settings.audio_output_device or "default")
	return PlaybackController(SoundDeviceOutput(settings.audio_output_device), synthesize)

