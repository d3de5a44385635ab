"""
Read-aloud playback.

PlaybackController owns at most one live playback handle and the output
session behind it. Starting a new playback always stops and releases the
previous handle first, so only one stream is ever audible.
"""

from __future__ import annotations
import enum
import logging
import threading
from typing import Awaitable, Callable, List, Optional, Protocol

from .audio import TTS_CHANNELS, TTS_SAMPLE_RATE, PcmAudioBuffer, decode_audio_data, decode_base64
from .errors import FeatureBusyError

logger = logging.getLogger(__name__)


class PlaybackState(str, enum.Enum):
	IDLE = "idle"
	GENERATING = "generating"
	PLAYING = "playing"


class PlaybackHandle(Protocol):
	def stop(self) -> None: ...


class AudioOutput(Protocol):
	def play(self, buffer: PcmAudioBuffer, on_end: Callable[[], None]) -> PlaybackHandle: ...

	def close(self) -> None: ...


class PlaybackController:
	def __init__(
		self,
		output: AudioOutput,
		synthesize: Callable[[str], Awaitable[str]],
		*,
		sample_rate: int = TTS_SAMPLE_RATE,
		channel_count: int = TTS_CHANNELS,
	) -> None:
		self._output = output
		self._synthesize = synthesize
		self._sample_rate = sample_rate
		self._channel_count = channel_count
		self._handle: Optional[PlaybackHandle] = None
		self._state = PlaybackState.IDLE
		self._start_revoked = False
		self._closed = False
		# Bumped on every start; stale end notifications are ignored
		self._session = 0
		self._ended_session = -1
		# End notifications arrive on the audio driver's thread
		self._lock = threading.RLock()

	@property
	def state(self) -> PlaybackState:
		return self._state

	@property
	def is_active(self) -> bool:
		return self._handle is not None

	async def read_aloud(self, text: str) -> bool:
		"""
		Synthesize `text` and play it.

		Returns False when stop() or close() revoked the start while the
		speech was still being generated.

		Raises:
			FeatureBusyError: if a generation is already in flight
		"""
		if self._closed:
			raise RuntimeError("playback controller is closed")
		if self._state == PlaybackState.GENERATING:
			raise FeatureBusyError("speech")
		if self._state == PlaybackState.PLAYING:
			self.stop()

		self._state = PlaybackState.GENERATING
		self._start_revoked = False
		try:
			payload = await self._synthesize(text)
			buffer = decode_audio_data(decode_base64(payload), self._sample_rate, self._channel_count)
		except Exception:
			self._state = PlaybackState.IDLE
			raise

		if self._start_revoked or self._closed:
			logger.info("speech arrived after stop; playback not started")
			self._state = PlaybackState.IDLE
			return False

		with self._lock:
			previous = self._take_handle()
			self._session += 1
			session = self._session
		self._stop_handle(previous)
		try:
			handle = self._output.play(buffer, lambda: self._on_end(session))
		except Exception:
			self._state = PlaybackState.IDLE
			raise
		with self._lock:
			if self._ended_session == session:
				# Finished before play() even returned
				self._state = PlaybackState.IDLE
				return True
			self._handle = handle
			self._state = PlaybackState.PLAYING
		logger.debug("playing %.2fs of speech", buffer.duration)
		return True

	def _on_end(self, session: int) -> None:
		with self._lock:
			if session != self._session:
				return
			self._ended_session = session
			self._handle = None
			if self._state == PlaybackState.PLAYING:
				self._state = PlaybackState.IDLE

	def stop(self) -> None:
		if self._state == PlaybackState.GENERATING:
			# Generation cannot be cancelled; only its playback start is revoked
			self._start_revoked = True
			return
		with self._lock:
			handle = self._take_handle()
			self._state = PlaybackState.IDLE
		self._stop_handle(handle)

	async def toggle(self, text: str) -> bool:
		if self._state == PlaybackState.PLAYING:
			self.stop()
			return False
		return await self.read_aloud(text)

	def close(self) -> None:
		"""Release the live handle and the output session; safe to call twice."""
		self._start_revoked = True
		if self._closed:
			return
		self._closed = True
		try:
			with self._lock:
				handle = self._take_handle()
				if self._state == PlaybackState.PLAYING:
					self._state = PlaybackState.IDLE
			self._stop_handle(handle)
		finally:
			self._output.close()

	def _take_handle(self) -> Optional[PlaybackHandle]:
		handle, self._handle = self._handle, None
		return handle

	# Never called under _lock: stopping a stream can wait on the driver thread
	# that delivers _on_end
	def _stop_handle(self, handle: Optional[PlaybackHandle]) -> None:
		if handle is not None:
			try:
				handle.stop()
			except Exception:
				logger.exception("failed to stop playback handle")


class _StreamHandle:
	def __init__(self, stream) -> None:
		self._stream = stream
		self.stopped = False

	@property
	def active(self) -> bool:
		return not self.stopped and bool(self._stream.active)

	def stop(self) -> None:
		if self.stopped:
			return
		self.stopped = True
		try:
			self._stream.stop()
		finally:
			self._stream.close()


class SoundDeviceOutput:
	"""AudioOutput that opens one sounddevice OutputStream per playback."""

	def __init__(self, device: Optional[str] = None) -> None:
		try:
			import sounddevice  # type: ignore
		except Exception as e:  # pragma: no cover - runtime dependency
			raise RuntimeError("sounddevice is not installed; install the 'audio' extra") from e
		self._sd = sounddevice
		self._device = device
		self._handles: List[_StreamHandle] = []

	def play(self, buffer: PcmAudioBuffer, on_end: Callable[[], None]) -> PlaybackHandle:
		data = buffer.interleaved()
		position = 0
		sd = self._sd

		def callback(outdata, frames, time, status):
			nonlocal position
			chunk = data[position:position + frames]
			outdata[: len(chunk)] = chunk
			if len(chunk) < frames:
				outdata[len(chunk):] = 0
				raise sd.CallbackStop()
			position += frames

		stream = sd.OutputStream(
			samplerate=buffer.sample_rate,
			channels=buffer.channel_count,
			dtype="float32",
			device=self._device,
			callback=callback,
			finished_callback=on_end,
		)
		handle = _StreamHandle(stream)
		# Close streams that already played to the end
		for h in self._handles:
			if not h.active:
				h.stop()
		self._handles = [h for h in self._handles if not h.stopped] + [handle]
		stream.start()
		return handle

	def close(self) -> None:
		for h in self._handles:
			h.stop()
		self._handles = []
