"""
Binary codec for synthesized speech.

Gemini returns speech as base64-wrapped raw PCM: signed 16-bit little-endian
samples, interleaved by channel, with no container header. This module turns
that payload into per-channel float arrays that any output device can play.
Nothing here touches an audio device.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import List

import numpy as np

from .errors import DecodeError

# Output format of the Gemini TTS models
TTS_SAMPLE_RATE = 24000
TTS_CHANNELS = 1

_SAMPLE_WIDTH = 2
_SCALE = 32768.0


@dataclass(frozen=True)
class PcmAudioBuffer:
	"""Decoded audio: one float32 array per channel, all `frame_count` long."""

	sample_rate: int
	channels: List[np.ndarray]

	@property
	def channel_count(self) -> int:
		return len(self.channels)

	@property
	def frame_count(self) -> int:
		return int(self.channels[0].shape[0]) if self.channels else 0

	@property
	def duration(self) -> float:
		return self.frame_count / float(self.sample_rate)

	def channel_data(self, index: int) -> np.ndarray:
		return self.channels[index]

	def interleaved(self) -> np.ndarray:
		"""Return a (frames, channels) array, the layout output streams expect."""
		return np.stack(self.channels, axis=1).astype(np.float32, copy=False)


def decode_base64(value: str) -> bytes:
	try:
		return base64.b64decode(value, validate=True)
	except (ValueError, TypeError) as err:
		# binascii.Error is a ValueError; non-ASCII str also lands here
		raise DecodeError("payload is not valid base64") from err


def decode_audio_data(data: bytes, sample_rate: int, channel_count: int) -> PcmAudioBuffer:
	"""
	Decode interleaved 16-bit little-endian PCM into a PcmAudioBuffer.

	Each sample is scaled by 1/32768 so amplitudes fall in [-1.0, 1.0).
	Bytes that do not complete a whole frame are dropped.

	Raises:
		DecodeError: if channel_count < 1 or fewer than two bytes are given
	"""
	if channel_count < 1:
		raise DecodeError(f"channel_count must be >= 1, got {channel_count}")
	if len(data) < _SAMPLE_WIDTH:
		raise DecodeError("not enough bytes for a single PCM sample")

	frame_count = len(data) // _SAMPLE_WIDTH // channel_count
	usable = frame_count * channel_count
	if usable:
		samples = np.frombuffer(data, dtype="<i2", count=usable)
	else:
		samples = np.zeros(0, dtype=np.int16)
	floats = samples.astype(np.float32) / _SCALE
	frames = floats.reshape(frame_count, channel_count)
	channels = [np.ascontiguousarray(frames[:, c]) for c in range(channel_count)]
	return PcmAudioBuffer(sample_rate=sample_rate, channels=channels)


def decode_speech(payload: str, sample_rate: int = TTS_SAMPLE_RATE, channel_count: int = TTS_CHANNELS) -> PcmAudioBuffer:
	return decode_audio_data(decode_base64(payload), sample_rate, channel_count)
