import base64
import struct

import numpy as np
import pytest

from accounting_tutor.audio import (
	TTS_CHANNELS,
	TTS_SAMPLE_RATE,
	decode_audio_data,
	decode_base64,
	decode_speech,
)
from accounting_tutor.errors import DecodeError


def _pcm(*samples):
	return struct.pack("<%dh" % len(samples), *samples)


def test_decode_base64_roundtrips_bytes():
	raw = bytes(range(10))
	assert decode_base64(base64.b64encode(raw).decode()) == raw


@pytest.mark.parametrize("bad", ["not base64!!", "abc", "ééé"])
def test_decode_base64_rejects_invalid(bad):
	with pytest.raises(DecodeError):
		decode_base64(bad)


@pytest.mark.parametrize("byte_length", [2, 4, 10, 4800])
def test_mono_frame_count_is_half_the_bytes(byte_length):
	payload = base64.b64encode(bytes(byte_length)).decode()
	buf = decode_audio_data(decode_base64(payload), TTS_SAMPLE_RATE, TTS_CHANNELS)
	assert buf.frame_count == byte_length // 2
	assert buf.channel_count == 1
	assert buf.sample_rate == 24000


def test_samples_are_scaled_by_32768():
	buf = decode_audio_data(_pcm(0, 16384, -32768, 32767), 24000, 1)
	data = buf.channel_data(0)
	assert data.dtype == np.float32
	assert data[0] == 0.0
	assert data[1] == 0.5
	assert data[2] == -1.0
	assert data[3] == pytest.approx(32767 / 32768.0)
	assert np.all(data < 1.0)


def test_trailing_odd_byte_is_dropped():
	buf = decode_audio_data(_pcm(100, 200) + b"\x7f", 24000, 1)
	assert buf.frame_count == 2
	assert buf.channel_data(0)[1] == pytest.approx(200 / 32768.0)


def test_stereo_is_deinterleaved_and_partial_frame_dropped():
	# L R L R L (last left sample has no right partner)
	buf = decode_audio_data(_pcm(1, -1, 2, -2, 3), 48000, 2)
	assert buf.frame_count == 2
	assert list(buf.channel_data(0) * 32768) == [1, 2]
	assert list(buf.channel_data(1) * 32768) == [-1, -2]
	assert buf.interleaved().shape == (2, 2)


def test_too_few_bytes_for_one_frame_gives_empty_buffer():
	buf = decode_audio_data(_pcm(5), 24000, 2)
	assert buf.frame_count == 0
	assert buf.duration == 0.0


def test_rejects_short_input_and_bad_channel_count():
	with pytest.raises(DecodeError):
		decode_audio_data(b"\x01", 24000, 1)
	with pytest.raises(DecodeError):
		decode_audio_data(b"", 24000, 1)
	with pytest.raises(DecodeError):
		decode_audio_data(_pcm(1, 2), 24000, 0)


def test_decode_speech_duration():
	payload = base64.b64encode(bytes(48000)).decode()
	assert decode_speech(payload).duration == pytest.approx(1.0)
