import asyncio
import base64
import threading

import pytest

from accounting_tutor.errors import DecodeError, FeatureBusyError
from accounting_tutor.playback import PlaybackController, PlaybackState

PCM = base64.b64encode(b"\x00\x01" * 240).decode()


class FakeHandle:
	def __init__(self, name, events):
		self.name = name
		self.events = events
		self.stopped = False

	def stop(self):
		self.stopped = True
		self.events.append(("stop", self.name))


class FakeOutput:
	def __init__(self):
		self.events = []
		self.handles = []
		self.on_end = []
		self.closed = False

	def play(self, buffer, on_end):
		handle = FakeHandle(f"h{len(self.handles) + 1}", self.events)
		self.events.append(("start", handle.name))
		self.handles.append(handle)
		self.on_end.append(on_end)
		return handle

	def close(self):
		self.closed = True

	def live(self):
		return [h for h in self.handles if not h.stopped]


def _synth(payload=PCM):
	async def synthesize(text):
		return payload
	return synthesize


def test_read_aloud_plays_decoded_speech():
	output = FakeOutput()
	controller = PlaybackController(output, _synth())
	assert asyncio.run(controller.read_aloud("hello")) is True
	assert controller.state == PlaybackState.PLAYING
	assert controller.is_active
	assert output.events == [("start", "h1")]


def test_second_play_stops_first_before_starting():
	output = FakeOutput()
	controller = PlaybackController(output, _synth())

	async def run():
		await controller.read_aloud("one")
		await controller.read_aloud("two")

	asyncio.run(run())
	assert output.events == [("start", "h1"), ("stop", "h1"), ("start", "h2")]
	assert [h.name for h in output.live()] == ["h2"]
	assert controller.state == PlaybackState.PLAYING


def test_stop_and_natural_end_return_to_idle():
	output = FakeOutput()
	controller = PlaybackController(output, _synth())
	asyncio.run(controller.read_aloud("one"))
	controller.stop()
	assert controller.state == PlaybackState.IDLE
	assert output.handles[0].stopped

	asyncio.run(controller.read_aloud("two"))
	output.on_end[1]()
	assert controller.state == PlaybackState.IDLE
	assert not controller.is_active


def test_stale_end_notification_is_ignored():
	output = FakeOutput()
	controller = PlaybackController(output, _synth())

	async def run():
		await controller.read_aloud("one")
		await controller.read_aloud("two")

	asyncio.run(run())
	# The first stream reports its end after being superseded
	output.on_end[0]()
	assert controller.state == PlaybackState.PLAYING
	assert controller.is_active


def test_stop_while_generating_revokes_the_start():
	output = FakeOutput()
	release = None

	async def slow_synth(text):
		await release.wait()
		return PCM

	controller = PlaybackController(output, slow_synth)

	async def run():
		nonlocal release
		release = asyncio.Event()
		task = asyncio.create_task(controller.read_aloud("hello"))
		await asyncio.sleep(0)
		assert controller.state == PlaybackState.GENERATING
		controller.stop()
		assert controller.state == PlaybackState.GENERATING
		with pytest.raises(FeatureBusyError):
			await controller.read_aloud("again")
		release.set()
		return await task

	assert asyncio.run(run()) is False
	assert controller.state == PlaybackState.IDLE
	assert output.handles == []


def test_failed_generation_returns_to_idle():
	async def failing(text):
		raise RuntimeError("upstream down")

	controller = PlaybackController(FakeOutput(), failing)
	with pytest.raises(RuntimeError):
		asyncio.run(controller.read_aloud("hello"))
	assert controller.state == PlaybackState.IDLE

	bad = PlaybackController(FakeOutput(), _synth(base64.b64encode(b"\x01").decode()))
	with pytest.raises(DecodeError):
		asyncio.run(bad.read_aloud("hello"))
	assert bad.state == PlaybackState.IDLE


def test_toggle_stops_when_playing():
	output = FakeOutput()
	controller = PlaybackController(output, _synth())
	assert asyncio.run(controller.toggle("hi")) is True
	assert asyncio.run(controller.toggle("hi")) is False
	assert controller.state == PlaybackState.IDLE
	assert output.handles[0].stopped


def test_close_releases_handle_and_output():
	output = FakeOutput()
	controller = PlaybackController(output, _synth())
	asyncio.run(controller.read_aloud("hi"))
	controller.close()
	controller.close()
	assert output.closed
	assert output.live() == []
	assert controller.state == PlaybackState.IDLE
	with pytest.raises(RuntimeError):
		asyncio.run(controller.read_aloud("again"))


class DriverThreadOutput(FakeOutput):
	"""Stopping a handle waits for a driver thread that reports the end."""

	def play(self, buffer, on_end):
		handle = super().play(buffer, on_end)
		handle.driver_threads = []

		def stop():
			FakeHandle.stop(handle)
			driver = threading.Thread(target=on_end)
			handle.driver_threads.append(driver)
			driver.start()
			driver.join(timeout=2)

		handle.stop = stop
		return handle


@pytest.mark.parametrize("action", ["stop", "replay", "close"])
def test_end_notification_from_driver_thread_does_not_block_stop(action):
	output = DriverThreadOutput()
	controller = PlaybackController(output, _synth())
	asyncio.run(controller.read_aloud("a"))

	if action == "stop":
		controller.stop()
	elif action == "replay":
		asyncio.run(controller.read_aloud("b"))
	else:
		controller.close()

	driver = output.handles[0].driver_threads[0]
	assert not driver.is_alive()
	if action == "replay":
		assert controller.state == PlaybackState.PLAYING
	else:
		assert controller.state == PlaybackState.IDLE
