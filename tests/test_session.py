import asyncio
import threading

import pytest

from conftest import FakeAdapter, FakeExtractor, full_skeleton
from poseplay.capture import CaptureDevice, FileCaptureDevice
from poseplay.config import AppConfig, CaptureConfig, SamplingConfig
from poseplay.errors import CaptureError, LoadError
from poseplay.pose.types import VideoHandle
from poseplay.sampler import FrameSampler
from poseplay.session import MSG_LOAD_FAILED, MSG_RECORD_FAILED, SessionController


def make_controller(tmp_path, adapter=None, fps=10, fail=(), capture=None):
	cfg = AppConfig(
		sampling=SamplingConfig(fps=fps, frames_dir=str(tmp_path / "frames")),
		capture=CaptureConfig(backend="file", record_seconds=1.0),
	)
	sampler = FrameSampler(
		cfg.sampling.frames_dir, fps=fps, extractor=FakeExtractor(fps=fps, fail=fail),
		fallback_duration=cfg.capture.record_seconds,
	)
	return SessionController(cfg, adapter or FakeAdapter(), capture or FileCaptureDevice(), sampler=sampler)


def test_load_failure_is_non_fatal(tmp_path):
	ctl = make_controller(tmp_path, FakeAdapter(fail_load=True))

	async def scenario():
		ok = await ctl.load_model()
		with pytest.raises(LoadError):
			await ctl.process(VideoHandle("clip.mp4", 1.0))
		return ok

	assert asyncio.run(scenario()) is False
	assert ctl.model_available is False
	assert ctl.status.message == MSG_LOAD_FAILED


def test_process_builds_track_and_scheduler(tmp_path, clip):
	ctl = make_controller(tmp_path, FakeAdapter(script=lambda i: [] if i == 5 else full_skeleton()))
	updates = []
	ctl.add_listener(updates.append)

	async def scenario():
		await ctl.load_model()
		track = await ctl.process(VideoHandle(str(clip), 1.0))
		lm = ctl.current_landmarks(0.55)
		await ctl.close()
		return track, lm

	track, lm = asyncio.run(scenario())
	assert len(track) == 9
	assert track.video.path == str(clip)
	assert len(lm) == 33
	assert ctl.last_result.total_frames == 10
	assert [u.percent_complete for u in updates if u.message.startswith("Processing")][-1] == 100
	assert updates[-1].message == "Analysis complete!"
	assert ctl.adapter.release_calls == 1


def test_process_file_uses_configured_duration_when_unknown(tmp_path, clip):
	ctl = make_controller(tmp_path)

	async def scenario():
		await ctl.load_model()
		return await ctl.process_file(str(clip))

	track = asyncio.run(scenario())
	# ffprobe cannot read the stub clip; nominal record length (1s @ 10fps) applies
	assert ctl.last_result.total_frames == 10
	assert len(track) == 10


def test_consecutive_sessions_do_not_mix(tmp_path, clip):
	ctl = make_controller(tmp_path)
	frames_dir = tmp_path / "frames"

	async def scenario():
		await ctl.load_model()
		tracks = []
		for duration in (1.0, 0.5, 0.3):
			tracks.append(await ctl.process(VideoHandle(str(clip), duration)))
			assert len(list(frames_dir.iterdir())) == len(tracks[-1])
		return tracks

	tracks = asyncio.run(scenario())
	assert [len(t) for t in tracks] == [10, 5, 3]
	assert tracks[-1].times == pytest.approx((0.0, 0.1, 0.2))


def test_new_session_cancels_in_flight_pass(tmp_path, clip):
	gate = threading.Event()
	started = threading.Event()

	def script(i):
		if i == 2:
			started.set()
			gate.wait(timeout=5)
		return full_skeleton()

	ctl = make_controller(tmp_path, FakeAdapter(script=script))

	async def scenario():
		await ctl.load_model()
		first = asyncio.ensure_future(ctl.process(VideoHandle(str(clip), 1.0)))
		await asyncio.to_thread(started.wait, 5)
		assert ctl.in_flight
		ctl.adapter.script = lambda i: full_skeleton()
		second = asyncio.ensure_future(ctl.process(VideoHandle(str(clip), 0.4)))
		await asyncio.sleep(0.05)
		gate.set()
		return await first, await second

	first, second = asyncio.run(scenario())
	assert first is None
	assert second.times == pytest.approx((0.0, 0.1, 0.2, 0.3))
	assert ctl.track is second


def test_record_with_file_capture_fails_cleanly(tmp_path):
	ctl = make_controller(tmp_path)

	async def scenario():
		await ctl.load_model()
		with pytest.raises(CaptureError):
			await ctl.record_and_process(1.0)

	asyncio.run(scenario())
	assert ctl.status.message == MSG_RECORD_FAILED
	assert ctl.track is None


def test_dismiss_discards_track_and_artifacts(tmp_path, clip):
	ctl = make_controller(tmp_path)

	async def scenario():
		await ctl.load_model()
		await ctl.process(VideoHandle(str(clip), 0.5))
		await ctl.dismiss()

	asyncio.run(scenario())
	assert ctl.track is None
	assert ctl.current_landmarks(0.1) == ()
	assert ctl.cell.read() == ()
	assert not (tmp_path / "frames").exists()


def test_empty_session_replays_nothing(tmp_path, clip):
	ctl = make_controller(tmp_path, FakeAdapter(script=lambda i: []))

	async def scenario():
		await ctl.load_model()
		return await ctl.process(VideoHandle(str(clip), 0.5))

	track = asyncio.run(scenario())
	assert track.is_empty
	assert ctl.current_landmarks(0.2) == ()
	assert ctl.describe()["track"]["records"] == 0


class StubCamera(CaptureDevice):
	"""Writes a numbered stub clip per recording."""

	def __init__(self, output_dir):
		self.output_dir = output_dir
		self.count = 0

	def name(self) -> str:
		return "stub"

	def record(self, duration_sec: float) -> VideoHandle:
		self.output_dir.mkdir(parents=True, exist_ok=True)
		self.count += 1
		out = self.output_dir / f"clip_{self.count}.mp4"
		out.write_bytes(b"\x00\x00\x00\x18ftypmp42")
		return VideoHandle(str(out), duration_sec)


def test_only_the_latest_recording_is_kept(tmp_path):
	rec_dir = tmp_path / "recordings"
	ctl = make_controller(tmp_path, capture=StubCamera(rec_dir))

	async def scenario():
		await ctl.load_model()
		for _ in range(3):
			await ctl.record_and_process(0.3)
		kept = sorted(p.name for p in rec_dir.iterdir())
		await ctl.dismiss()
		return kept

	kept = asyncio.run(scenario())
	assert kept == ["clip_3.mp4"]
	assert list(rec_dir.iterdir()) == []


def test_caller_supplied_clips_are_left_alone(tmp_path, clip):
	rec_dir = tmp_path / "recordings"
	ctl = make_controller(tmp_path, capture=StubCamera(rec_dir))

	async def scenario():
		await ctl.load_model()
		await ctl.record_and_process(0.3)
		await ctl.process(VideoHandle(str(clip), 0.3))
		await ctl.close()

	asyncio.run(scenario())
	assert clip.exists()
	assert list(rec_dir.iterdir()) == []
