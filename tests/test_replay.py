import asyncio

import pytest

from poseplay.pose.types import Keypoint, SessionTrack, TimedLandmarkRecord, VideoHandle
from poseplay.replay import LandmarkCell, PlaybackClock, ReplayScheduler, ReplayTicker


def lm(tag):
	return (Keypoint(0.0, 0.0, name=tag),)


def track(*times, video=None):
	return SessionTrack(tuple(TimedLandmarkRecord(t, lm(f"t{t}")) for t in times), video)


def tag(landmarks):
	return landmarks[0].name if landmarks else None


def test_nearest_past_match():
	s = ReplayScheduler(track(0.0, 1.0), speed=1.0, loop=True)
	assert tag(s.current_landmarks(0.0)) == "t0.0"
	assert tag(s.current_landmarks(0.5)) == "t0.0"
	assert tag(s.current_landmarks(1.0)) == "t1.0"


def test_loop_wraps_modulo_duration():
	s = ReplayScheduler(track(0.0, 1.0), loop=True)
	assert tag(s.current_landmarks(1.5)) == "t0.0"
	assert s.cursor.loop_count == 1
	assert tag(s.current_landmarks(2.25)) == "t0.0"
	assert s.cursor.loop_count == 2


def test_loop_wrap_never_lands_before_first_record():
	s = ReplayScheduler(track(0.0, 0.1), loop=True)
	t, _ = s.track_time(1.7)
	assert 0.0 <= t < 0.2
	assert s.current_landmarks(1.7) != ()


@pytest.mark.parametrize("n", [2, 3, 7, 10, 39])
def test_loop_sweep_always_has_landmarks(n):
	s = ReplayScheduler(track(*[i / 10 for i in range(n)]), loop=True)
	for k in range(0, 100):
		assert s.current_landmarks(k / 10) != (), k / 10


def test_no_loop_clamps_to_last():
	s = ReplayScheduler(track(0.0, 1.0), loop=False)
	assert tag(s.current_landmarks(1.5)) == "t1.0"
	assert tag(s.current_landmarks(100.0)) == "t1.0"


def test_speed_scales_elapsed():
	s = ReplayScheduler(track(0.0, 0.5, 1.0, 1.5), speed=2.0, loop=False)
	assert tag(s.current_landmarks(0.3)) == "t0.5"
	assert tag(s.current_landmarks(0.5)) == "t1.0"


def test_rejects_non_positive_speed():
	with pytest.raises(ValueError):
		ReplayScheduler(track(0.0), speed=0.0)


def test_empty_track_never_fails():
	s = ReplayScheduler(SessionTrack(), loop=True)
	assert s.current_landmarks(0.0) == ()
	assert s.current_landmarks(12.3) == ()


def test_before_first_record_is_empty():
	s = ReplayScheduler(track(0.3, 0.6), loop=False)
	assert s.current_landmarks(0.1) == ()
	assert tag(s.current_landmarks(0.3)) == "t0.3"
	assert s.current_landmarks(-5.0) == ()


def test_single_record_track():
	s = ReplayScheduler(track(0.0), loop=True)
	assert tag(s.current_landmarks(0.0)) == "t0.0"
	assert tag(s.current_landmarks(3.0)) == "t0.0"


def test_loops_over_video_duration_when_longer():
	s = ReplayScheduler(track(0.0, 1.0, video=VideoHandle("clip.mp4", 2.0)), loop=True)
	assert tag(s.current_landmarks(1.9)) == "t1.0"
	assert tag(s.current_landmarks(2.1)) == "t0.0"


def test_cursor_follows_forward_and_backward_queries():
	s = ReplayScheduler(track(0.0, 0.1, 0.2, 0.3, 0.4), loop=False)
	for q, expected in [(0.05, 0), (0.15, 1), (0.35, 3), (0.1, 1), (0.4, 4), (0.0, 0)]:
		s.current_landmarks(q)
		assert s.cursor.index == expected
		assert s.cursor.last_elapsed == q


def test_duplicate_timestamps_do_not_crash():
	s = ReplayScheduler(track(0.0, 0.5, 0.5, 1.0), loop=False)
	assert tag(s.current_landmarks(0.7)) == "t0.5"


def test_cell_replaces_whole_value():
	cell = LandmarkCell()
	assert cell.read() == ()
	v1 = cell.publish([Keypoint(1, 1)])
	v2 = cell.publish(lm("a"))
	assert v2 == v1 + 1
	version, value = cell.snapshot()
	assert version == v2 and tag(value) == "a"
	assert isinstance(value, tuple)


def test_clock_extrapolates_while_playing():
	now = [100.0]
	clock = PlaybackClock(now=lambda: now[0])
	clock.report(1.0, playing=True)
	now[0] = 100.5
	assert clock.elapsed() == pytest.approx(1.5)
	clock.report(2.0, playing=False)
	now[0] = 200.0
	assert clock.elapsed() == pytest.approx(2.0)


def test_ticker_publishes_at_fixed_tick():
	s = ReplayScheduler(track(0.0, 1.0), loop=True)
	elapsed = [0.5]
	cell = LandmarkCell()
	ticker = ReplayTicker(s, lambda: elapsed[0], cell, tick_seconds=0.01)

	async def scenario():
		ticker.start()
		await asyncio.sleep(0.05)
		first = cell.snapshot()
		elapsed[0] = 1.2
		await asyncio.sleep(0.05)
		await ticker.stop()
		return first, cell.snapshot()

	(v1, lm1), (v2, lm2) = asyncio.run(scenario())
	assert tag(lm1) == "t0.0"
	assert tag(lm2) == "t1.0"
	assert v2 > v1
	assert not ticker.running


def test_ticker_tick_is_synchronous():
	s = ReplayScheduler(track(0.0, 1.0))
	ticker = ReplayTicker(s, lambda: 1.0)
	assert tag(ticker.tick()) == "t1.0"
	assert tag(ticker.cell.read()) == "t1.0"
