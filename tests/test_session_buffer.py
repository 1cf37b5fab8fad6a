import pytest

from poseplay.errors import SessionSealedError
from poseplay.pose.types import Keypoint, TimedLandmarkRecord, VideoHandle
from poseplay.session_buffer import SessionBuffer

KP = (Keypoint(0.5, 0.5, score=1.0, name="nose"),)


def rec(t):
	return TimedLandmarkRecord(t, KP)


def test_seal_returns_ordered_track():
	buf = SessionBuffer()
	for t in (0.0, 0.1, 0.1, 0.3):
		buf.append(rec(t))
	track = buf.seal(VideoHandle("clip.mp4", 1.0))
	assert track.times == (0.0, 0.1, 0.1, 0.3)
	assert track.video.path == "clip.mp4"
	assert not buf.is_open


def test_out_of_order_append_is_sorted_on_seal():
	buf = SessionBuffer()
	for t in (0.0, 0.4, 0.2):
		buf.append(rec(t))
	assert buf.seal().times == (0.0, 0.2, 0.4)


def test_append_after_seal_fails():
	buf = SessionBuffer()
	buf.append(rec(0.0))
	buf.seal()
	with pytest.raises(SessionSealedError):
		buf.append(rec(0.1))


def test_seal_twice_returns_same_track():
	buf = SessionBuffer()
	buf.append(rec(0.0))
	assert buf.seal() is buf.seal()


def test_rejects_empty_and_negative_records():
	buf = SessionBuffer()
	with pytest.raises(ValueError):
		buf.append(TimedLandmarkRecord(0.0, ()))
	with pytest.raises(ValueError):
		buf.append(rec(-0.1))
	assert len(buf) == 0


def test_reset_reopens_and_discards():
	buf = SessionBuffer()
	buf.append(rec(0.0))
	buf.seal()
	buf.reset()
	assert buf.is_open and len(buf) == 0
	buf.append(rec(0.5))
	assert buf.seal().times == (0.5,)


def test_empty_session_seals_to_empty_track():
	assert SessionBuffer().seal().is_empty
