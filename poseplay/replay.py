from __future__ import annotations

import asyncio
import bisect
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from poseplay.pose.types import EMPTY_LANDMARKS, LandmarkSet, SessionTrack


@dataclass(frozen=True)
class PlaybackCursor:
	index: int = -1  # -1: before the first record
	loop_count: int = 0
	last_elapsed: Optional[float] = None


class ReplayScheduler:
	"""
	Answers "which landmark set is current at playback time t" for a sealed track.

	Nearest-past match on elapsed * speed. Past the last record, a looping replay wraps
	modulo track.duration; a non-looping one holds the last record. The playback clock
	belongs to the video player, which polls this at its own cadence.
	"""

	def __init__(self, track: SessionTrack, speed: float = 1.0, loop: bool = True) -> None:
		if float(speed) <= 0.0:
			raise ValueError("speed must be positive")
		self.track = track
		self.speed = float(speed)
		self.loop = bool(loop)
		self._cursor = PlaybackCursor()
		self._last_t: Optional[float] = None

	@property
	def cursor(self) -> PlaybackCursor:
		return self._cursor

	def track_time(self, elapsed_seconds: float) -> Tuple[float, int]:
		"""Map player elapsed time to (track time, loop iteration)."""
		q = max(0.0, float(elapsed_seconds)) * self.speed
		last = self.track.last_time
		if q <= last:
			return q, 0
		period = self.track.duration
		if self.loop and period > 0.0:
			# fmod is exact; q - floor(q / period) * period can dip below zero
			return max(0.0, math.fmod(q, period)), int(q // period)
		return last, 0

	def _locate(self, t: float) -> int:
		times = self.track.times
		idx = self._cursor.index
		if self._last_t is not None and t >= self._last_t and idx >= 0:
			n = len(times)
			while idx + 1 < n and times[idx + 1] <= t:
				idx += 1
			return idx
		# first query, seek backwards, or wrap
		return bisect.bisect_right(times, t) - 1

	def current_landmarks(self, elapsed_seconds: float) -> LandmarkSet:
		if self.track.is_empty:
			return EMPTY_LANDMARKS
		t, loops = self.track_time(elapsed_seconds)
		idx = self._locate(t)
		self._last_t = t
		self._cursor = PlaybackCursor(index=idx, loop_count=loops, last_elapsed=float(elapsed_seconds))
		if idx < 0:
			return EMPTY_LANDMARKS
		return self.track.records[idx].landmarks


class LandmarkCell:
	"""
	The single published "current landmark set". Writers replace the whole value;
	readers never see a partially updated set.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._value: LandmarkSet = EMPTY_LANDMARKS
		self._version = 0

	def publish(self, landmarks: LandmarkSet) -> int:
		value = tuple(landmarks)
		with self._lock:
			self._value = value
			self._version += 1
			return self._version

	def read(self) -> LandmarkSet:
		with self._lock:
			return self._value

	def snapshot(self) -> Tuple[int, LandmarkSet]:
		with self._lock:
			return self._version, self._value


class PlaybackClock:
	"""
	Player-driven clock. The player reports its position (on play, seek, loop);
	between reports the position is extrapolated from wall time while playing.
	"""

	def __init__(self, now: Callable[[], float] = time.monotonic) -> None:
		self._now = now
		self._lock = threading.Lock()
		self._base = 0.0
		self._at = now()
		self._playing = False

	def report(self, elapsed_seconds: float, playing: bool = True) -> None:
		with self._lock:
			self._base = max(0.0, float(elapsed_seconds))
			self._at = self._now()
			self._playing = bool(playing)

	@property
	def playing(self) -> bool:
		return self._playing

	def elapsed(self) -> float:
		with self._lock:
			if not self._playing:
				return self._base
			return self._base + max(0.0, self._now() - self._at)


class ReplayTicker:
	"""
	Fixed-tick overlay refresh: every `tick_seconds` read the clock, resolve the current
	landmark set and publish it into the cell. Runs independently of the video frame rate.
	"""

	def __init__(
		self,
		scheduler: ReplayScheduler,
		clock: Callable[[], float],
		cell: Optional[LandmarkCell] = None,
		tick_seconds: float = 0.1,
	) -> None:
		self.scheduler = scheduler
		self.clock = clock
		self.cell = cell or LandmarkCell()
		self.tick_seconds = max(0.001, float(tick_seconds))
		self._task: Optional[asyncio.Task] = None

	def tick(self) -> LandmarkSet:
		lm = self.scheduler.current_landmarks(self.clock())
		self.cell.publish(lm)
		return lm

	async def run(self) -> None:
		while True:
			self.tick()
			await asyncio.sleep(self.tick_seconds)

	@property
	def running(self) -> bool:
		return self._task is not None and not self._task.done()

	def start(self) -> None:
		if self.running:
			return
		self._task = asyncio.create_task(self.run())

	async def stop(self) -> None:
		task, self._task = self._task, None
		if task is None:
			return
		task.cancel()
		try:
			await task
		except asyncio.CancelledError:
			pass
