from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from poseplay.capture import CaptureDevice, open_video
from poseplay.config import AppConfig
from poseplay.errors import CaptureError, LoadError
from poseplay.pipeline import PipelineResult, ProgressSink, ProgressUpdate, run_pipeline
from poseplay.pose.base import PoseModelAdapter
from poseplay.pose.types import EMPTY_LANDMARKS, LandmarkSet, SessionTrack, VideoHandle
from poseplay.replay import LandmarkCell, PlaybackClock, ReplayScheduler, ReplayTicker
from poseplay.sampler import FrameSampler
from poseplay.session_buffer import SessionBuffer

logger = logging.getLogger(__name__)

MSG_LOADING = "Loading AI model..."
MSG_LOAD_FAILED = "Failed to load AI model. Restart the app."
MSG_RECORDING = "Recording..."
MSG_RECORD_FAILED = "Recording failed. Try again."
MSG_PROCESS_FAILED = "Processing failed. Try again."


class SessionController:
	"""
	Top-level owner of one recording/replay lifecycle.

	- The adapter is loaded/disposed only here, never by a pipeline pass.
	- One pass at a time: a new session cancels and settles the previous pass, then
	  resets the buffer, so two sessions' records never mix.
	- Passes run in a worker thread; progress is marshalled back onto the event loop.
	"""

	def __init__(
		self,
		cfg: AppConfig,
		adapter: PoseModelAdapter,
		capture: CaptureDevice,
		sampler: Optional[FrameSampler] = None,
		buffer: Optional[SessionBuffer] = None,
	) -> None:
		self.cfg = cfg
		self.adapter = adapter
		self.capture = capture
		self.sampler = sampler or FrameSampler(
			frames_dir=cfg.sampling.frames_dir,
			fps=cfg.sampling.fps,
			frame_width=cfg.sampling.frame_width,
			fallback_duration=cfg.capture.record_seconds,
		)
		self.buffer = buffer or SessionBuffer()
		self.status = ProgressUpdate(0, "")
		self.model_available = False
		self.track: Optional[SessionTrack] = None
		self.scheduler: Optional[ReplayScheduler] = None
		self.last_result: Optional[PipelineResult] = None
		self.cell = LandmarkCell()
		self.clock = PlaybackClock()
		self._ticker: Optional[ReplayTicker] = None
		self._task: Optional[asyncio.Future] = None
		self._cancel: Optional[threading.Event] = None
		# clip recorded by this controller; other clips belong to the caller
		self._recording: Optional[Path] = None
		self._start_lock = asyncio.Lock()
		self._listeners: List[ProgressSink] = []

	# ---- status ----

	def add_listener(self, fn: ProgressSink) -> None:
		self._listeners.append(fn)

	def _set_status(self, update: ProgressUpdate) -> None:
		self.status = update
		for fn in list(self._listeners):
			try:
				fn(update)
			except Exception:
				logger.exception("Progress listener failed")

	@property
	def in_flight(self) -> bool:
		return self._task is not None and not self._task.done()

	def describe(self) -> Dict[str, Any]:
		return {
			"model_available": self.model_available,
			"backend": self.adapter.name(),
			"in_flight": self.in_flight,
			"progress": self.status.to_dict(),
			"track": (self.track.summary() if self.track is not None else None),
			"last_result": (self.last_result.summary() if self.last_result is not None else None),
		}

	# ---- model lifecycle ----

	async def load_model(self) -> bool:
		"""Load the adapter off the event loop. A LoadError leaves detection unavailable, nothing more."""
		self._set_status(ProgressUpdate(0, MSG_LOADING))
		try:
			await asyncio.to_thread(self.adapter.load)
		except LoadError:
			logger.exception("Pose model load failed")
			self.model_available = False
			self._set_status(ProgressUpdate(0, MSG_LOAD_FAILED))
			return False
		self.model_available = True
		self._set_status(ProgressUpdate(0, ""))
		return True

	async def close(self) -> None:
		await self.dismiss()
		self.adapter.dispose()
		self.model_available = False

	# ---- sessions ----

	async def record(self, duration_sec: Optional[float] = None) -> VideoHandle:
		d = float(duration_sec) if duration_sec else float(self.cfg.capture.record_seconds)
		self._set_status(ProgressUpdate(0, MSG_RECORDING))
		try:
			return await asyncio.to_thread(self.capture.record, d)
		except CaptureError:
			self._set_status(ProgressUpdate(0, MSG_RECORD_FAILED))
			raise

	async def record_and_process(self, duration_sec: Optional[float] = None) -> Optional[SessionTrack]:
		if not self.model_available:
			raise LoadError("Pose model not loaded")
		video = await self.record(duration_sec)
		return await self.process(video, owned=True)

	async def process_file(self, path: str) -> Optional[SessionTrack]:
		video = await asyncio.to_thread(open_video, path)
		return await self.process(video)

	async def process(self, video: VideoHandle, owned: bool = False) -> Optional[SessionTrack]:
		"""
		Sample, detect and buffer one clip, then build the replay scheduler.
		Returns None when a newer session cancelled this pass.
		`owned` hands the clip to the controller, which deletes it when the session is discarded.
		"""
		if not self.model_available:
			raise LoadError("Pose model not loaded")

		async with self._start_lock:
			await self.cancel()
			await self._stop_ticker()
			self.buffer.reset()
			self.track = None
			self.scheduler = None
			self.cell.publish(EMPTY_LANDMARKS)
			self._discard_recording()
			if owned:
				self._recording = Path(video.path)
			cancel = threading.Event()
			self._cancel = cancel
			loop = asyncio.get_running_loop()

			def progress(update: ProgressUpdate) -> None:
				loop.call_soon_threadsafe(self._set_status, update)

			self._set_status(ProgressUpdate(0, "Processing... 0%"))
			logger.info("Session started for %s", video.path)
			task = asyncio.ensure_future(asyncio.to_thread(self._run_pass, video, cancel, progress))
			self._task = task

		try:
			result = await task
		except Exception:
			logger.exception("Processing failed for %s", video.path)
			self._set_status(ProgressUpdate(0, MSG_PROCESS_FAILED))
			raise
		finally:
			current = self._task is task
			if current:
				self._task = None
				self._cancel = None

		# superseded: a newer session already owns the buffer
		if result.cancelled or not current:
			return None
		self.last_result = result
		self.track = self.buffer.seal(video)
		self.scheduler = ReplayScheduler(self.track, speed=self.cfg.replay.speed, loop=self.cfg.replay.loop)
		self._start_ticker()
		return self.track

	def _run_pass(self, video: VideoHandle, cancel: threading.Event, progress: ProgressSink) -> PipelineResult:
		frames = self.sampler.sample(video)
		return run_pipeline(
			frames,
			self.adapter,
			total_frames=frames.total_frames,
			min_confidence=self.cfg.pose.min_confidence,
			progress=progress,
			on_record=self.buffer.append,
			cancel=cancel,
		)

	async def cancel(self) -> None:
		"""Cancel the in-flight pass (if any) and wait for it to settle."""
		task, ev = self._task, self._cancel
		if task is None or task.done():
			return
		logger.info("Cancelling in-flight session")
		if ev is not None:
			ev.set()
		try:
			await asyncio.shield(task)
		except Exception as e:
			# The owning process() call reports its own failure.
			logger.debug("Cancelled pass ended with %r", e)

	async def dismiss(self) -> None:
		"""Discard the current track, replay state and frame artifacts."""
		await self.cancel()
		await self._stop_ticker()
		self.buffer.reset()
		self.track = None
		self.scheduler = None
		self.cell.publish(EMPTY_LANDMARKS)
		self.sampler.clear()
		self._discard_recording()

	def _discard_recording(self) -> None:
		path, self._recording = self._recording, None
		if path is None:
			return
		try:
			path.unlink(missing_ok=True)
		except OSError as e:
			logger.warning("Could not delete recording %s: %s", path, e)

	# ---- replay ----

	def _start_ticker(self) -> None:
		if self.scheduler is None:
			return
		self.clock.report(0.0, playing=False)
		self._ticker = ReplayTicker(self.scheduler, self.clock.elapsed, self.cell, self.cfg.replay.tick_seconds)
		self._ticker.start()

	async def _stop_ticker(self) -> None:
		ticker, self._ticker = self._ticker, None
		if ticker is not None:
			await ticker.stop()

	def current_landmarks(self, elapsed_seconds: float) -> LandmarkSet:
		if self.scheduler is None:
			return EMPTY_LANDMARKS
		return self.scheduler.current_landmarks(elapsed_seconds)

