from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from poseplay.config import AppConfig, get_config
from poseplay.errors import CaptureError
from poseplay.pose.types import VideoHandle
from poseplay.video_tools import probe_duration_seconds, record_device_clip

logger = logging.getLogger(__name__)


def open_video(path: str | Path, duration_seconds: Optional[float] = None) -> VideoHandle:
	"""
	Wrap an already-recorded clip as a VideoHandle. Raises CaptureError if it is missing or empty.
	"""
	p = Path(path).expanduser()
	if not p.is_file() or p.stat().st_size <= 0:
		raise CaptureError(f"No usable video at {p}")
	if duration_seconds is None:
		duration_seconds = probe_duration_seconds(p)
	return VideoHandle(path=str(p.resolve()), duration_seconds=duration_seconds)


def input_roots(cfg: AppConfig) -> List[Path]:
	"""Directories clients may name in a process request: the recordings dir plus input_dirs."""
	dirs = [cfg.capture.output_dir, *cfg.capture.input_dirs]
	return [Path(d).expanduser().resolve() for d in dirs if d]


def is_allowed_input(path: str | Path, roots: List[Path]) -> bool:
	p = Path(path).expanduser().resolve()
	return any(p.is_relative_to(r) for r in roots)


class CaptureDevice(ABC):
	"""
	Produces one immutable recorded clip per call to `record`.
	"""

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def record(self, duration_sec: float) -> VideoHandle:
		"""Record a bounded clip (blocking). Raises CaptureError."""


class FileCaptureDevice(CaptureDevice):
	"""
	Capture side used when clips come from elsewhere (uploads, a phone, a test fixture);
	`record` is unsupported, clips enter via `open_video`.
	"""

	def name(self) -> str:
		return "file"

	def record(self, duration_sec: float) -> VideoHandle:
		raise CaptureError("File capture does not support recording; process an existing clip instead")


class FfmpegCaptureDevice(CaptureDevice):
	def __init__(self, device: str, input_format: str, output_dir: str | Path) -> None:
		self.device = device
		self.input_format = input_format
		self.output_dir = Path(output_dir)

	def name(self) -> str:
		return "ffmpeg"

	def record(self, duration_sec: float) -> VideoHandle:
		if float(duration_sec) <= 0.0:
			raise CaptureError("Recording duration must be positive")
		out = self.output_dir / f"clip_{time.strftime('%Y%m%d_%H%M%S')}.mp4"
		logger.info("Recording %.1fs from %s -> %s", float(duration_sec), self.device, out)
		record_device_clip(self.device, self.input_format, out, float(duration_sec))
		return open_video(out, duration_seconds=probe_duration_seconds(out) or float(duration_sec))


def get_capture_device(cfg: Optional[AppConfig] = None, *, backend_override: Optional[str] = None) -> CaptureDevice:
	cfg = cfg or get_config()
	backend = (backend_override or cfg.capture.backend or "ffmpeg").strip().lower()
	if backend == "file":
		return FileCaptureDevice()
	return FfmpegCaptureDevice(
		device=cfg.capture.device,
		input_format=cfg.capture.input_format,
		output_dir=cfg.capture.output_dir,
	)
