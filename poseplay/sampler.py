from __future__ import annotations

import logging
import math
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import numpy as np
from PIL import Image

from poseplay.errors import FrameExtractionError
from poseplay.pose.types import VideoHandle
from poseplay.video_tools import extract_frame_jpeg, probe_duration_seconds

logger = logging.getLogger(__name__)

# (video_path, offset_seconds, out_path) -> None; raises FrameExtractionError (or OSError).
FrameExtractor = Callable[[Path, float, Path], None]


@dataclass(frozen=True)
class SampledFrame:
	index: int
	offset_seconds: float
	image: np.ndarray  # H,W,3 uint8 RGB


def frame_count(duration_sec: float, fps: float) -> int:
	"""
	floor(duration_ms * fps / 1000), on whole milliseconds so 5.0s @ 10fps is exactly 50.
	"""
	if duration_sec is None or float(duration_sec) <= 0.0 or float(fps) <= 0.0:
		return 0
	duration_ms = int(round(float(duration_sec) * 1000.0))
	return int(math.floor(duration_ms * float(fps) / 1000.0 + 1e-9))


def frame_offset(index: int, fps: float) -> float:
	return int(index) * (1000.0 / float(fps)) / 1000.0


def decode_rgb(path: Path) -> np.ndarray:
	try:
		with Image.open(path) as im:
			return np.asarray(im.convert("RGB"), dtype=np.uint8)
	except OSError as e:
		raise FrameExtractionError(f"cannot decode {path.name}: {e}") from e


class FramePass:
	"""
	One lazy, ordered, finite pass over a clip. Not restartable: iterate once,
	ask the sampler for a new pass to go again.
	"""

	def __init__(self, frames: Iterator[SampledFrame], total_frames: int, skipped: List[int]) -> None:
		self.total_frames = int(total_frames)
		self.skipped = skipped
		self._frames = frames

	def __iter__(self) -> Iterator[SampledFrame]:
		return self._frames


class FrameSampler:
	def __init__(
		self,
		frames_dir: str | Path,
		fps: float = 10.0,
		extractor: Optional[FrameExtractor] = None,
		frame_width: Optional[int] = None,
		fallback_duration: Optional[float] = None,
	) -> None:
		if float(fps) <= 0.0:
			raise ValueError("fps must be positive")
		self.frames_dir = Path(frames_dir)
		self.fps = float(fps)
		self.frame_width = frame_width
		# used when neither the handle nor ffprobe knows the clip length (nominal record length)
		self.fallback_duration = fallback_duration
		self._extractor = extractor or self._ffmpeg_extract

	def _ffmpeg_extract(self, video_path: Path, offset_sec: float, out_path: Path) -> None:
		extract_frame_jpeg(video_path, offset_sec, out_path, width=self.frame_width)

	def resolve_duration(self, video: VideoHandle, duration_override: Optional[float] = None) -> Optional[float]:
		if duration_override is not None:
			return float(duration_override)
		if video.duration_seconds is not None:
			return float(video.duration_seconds)
		probed = probe_duration_seconds(Path(video.path))
		if probed is not None:
			return probed
		return self.fallback_duration

	def clear(self) -> None:
		"""Remove every transient frame artifact."""
		shutil.rmtree(self.frames_dir, ignore_errors=True)

	def _reset_dir(self) -> None:
		self.clear()
		self.frames_dir.mkdir(parents=True, exist_ok=True)

	def sample(self, video: VideoHandle, duration_override: Optional[float] = None) -> FramePass:
		"""
		Start a new pass. Artifacts of the previous pass are deleted before this returns.
		"""
		duration = self.resolve_duration(video, duration_override)
		total = frame_count(duration or 0.0, self.fps)
		self._reset_dir()
		skipped: List[int] = []
		logger.info("Sampling %s: %d frames @ %.1f fps", video.path, total, self.fps)
		return FramePass(self._iter_frames(Path(video.path), total, skipped), total, skipped)

	def _iter_frames(self, video_path: Path, total: int, skipped: List[int]) -> Iterator[SampledFrame]:
		for idx in range(total):
			offset = frame_offset(idx, self.fps)
			out = self.frames_dir / f"frame_{idx:03d}.jpg"
			try:
				self._extractor(video_path, offset, out)
				image = decode_rgb(out)
			except (FrameExtractionError, OSError) as e:
				# One bad frame must not void the recording.
				skipped.append(idx)
				logger.warning("Frame %d (%.3fs) skipped: %s", idx, offset, e)
				continue
			yield SampledFrame(index=idx, offset_seconds=offset, image=image)
