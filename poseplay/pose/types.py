from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Keypoint:
	"""
	A single tracked body landmark.

	- x/y are model coordinates (normalized image space, or metres for world landmarks).
	- z is absent for 2D-only detections.
	- score is confidence/visibility [0..1] when the model reports one.
	"""

	x: float
	y: float
	z: Optional[float] = None
	score: Optional[float] = None
	name: Optional[str] = None

	def to_dict(self) -> Dict[str, Any]:
		return {"x": self.x, "y": self.y, "z": self.z, "score": self.score, "name": self.name}


# Landmarks detected in one frame. For fixed-size skeletons index i always maps to the same body part.
LandmarkSet = Tuple[Keypoint, ...]

EMPTY_LANDMARKS: LandmarkSet = ()


def filter_by_confidence(keypoints: Iterable[Keypoint], min_confidence: float) -> LandmarkSet:
	"""
	Drop keypoints whose score is present and below min_confidence.
	Keypoints without a score are kept; relative order is preserved.
	"""
	t = float(min_confidence)
	return tuple(kp for kp in keypoints if kp.score is None or float(kp.score) >= t)


@dataclass(frozen=True)
class TimedLandmarkRecord:
	time_from_start: float  # seconds from the start of the clip
	landmarks: LandmarkSet

	def __post_init__(self) -> None:
		if not isinstance(self.landmarks, tuple):
			object.__setattr__(self, "landmarks", tuple(self.landmarks))

	def to_dict(self) -> Dict[str, Any]:
		return {
			"time_from_start": self.time_from_start,
			"landmarks": [kp.to_dict() for kp in self.landmarks],
		}


@dataclass(frozen=True)
class VideoHandle:
	"""
	Immutable reference to a recorded clip.
	duration_seconds is None when the capture side could not determine it.
	"""

	path: str
	duration_seconds: Optional[float] = None


@dataclass(frozen=True)
class SessionTrack:
	"""
	Sealed, time-ordered landmark records for one session plus the source video.
	"""

	records: Tuple[TimedLandmarkRecord, ...] = ()
	video: Optional[VideoHandle] = None
	times: Tuple[float, ...] = field(init=False, repr=False, compare=False)

	def __post_init__(self) -> None:
		if not isinstance(self.records, tuple):
			object.__setattr__(self, "records", tuple(self.records))
		object.__setattr__(self, "times", tuple(float(r.time_from_start) for r in self.records))

	def __len__(self) -> int:
		return len(self.records)

	@property
	def is_empty(self) -> bool:
		return not self.records

	@property
	def last_time(self) -> float:
		return self.times[-1] if self.times else 0.0

	@property
	def duration(self) -> float:
		"""
		Loop period: the last record's timestamp, or the source video duration when that is longer.
		"""
		vd = self.video.duration_seconds if self.video is not None else None
		if vd is not None and float(vd) > self.last_time:
			return float(vd)
		return self.last_time

	def summary(self) -> Dict[str, Any]:
		return {
			"records": len(self.records),
			"duration": self.duration,
			"t0": (self.times[0] if self.times else None),
			"t1": (self.times[-1] if self.times else None),
			"video_path": (self.video.path if self.video else None),
		}

	def to_list(self) -> List[Dict[str, Any]]:
		return [r.to_dict() for r in self.records]
