"""Pydantic response models for API docs."""
from typing import List, Optional, Tuple

from pydantic import BaseModel


class TrackSummary(BaseModel):
	records: int
	duration: float
	t0: Optional[float] = None
	t1: Optional[float] = None
	video_path: Optional[str] = None


class SessionResponse(BaseModel):
	"""Response from POST /session/record and /session/process."""

	detail: str
	track: Optional[TrackSummary] = None


class KeypointModel(BaseModel):
	x: float
	y: float
	z: Optional[float] = None
	score: Optional[float] = None
	name: Optional[str] = None


class LandmarksResponse(BaseModel):
	elapsed: Optional[float] = None
	version: Optional[int] = None
	landmarks: List[KeypointModel]


class SkeletonResponse(BaseModel):
	names: List[str]
	connections: List[Tuple[int, int]]
