"""Pydantic request/response models for API validation and docs."""
from schemas.requests import (
	ClockPayload,
	ProcessPayload,
	RecordPayload,
)
from schemas.responses import (
	KeypointModel,
	LandmarksResponse,
	SessionResponse,
	SkeletonResponse,
	TrackSummary,
)

__all__ = [
	"ClockPayload",
	"ProcessPayload",
	"RecordPayload",
	"KeypointModel",
	"LandmarksResponse",
	"SessionResponse",
	"SkeletonResponse",
	"TrackSummary",
]
