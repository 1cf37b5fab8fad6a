"""Pydantic request body models."""
from typing import Optional

from pydantic import BaseModel, Field


class RecordPayload(BaseModel):
	"""Request body for POST /session/record. Bounded capture, then processing."""

	duration_seconds: Optional[float] = Field(None, gt=0, le=60, description="Clip length; config default if omitted")


class ProcessPayload(BaseModel):
	"""Request body for POST /session/process. Run the pipeline on an already-recorded clip."""

	video_path: str = Field(..., min_length=1, description="Path to the clip on the server")


class ClockPayload(BaseModel):
	"""Request body for POST /replay/clock. The video player's current position."""

	elapsed_seconds: float = Field(..., ge=0, description="Player elapsed time (seconds)")
	playing: bool = Field(True, description="False while paused")
