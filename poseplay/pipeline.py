from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from poseplay.errors import InferError
from poseplay.pose.base import PoseModelAdapter
from poseplay.pose.types import TimedLandmarkRecord
from poseplay.sampler import SampledFrame

logger = logging.getLogger(__name__)

MSG_COMPLETE = "Analysis complete!"


@dataclass(frozen=True)
class ProgressUpdate:
	percent_complete: int  # 0..100
	message: str

	def to_dict(self) -> dict:
		return {"percent_complete": self.percent_complete, "message": self.message}


ProgressSink = Callable[[ProgressUpdate], None]


@dataclass
class PipelineResult:
	records: List[TimedLandmarkRecord] = field(default_factory=list)
	total_frames: int = 0
	extraction_failures: int = 0
	infer_failures: int = 0
	empty_frames: int = 0
	cancelled: bool = False

	def summary(self) -> dict:
		return {
			"total_frames": self.total_frames,
			"records": len(self.records),
			"extraction_failures": self.extraction_failures,
			"infer_failures": self.infer_failures,
			"empty_frames": self.empty_frames,
			"cancelled": self.cancelled,
		}


def percent(done: int, total: int) -> int:
	if total <= 0:
		return 100
	return min(100, int(done * 100 // total))


def run_pipeline(
	frames: Iterable[SampledFrame],
	adapter: PoseModelAdapter,
	total_frames: int,
	min_confidence: float = 0.0,
	progress: Optional[ProgressSink] = None,
	on_record: Optional[Callable[[TimedLandmarkRecord], None]] = None,
	cancel: Optional[threading.Event] = None,
) -> PipelineResult:
	"""
	Drive sampled frames through the adapter, one inference at a time, in frame order.

	- Frames with no detected landmarks are dropped, not stored as empty records.
	- A failed inference is logged and skipped; the pass continues.
	- Progress is floor(frames_done / total_frames * 100), reported after every frame;
	  frame indices the sampler skipped still count as done.
	"""
	result = PipelineResult(total_frames=int(total_frames))
	emit = progress or (lambda _u: None)
	last_pct = -1
	seen = 0

	for frame in frames:
		if cancel is not None and cancel.is_set():
			result.cancelled = True
			logger.info("Pipeline cancelled at frame %d/%d", frame.index, total_frames)
			return result
		seen += 1
		try:
			landmarks = adapter.infer(frame.image, min_confidence)
		except InferError as e:
			result.infer_failures += 1
			logger.warning("Frame %d (%.3fs) inference failed: %s", frame.index, frame.offset_seconds, e)
		else:
			if landmarks:
				record = TimedLandmarkRecord(time_from_start=frame.offset_seconds, landmarks=landmarks)
				result.records.append(record)
				if on_record is not None:
					on_record(record)
			else:
				result.empty_frames += 1

		pct = max(last_pct, percent(frame.index + 1, total_frames))
		last_pct = pct
		emit(ProgressUpdate(pct, f"Processing... {pct}%"))

	if cancel is not None and cancel.is_set():
		result.cancelled = True
		return result

	result.extraction_failures = max(0, int(total_frames) - seen)
	emit(ProgressUpdate(100, MSG_COMPLETE))
	logger.info(
		"Pipeline done: %d records from %d frames (%d extraction failures, %d inference failures, %d empty)",
		len(result.records),
		result.total_frames,
		result.extraction_failures,
		result.infer_failures,
		result.empty_frames,
	)
	return result
