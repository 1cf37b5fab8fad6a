from __future__ import annotations

import logging
from typing import List, Optional

from poseplay.errors import SessionSealedError
from poseplay.pose.types import SessionTrack, TimedLandmarkRecord, VideoHandle

logger = logging.getLogger(__name__)


class SessionBuffer:
	"""
	Accumulates one session's records; `seal` freezes them into a SessionTrack.
	Single writer: the pipeline appending for the current session.
	"""

	def __init__(self) -> None:
		self._records: List[TimedLandmarkRecord] = []
		self._track: Optional[SessionTrack] = None

	def __len__(self) -> int:
		return len(self._records)

	@property
	def is_open(self) -> bool:
		return self._track is None

	def append(self, record: TimedLandmarkRecord) -> None:
		if self._track is not None:
			raise SessionSealedError("Session already sealed; reset() before appending")
		if not record.landmarks:
			raise ValueError("Empty landmark sets are not buffered")
		if float(record.time_from_start) < 0.0:
			raise ValueError(f"Negative time_from_start: {record.time_from_start}")
		if self._records and record.time_from_start < self._records[-1].time_from_start:
			logger.warning(
				"Out-of-order record %.3fs after %.3fs", record.time_from_start, self._records[-1].time_from_start
			)
		self._records.append(record)

	def seal(self, video: Optional[VideoHandle] = None) -> SessionTrack:
		if self._track is not None:
			return self._track
		# stable: equal timestamps keep append order
		ordered = sorted(self._records, key=lambda r: r.time_from_start)
		self._track = SessionTrack(records=tuple(ordered), video=video)
		logger.info("Session sealed: %d records, duration %.2fs", len(self._track), self._track.duration)
		return self._track

	def reset(self) -> None:
		self._records = []
		self._track = None
