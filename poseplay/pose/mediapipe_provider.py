from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional

from poseplay.errors import LoadError
from poseplay.pose.base import PoseModelAdapter
from poseplay.pose.skeleton import BLAZEPOSE33_NAMES
from poseplay.pose.types import Keypoint

logger = logging.getLogger(__name__)


def keypoints_from_result(result: Any, coordinates: str = "world") -> List[Keypoint]:
	"""
	Convert a PoseLandmarkerResult into keypoints for the first (most prominent) pose.

	- coordinates="world" prefers 3D world landmarks (metres, hip-centred) and falls
	  back to normalized image landmarks when the world set is missing.
	- `visibility` is used as score (best-effort).
	"""
	poses = getattr(result, "pose_landmarks", None) or []
	world = getattr(result, "pose_world_landmarks", None) or []
	lms = None
	if coordinates == "world" and world and world[0]:
		lms = world[0]
	elif poses and poses[0]:
		lms = poses[0]
	if not lms:
		return []

	out: List[Keypoint] = []
	for i, p in enumerate(lms):
		vis = getattr(p, "visibility", None)
		z = getattr(p, "z", None)
		out.append(
			Keypoint(
				x=float(p.x),
				y=float(p.y),
				z=float(z) if z is not None else None,
				score=float(vis) if vis is not None else None,
				name=BLAZEPOSE33_NAMES[i] if i < len(BLAZEPOSE33_NAMES) else None,
			)
		)
	return out


class MediaPipePoseAdapter(PoseModelAdapter):
	"""
	MediaPipe Pose Landmarker (BlazePose, 33 landmarks) in single-image mode.

	Notes:
	- num_poses=1: only the most prominent subject is returned.
	- delegate="auto" tries the GPU delegate first and falls back to CPU.
	"""

	def __init__(
		self,
		model_asset_path: str,
		delegate: str = "auto",
		coordinates: str = "world",
		min_detection_confidence: float = 0.5,
	) -> None:
		super().__init__()
		self.model_asset_path = str(model_asset_path)
		self.delegate = (delegate or "auto").strip().lower()
		self.coordinates = coordinates
		self.min_detection_confidence = float(min_detection_confidence)
		self.active_delegate: Optional[str] = None
		self._mp: Any = None
		self._landmarker: Any = None
		self._mp_image: Any = None

	def name(self) -> str:
		return "mediapipe_pose_landmarker"

	def _create(self, delegate: str) -> Any:
		from mediapipe.tasks import python as mp_tasks  # type: ignore
		from mediapipe.tasks.python import vision  # type: ignore

		d = mp_tasks.BaseOptions.Delegate.GPU if delegate == "gpu" else mp_tasks.BaseOptions.Delegate.CPU
		options = vision.PoseLandmarkerOptions(
			base_options=mp_tasks.BaseOptions(model_asset_path=self.model_asset_path, delegate=d),
			running_mode=vision.RunningMode.IMAGE,
			num_poses=1,
			min_pose_detection_confidence=self.min_detection_confidence,
			output_segmentation_masks=False,
		)
		return vision.PoseLandmarker.create_from_options(options)

	def _load(self) -> None:
		try:
			import mediapipe as mp  # type: ignore
		except ImportError as e:
			raise LoadError("MediaPipe is not installed. Install pose deps with: pip install -e .[pose]") from e
		if not Path(self.model_asset_path).is_file():
			raise LoadError(f"Pose model asset not found: {self.model_asset_path}")
		self._mp = mp

		order = ["gpu", "cpu"] if self.delegate == "auto" else [self.delegate]
		last_err: Optional[Exception] = None
		for d in order:
			try:
				self._landmarker = self._create(d)
				self.active_delegate = d
				logger.info("Pose landmarker created with %s delegate", d.upper())
				return
			except Exception as e:
				last_err = e
				logger.warning("Pose landmarker %s delegate failed: %s", d.upper(), e)
		raise LoadError(f"No compatible compute backend for pose landmarker: {last_err}")

	def _detect(self, rgb) -> List[Keypoint]:
		self._mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)
		res = self._landmarker.detect(self._mp_image)
		return keypoints_from_result(res, self.coordinates)

	def _end_call(self) -> None:
		self._mp_image = None

	def _release(self) -> None:
		lm, self._landmarker = self._landmarker, None
		self.active_delegate = None
		if lm is not None:
			lm.close()
