from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List

import numpy as np

from poseplay.errors import InferError, LoadError
from poseplay.pose.types import Keypoint, LandmarkSet, filter_by_confidence

logger = logging.getLogger(__name__)


class PoseModelAdapter(ABC):
	"""
	Model adapter interface: load, infer-on-image, dispose.

	Subclasses implement `_load`, `_detect` and `_release`; this base class owns the
	contract around them (idempotent load, "not loaded" failures, image validation,
	confidence filtering). Callers must not race `infer` with `dispose`.
	"""

	def __init__(self) -> None:
		self._loaded = False

	@abstractmethod
	def name(self) -> str: ...

	@abstractmethod
	def _load(self) -> None:
		"""Acquire the model. Raise LoadError if no backend can be initialized."""

	@abstractmethod
	def _detect(self, rgb: np.ndarray) -> List[Keypoint]:
		"""Keypoints of the most prominent subject in `rgb` (H,W,3 uint8), or [] when nobody is found."""

	@abstractmethod
	def _release(self) -> None:
		"""Free all model resources."""

	def _end_call(self) -> None:
		"""Hook run after every `_detect`, on success and failure; free per-call buffers here."""

	@property
	def is_loaded(self) -> bool:
		return self._loaded

	def load(self) -> None:
		if self._loaded:
			return
		try:
			self._load()
		except LoadError:
			raise
		except Exception as e:
			raise LoadError(f"{self.name()}: model initialization failed: {e}") from e
		self._loaded = True
		logger.info("Pose model loaded (%s)", self.name())

	def infer(self, image: Any, min_confidence: float = 0.0) -> LandmarkSet:
		if not self._loaded:
			raise InferError("Pose detector not loaded")
		rgb = _as_rgb(image)
		try:
			keypoints = self._detect(rgb)
		except InferError:
			raise
		except Exception as e:
			raise InferError(f"{self.name()}: inference failed: {e}") from e
		finally:
			self._end_call()
		return filter_by_confidence(keypoints, min_confidence)

	def dispose(self) -> None:
		if not self._loaded:
			return
		self._loaded = False
		try:
			self._release()
		finally:
			logger.info("Pose model disposed (%s)", self.name())


def _as_rgb(image: Any) -> np.ndarray:
	if image is None:
		raise InferError("Image is invalid")
	try:
		arr = np.asarray(image)
	except Exception as e:
		raise InferError(f"Image is invalid: {e}") from e
	if arr.ndim != 3 or arr.shape[2] != 3 or arr.shape[0] == 0 or arr.shape[1] == 0:
		raise InferError(f"Image must be HxWx3, got shape {arr.shape}")
	if arr.dtype != np.uint8:
		raise InferError(f"Image must be uint8, got {arr.dtype}")
	return np.ascontiguousarray(arr)
