"""
Pose estimation adapters.

This package defines a model-agnostic landmark model (Keypoint / LandmarkSet / SessionTrack)
and the PoseModelAdapter contract, so the pose stack can be swapped via configuration
without touching the pipeline or the replay code.
"""

from __future__ import annotations

from typing import Optional

from poseplay.config import AppConfig, get_config
from poseplay.pose.base import PoseModelAdapter


def get_pose_adapter(cfg: Optional[AppConfig] = None, *, backend_override: Optional[str] = None) -> PoseModelAdapter:
	cfg = cfg or get_config()
	backend = (backend_override or cfg.pose.backend or "mediapipe").strip().lower()
	if backend in ("mediapipe", "blazepose"):
		from poseplay.pose.mediapipe_provider import MediaPipePoseAdapter

		return MediaPipePoseAdapter(
			model_asset_path=cfg.pose.model_asset_path,
			delegate=cfg.pose.delegate,
			coordinates=cfg.pose.coordinates,
		)
	raise ValueError(f"Unknown pose backend: {backend!r}")
