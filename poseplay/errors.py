"""
Error taxonomy.

Only whole-session failures (LoadError, CaptureError) reach the caller;
FrameExtractionError and InferError are absorbed per frame by the sampler/pipeline.
"""


class PosePlayError(Exception):
	"""Base class for all poseplay errors."""


class LoadError(PosePlayError):
	"""Pose model/runtime could not be initialized. Detection is unavailable, the app keeps running."""


class CaptureError(PosePlayError):
	"""Recording failed to start or produced no usable video."""


class FrameExtractionError(PosePlayError):
	"""A single frame could not be extracted or decoded."""


class InferError(PosePlayError):
	"""A single inference call failed (model not loaded, malformed image, runtime error)."""


class SessionSealedError(PosePlayError):
	"""Records were appended to a session buffer after it was sealed."""
