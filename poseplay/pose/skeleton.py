from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from poseplay.pose.types import Keypoint


# BlazePose 33-point topology, in model index order.
BLAZEPOSE33_NAMES = [
	"nose",
	"left_eye_inner",
	"left_eye",
	"left_eye_outer",
	"right_eye_inner",
	"right_eye",
	"right_eye_outer",
	"left_ear",
	"right_ear",
	"mouth_left",
	"mouth_right",
	"left_shoulder",
	"right_shoulder",
	"left_elbow",
	"right_elbow",
	"left_wrist",
	"right_wrist",
	"left_pinky",
	"right_pinky",
	"left_index",
	"right_index",
	"left_thumb",
	"right_thumb",
	"left_hip",
	"right_hip",
	"left_knee",
	"right_knee",
	"left_ankle",
	"right_ankle",
	"left_heel",
	"right_heel",
	"left_foot_index",
	"right_foot_index",
]

BLAZEPOSE33_CONNECTIONS: List[Tuple[int, int]] = [
	# face
	(0, 1),
	(1, 2),
	(2, 3),
	(3, 7),
	(0, 4),
	(4, 5),
	(5, 6),
	(6, 8),
	(0, 9),
	(9, 10),
	(10, 0),
	# upper body
	(11, 12),
	(11, 13),
	(13, 15),
	(12, 14),
	(14, 16),
	(15, 17),
	(15, 19),
	(15, 21),
	(16, 18),
	(16, 20),
	(16, 22),
	# core
	(11, 23),
	(12, 24),
	(23, 24),
	# legs
	(23, 25),
	(25, 27),
	(27, 29),
	(29, 31),
	(24, 26),
	(26, 28),
	(28, 30),
	(30, 32),
	(27, 31),
	(28, 32),
]


Point3 = Tuple[float, float, float]


def _point(kp: Keypoint) -> Point3:
	return (float(kp.x), float(kp.y), float(kp.z or 0.0))


def _resolve(landmarks: Sequence[Keypoint]) -> Dict[int, Keypoint]:
	"""
	Map skeleton index -> keypoint.

	Named keypoints are placed by name, so confidence-filtered (partial) sets still
	line up; an unnamed set is only usable when it is the full 33-point skeleton.
	"""
	by_index: Dict[int, Keypoint] = {}
	if any(kp.name for kp in landmarks):
		lookup = {n: i for i, n in enumerate(BLAZEPOSE33_NAMES)}
		for kp in landmarks:
			idx = lookup.get(kp.name or "")
			if idx is not None:
				by_index[idx] = kp
		return by_index
	if len(landmarks) == len(BLAZEPOSE33_NAMES):
		return dict(enumerate(landmarks))
	return by_index


def segments(landmarks: Sequence[Keypoint]) -> List[Tuple[Point3, Point3]]:
	"""
	Skeleton line segments for drawing; connections with a missing endpoint are skipped.
	"""
	pts = _resolve(landmarks)
	out: List[Tuple[Point3, Point3]] = []
	for a, b in BLAZEPOSE33_CONNECTIONS:
		ka: Optional[Keypoint] = pts.get(a)
		kb: Optional[Keypoint] = pts.get(b)
		if ka is None or kb is None:
			continue
		out.append((_point(ka), _point(kb)))
	return out
