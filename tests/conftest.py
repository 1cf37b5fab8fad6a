from pathlib import Path
from typing import Callable, List, Optional

import numpy as np
import pytest
from PIL import Image

from poseplay.errors import FrameExtractionError, LoadError
from poseplay.pose.base import PoseModelAdapter
from poseplay.pose.skeleton import BLAZEPOSE33_NAMES
from poseplay.pose.types import Keypoint


def make_image(index: int, size: int = 8) -> np.ndarray:
	"""Solid RGB image whose pixel value encodes the frame index."""
	return np.full((size, size, 3), int(index), dtype=np.uint8)


def full_skeleton(score: float = 0.9) -> List[Keypoint]:
	return [Keypoint(x=i / 33.0, y=1.0 - i / 33.0, z=0.0, score=score, name=n) for i, n in enumerate(BLAZEPOSE33_NAMES)]


class FakeAdapter(PoseModelAdapter):
	"""
	Reads the frame index back from the pixel value and asks `script(index)` what to return:
	a list of keypoints, [] for "nobody detected", or an exception instance to raise.
	"""

	def __init__(self, script: Optional[Callable[[int], object]] = None, fail_load: bool = False) -> None:
		super().__init__()
		self.script = script or (lambda _i: full_skeleton())
		self.fail_load = fail_load
		self.load_calls = 0
		self.release_calls = 0
		self.end_calls = 0
		self.seen: List[int] = []

	def name(self) -> str:
		return "fake"

	def _load(self) -> None:
		self.load_calls += 1
		if self.fail_load:
			raise LoadError("no compatible compute backend")

	def _detect(self, rgb):
		idx = int(rgb[0, 0, 0])
		self.seen.append(idx)
		out = self.script(idx)
		if isinstance(out, Exception):
			raise out
		return list(out)

	def _end_call(self) -> None:
		self.end_calls += 1

	def _release(self) -> None:
		self.release_calls += 1


class FakeExtractor:
	"""
	Stands in for ffmpeg: writes a PNG whose pixel value is the frame index.
	Indices in `fail` raise FrameExtractionError; indices in `garbage` write undecodable bytes.
	"""

	def __init__(self, fps: float, fail=(), garbage=()) -> None:
		self.fps = float(fps)
		self.fail = set(fail)
		self.garbage = set(garbage)
		self.calls: List[float] = []

	def __call__(self, video_path: Path, offset_sec: float, out_path: Path) -> None:
		self.calls.append(offset_sec)
		idx = int(round(offset_sec * self.fps))
		if idx in self.fail:
			raise FrameExtractionError(f"injected failure at {idx}")
		if idx in self.garbage:
			out_path.write_bytes(b"not an image")
			return
		Image.fromarray(make_image(idx)).save(out_path, format="PNG")


@pytest.fixture
def adapter() -> FakeAdapter:
	a = FakeAdapter()
	a.load()
	return a


@pytest.fixture
def clip(tmp_path) -> Path:
	p = tmp_path / "clip.mp4"
	p.write_bytes(b"\x00\x00\x00\x18ftypmp42")
	return p
