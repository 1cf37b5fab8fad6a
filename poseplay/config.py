from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class PoseConfig:
	# Adapter selected once at startup; the core only sees the PoseModelAdapter interface.
	backend: str = "mediapipe"
	# MediaPipe Pose Landmarker task bundle (e.g. pose_landmarker_full.task).
	model_asset_path: str = str(Path("models") / "pose_landmarker_full.task")
	delegate: str = "auto"  # auto / gpu / cpu
	coordinates: str = "world"  # world (3D, falls back to image) / image
	min_confidence: float = 0.0


@dataclass(frozen=True)
class SamplingConfig:
	fps: float = 10.0
	# Transient per-frame JPEGs; wiped at the start of every sampler pass.
	frames_dir: str = str(Path("data") / "frames")
	frame_width: Optional[int] = None  # downscale during extraction; None keeps source size


@dataclass(frozen=True)
class CaptureConfig:
	backend: str = "ffmpeg"  # ffmpeg / file
	# ffmpeg input device, e.g. /dev/video0 (v4l2), "0" (avfoundation)
	device: str = "/dev/video0"
	input_format: str = "v4l2"
	record_seconds: float = 5.0
	output_dir: str = str(Path("data") / "recordings")
	# /session/process only opens clips under output_dir or one of these
	input_dirs: Tuple[str, ...] = (str(Path("data") / "uploads"),)


@dataclass(frozen=True)
class ReplayConfig:
	speed: float = 1.0
	loop: bool = True
	# Landmark overlay refresh, independent of the video frame rate.
	tick_seconds: float = 0.1


@dataclass(frozen=True)
class AppConfig:
	pose: PoseConfig = field(default_factory=PoseConfig)
	sampling: SamplingConfig = field(default_factory=SamplingConfig)
	capture: CaptureConfig = field(default_factory=CaptureConfig)
	replay: ReplayConfig = field(default_factory=ReplayConfig)


_CONFIG_PATH: Optional[Path] = None
_CONFIG_CACHE: Optional[AppConfig] = None


def _repo_root() -> Path:
	# poseplay/config.py -> repo root is one level up.
	return Path(__file__).resolve().parents[1]


def get_default_config_path() -> Path:
	return _repo_root() / "config.json"


def set_config_path(path: str | Path) -> None:
	"""
	Override the config path (must be called before first get_config()).
	Intended for tooling use (process_video --config); the server normally uses the default path.
	"""
	global _CONFIG_PATH
	global _CONFIG_CACHE
	_CONFIG_PATH = Path(path).expanduser().resolve()
	_CONFIG_CACHE = None


def _deep_get(d: Dict[str, Any], keys: list[str], default: Any = None) -> Any:
	cur: Any = d
	for k in keys:
		if not isinstance(cur, dict):
			return default
		cur = cur.get(k)
	return cur if cur is not None else default


def _as_int(v: Any, default: Optional[int]) -> Optional[int]:
	try:
		return int(v)
	except (TypeError, ValueError):
		return default


def _as_bool(v: Any, default: bool) -> bool:
	if isinstance(v, bool):
		return v
	if isinstance(v, (int, float)):
		return bool(v)
	if isinstance(v, str):
		return v.strip().lower() in ("1", "true", "yes", "on")
	return bool(default)


def _as_str(v: Any, default: str = "") -> str:
	return str(v) if v is not None else str(default)


def _as_float(v: Any, default: float) -> float:
	try:
		return float(v)
	except (TypeError, ValueError):
		return float(default)


def _as_str_tuple(v: Any, default: Tuple[str, ...]) -> Tuple[str, ...]:
	if not isinstance(v, list):
		return default
	return tuple(s for s in (str(x).strip() for x in v if x is not None) if s)


def _choice(v: str, allowed: tuple[str, ...], default: str) -> str:
	v = v.strip().lower()
	return v if v in allowed else default


def load_config(path: Optional[str | Path] = None) -> AppConfig:
	p = Path(path).expanduser().resolve() if path else (_CONFIG_PATH or get_default_config_path())
	if not p.exists():
		# Defaults-only config; app can still run.
		return AppConfig()
	try:
		raw = json.loads(p.read_text(encoding="utf-8"))
	except (OSError, ValueError):
		# If config is malformed, fail safe to defaults (but keep app running).
		return AppConfig()

	if not isinstance(raw, dict):
		return AppConfig()

	d_pose = PoseConfig()
	pose_backend = _as_str(_deep_get(raw, ["pose", "backend"], d_pose.backend), d_pose.backend).strip().lower()
	model_asset = _as_str(_deep_get(raw, ["pose", "model_asset_path"], d_pose.model_asset_path), d_pose.model_asset_path)
	delegate = _choice(_as_str(_deep_get(raw, ["pose", "delegate"], "auto")), ("auto", "gpu", "cpu"), "auto")
	coordinates = _choice(_as_str(_deep_get(raw, ["pose", "coordinates"], "world")), ("world", "image"), "world")
	min_conf = _as_float(_deep_get(raw, ["pose", "min_confidence"], 0.0), 0.0)
	min_conf = min(1.0, max(0.0, float(min_conf)))

	d_samp = SamplingConfig()
	fps = _as_float(_deep_get(raw, ["sampling", "fps"], d_samp.fps), d_samp.fps)
	frames_dir = _as_str(_deep_get(raw, ["sampling", "frames_dir"], d_samp.frames_dir), d_samp.frames_dir).strip()
	frame_width = _as_int(_deep_get(raw, ["sampling", "frame_width"], None), None)

	d_cap = CaptureConfig()
	cap_backend = _choice(_as_str(_deep_get(raw, ["capture", "backend"], d_cap.backend)), ("ffmpeg", "file"), d_cap.backend)
	cap_device = _as_str(_deep_get(raw, ["capture", "device"], d_cap.device), d_cap.device)
	cap_format = _as_str(_deep_get(raw, ["capture", "input_format"], d_cap.input_format), d_cap.input_format)
	record_s = _as_float(_deep_get(raw, ["capture", "record_seconds"], d_cap.record_seconds), d_cap.record_seconds)
	out_dir = _as_str(_deep_get(raw, ["capture", "output_dir"], d_cap.output_dir), d_cap.output_dir).strip()
	in_dirs = _as_str_tuple(_deep_get(raw, ["capture", "input_dirs"], None), d_cap.input_dirs)

	d_rep = ReplayConfig()
	speed = _as_float(_deep_get(raw, ["replay", "speed"], d_rep.speed), d_rep.speed)
	loop = _as_bool(_deep_get(raw, ["replay", "loop"], d_rep.loop), d_rep.loop)
	tick = _as_float(_deep_get(raw, ["replay", "tick_seconds"], d_rep.tick_seconds), d_rep.tick_seconds)

	return AppConfig(
		pose=PoseConfig(
			backend=pose_backend or d_pose.backend,
			model_asset_path=model_asset,
			delegate=delegate,
			coordinates=coordinates,
			min_confidence=float(min_conf),
		),
		sampling=SamplingConfig(
			fps=float(fps) if float(fps) > 0.0 else d_samp.fps,
			frames_dir=frames_dir or d_samp.frames_dir,
			frame_width=int(frame_width) if frame_width is not None and int(frame_width) > 0 else None,
		),
		capture=CaptureConfig(
			backend=cap_backend,
			device=cap_device,
			input_format=cap_format,
			record_seconds=float(record_s) if float(record_s) > 0.0 else d_cap.record_seconds,
			output_dir=out_dir or d_cap.output_dir,
			input_dirs=in_dirs,
		),
		replay=ReplayConfig(
			speed=float(speed) if float(speed) > 0.0 else d_rep.speed,
			loop=loop,
			tick_seconds=float(tick) if float(tick) > 0.0 else d_rep.tick_seconds,
		),
	)


def get_config() -> AppConfig:
	global _CONFIG_CACHE
	if _CONFIG_CACHE is None:
		_CONFIG_CACHE = load_config()
	return _CONFIG_CACHE
