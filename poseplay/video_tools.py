from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from poseplay.errors import CaptureError, FrameExtractionError

PROBE_TIMEOUT_SEC = 10.0
FRAME_TIMEOUT_SEC = 5.0
# Added to the requested duration; covers device open and encoder flush.
RECORD_MARGIN_SEC = 15.0


def find_ffmpeg() -> Optional[str]:
	return shutil.which("ffmpeg")


def find_ffprobe() -> Optional[str]:
	return shutil.which("ffprobe")


def probe_duration_seconds(video_path: Path) -> Optional[float]:
	"""
	Container duration via ffprobe. Best-effort; None when unknown.
	"""
	ffprobe = find_ffprobe()
	if not ffprobe or not video_path.exists():
		return None
	try:
		p = subprocess.run(
			[ffprobe, "-v", "error", "-show_entries", "format=duration", "-of", "json", str(video_path)],
			stdout=subprocess.PIPE,
			stderr=subprocess.DEVNULL,
			check=False,
			text=True,
			timeout=PROBE_TIMEOUT_SEC,
		)
	except subprocess.TimeoutExpired:
		return None
	try:
		data = json.loads(p.stdout or "{}")
	except ValueError:
		return None
	fmt = data.get("format") if isinstance(data, dict) and isinstance(data.get("format"), dict) else {}
	raw = fmt.get("duration")
	if raw is None or raw == "N/A":
		return None
	try:
		d = float(raw)
	except (TypeError, ValueError):
		return None
	return d if d > 0.0 else None


def extract_frame_jpeg(video_path: Path, offset_sec: float, out_path: Path, width: Optional[int] = None) -> None:
	"""
	Grab a single frame at `offset_sec` into `out_path` (JPEG). Raises FrameExtractionError.
	Input-side seek is frame-accurate when re-encoding, which a single-frame JPEG always is.
	"""
	ffmpeg = find_ffmpeg()
	if not ffmpeg:
		raise FrameExtractionError("ffmpeg not installed")
	if not video_path.exists():
		raise FrameExtractionError(f"video not found: {video_path}")
	cmd = [
		ffmpeg,
		"-y",
		"-ss",
		f"{float(offset_sec):.3f}",
		"-i",
		str(video_path),
		"-frames:v",
		"1",
		"-q:v",
		"2",
	]
	if width:
		cmd += ["-vf", f"scale={int(width)}:-2"]
	cmd.append(str(out_path))
	try:
		subprocess.run(
			cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=False, timeout=FRAME_TIMEOUT_SEC
		)
	except subprocess.TimeoutExpired as e:
		raise FrameExtractionError(f"ffmpeg timed out at {offset_sec:.3f}s") from e
	if not out_path.exists() or out_path.stat().st_size <= 0:
		raise FrameExtractionError(f"no frame at {offset_sec:.3f}s")


def record_device_clip(device: str, input_format: str, out_path: Path, duration_sec: float) -> None:
	"""
	Record a bounded clip from a capture device (blocking). Raises CaptureError.
	"""
	ffmpeg = find_ffmpeg()
	if not ffmpeg:
		raise CaptureError("ffmpeg not installed")
	out_path.parent.mkdir(parents=True, exist_ok=True)
	try:
		if out_path.exists():
			out_path.unlink()
	except OSError as e:
		raise CaptureError(f"cannot replace {out_path}: {e}") from e

	cmd = [ffmpeg, "-y"]
	if input_format:
		cmd += ["-f", input_format]
	cmd += [
		"-i",
		str(device),
		"-t",
		f"{float(duration_sec):.3f}",
		"-an",
		"-c:v",
		"libx264",
		"-preset",
		"ultrafast",
		"-pix_fmt",
		"yuv420p",
		"-movflags",
		"+faststart",
		str(out_path),
	]
	try:
		p = subprocess.run(
			cmd,
			stdout=subprocess.DEVNULL,
			stderr=subprocess.PIPE,
			check=False,
			text=True,
			timeout=float(duration_sec) + RECORD_MARGIN_SEC,
		)
	except subprocess.TimeoutExpired as e:
		out_path.unlink(missing_ok=True)
		raise CaptureError(f"recording timed out ({device})") from e
	if p.returncode != 0 or not out_path.exists() or out_path.stat().st_size <= 0:
		tail = (p.stderr or "").strip().splitlines()[-1:] or ["no output"]
		raise CaptureError(f"recording failed ({device}): {tail[0]}")
