from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from poseplay.capture import open_video
from poseplay.config import get_config, set_config_path
from poseplay.errors import CaptureError, LoadError
from poseplay.pipeline import ProgressUpdate, run_pipeline
from poseplay.pose import get_pose_adapter
from poseplay.sampler import FrameSampler
from poseplay.session_buffer import SessionBuffer

logger = logging.getLogger("poseplay.process_video")


def main(argv: Optional[list[str]] = None) -> int:
	p = argparse.ArgumentParser(description="Detect pose landmarks on a recorded clip and print a track summary")
	p.add_argument("video", help="Path to a recorded video file")
	p.add_argument("--config", default=None, help="Path to config.json (defaults to repo root)")
	p.add_argument("--fps", type=float, default=None, help="Sampling rate (frames per second)")
	p.add_argument("--duration", type=float, default=None, help="Override clip duration in seconds")
	p.add_argument("--min-confidence", type=float, default=None, help="Drop keypoints scored below this")
	p.add_argument("--records", action="store_true", help="Include every record in the output")
	p.add_argument("--debug", action="store_true", help="Enable debug logging.")
	args = p.parse_args(argv)

	logging.basicConfig(
		level=logging.DEBUG if args.debug else logging.INFO,
		format="%(levelname)s:%(name)s:%(message)s",
		stream=sys.stderr,
	)
	if args.config:
		set_config_path(args.config)
	cfg = get_config()

	try:
		video = open_video(args.video)
	except CaptureError as e:
		logger.error("%s", e)
		return 1

	adapter = get_pose_adapter(cfg)
	try:
		adapter.load()
	except LoadError as e:
		logger.error("Failed to load AI model: %s", e)
		return 2

	sampler = FrameSampler(
		frames_dir=cfg.sampling.frames_dir,
		fps=args.fps or cfg.sampling.fps,
		frame_width=cfg.sampling.frame_width,
		fallback_duration=cfg.capture.record_seconds,
	)
	buffer = SessionBuffer()
	min_conf = cfg.pose.min_confidence if args.min_confidence is None else float(args.min_confidence)

	def progress(u: ProgressUpdate) -> None:
		logger.debug("%3d%% %s", u.percent_complete, u.message)

	try:
		frames = sampler.sample(video, duration_override=args.duration)
		result = run_pipeline(
			frames,
			adapter,
			total_frames=frames.total_frames,
			min_confidence=min_conf,
			progress=progress,
			on_record=buffer.append,
		)
		track = buffer.seal(video)
	finally:
		adapter.dispose()
		sampler.clear()

	out = {"result": result.summary(), "track": track.summary()}
	if args.records:
		out["records"] = track.to_list()
	print(json.dumps(out, indent=2))
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
