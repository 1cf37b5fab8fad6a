"""Replay routes. Routes: /replay/track, /replay/landmarks, /replay/clock, /replay/current, /replay/skeleton."""
from fastapi import APIRouter, Depends, HTTPException, Query

from deps import get_controller
from poseplay.pose.skeleton import BLAZEPOSE33_CONNECTIONS, BLAZEPOSE33_NAMES
from poseplay.session import SessionController
from schemas.requests import ClockPayload
from schemas.responses import LandmarksResponse, SkeletonResponse, TrackSummary

router = APIRouter(tags=["replay"])


@router.get("/replay/track", response_model=TrackSummary)
async def replay_track(ctl: SessionController = Depends(get_controller)):
	if ctl.track is None:
		raise HTTPException(status_code=404, detail="No track available yet")
	return ctl.track.summary()


@router.get("/replay/track/records")
async def replay_track_records(ctl: SessionController = Depends(get_controller)):
	if ctl.track is None:
		raise HTTPException(status_code=404, detail="No track available yet")
	return {"video_path": ctl.track.video.path if ctl.track.video else None, "records": ctl.track.to_list()}


@router.get("/replay/landmarks", response_model=LandmarksResponse)
async def replay_landmarks(
	elapsed: float = Query(..., ge=0, description="Player elapsed time (seconds)"),
	ctl: SessionController = Depends(get_controller),
):
	"""Landmark set current at `elapsed` (nearest past sample). Empty when there is no track."""
	lm = ctl.current_landmarks(elapsed)
	return {"elapsed": elapsed, "landmarks": [kp.to_dict() for kp in lm]}


@router.post("/replay/clock")
async def replay_clock(payload: ClockPayload, ctl: SessionController = Depends(get_controller)):
	"""Player reports its position; the fixed-tick overlay refresh reads from this clock."""
	ctl.clock.report(payload.elapsed_seconds, playing=payload.playing)
	return {"detail": "ok", "elapsed": ctl.clock.elapsed(), "playing": ctl.clock.playing}


@router.get("/replay/current", response_model=LandmarksResponse)
async def replay_current(ctl: SessionController = Depends(get_controller)):
	"""Latest landmark set published by the overlay ticker."""
	version, lm = ctl.cell.snapshot()
	return {"version": version, "landmarks": [kp.to_dict() for kp in lm]}


@router.get("/replay/skeleton", response_model=SkeletonResponse)
async def replay_skeleton():
	return {"names": BLAZEPOSE33_NAMES, "connections": BLAZEPOSE33_CONNECTIONS}
