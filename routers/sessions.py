"""Session routes. Routes: /session/status, /session/record, /session/process, /session/dismiss."""
from fastapi import APIRouter, Depends, HTTPException

from app_state import AppState
from deps import get_controller, get_state
from poseplay.capture import input_roots, is_allowed_input
from poseplay.errors import CaptureError, LoadError
from poseplay.session import MSG_LOAD_FAILED, MSG_RECORD_FAILED, SessionController
from schemas.requests import ProcessPayload, RecordPayload
from schemas.responses import SessionResponse

router = APIRouter(tags=["sessions"])


def _session_response(track) -> SessionResponse:
	if track is None:
		return SessionResponse(detail="Session superseded by a newer recording.")
	return SessionResponse(detail="Analysis complete!", track=track.summary())


@router.get("/session/status")
async def session_status(
	state: AppState = Depends(get_state),
	ctl: SessionController = Depends(get_controller),
):
	out = ctl.describe()
	out["ws_clients"] = state.manager.client_count if state.manager is not None else 0
	return out


@router.post("/session/record", response_model=SessionResponse)
async def session_record(payload: RecordPayload, ctl: SessionController = Depends(get_controller)):
	"""Record a bounded clip, then sample, detect and buffer it for replay."""
	try:
		track = await ctl.record_and_process(payload.duration_seconds)
	except LoadError as e:
		raise HTTPException(status_code=503, detail=f"{MSG_LOAD_FAILED} ({e})")
	except CaptureError as e:
		raise HTTPException(status_code=502, detail=f"{MSG_RECORD_FAILED} ({e})")
	return _session_response(track)


@router.post("/session/process", response_model=SessionResponse)
async def session_process(payload: ProcessPayload, ctl: SessionController = Depends(get_controller)):
	"""Process an already-recorded clip from the recordings or uploads directories."""
	if not is_allowed_input(payload.video_path, input_roots(ctl.cfg)):
		raise HTTPException(status_code=403, detail="video_path is outside the configured input directories")
	try:
		track = await ctl.process_file(payload.video_path)
	except LoadError as e:
		raise HTTPException(status_code=503, detail=f"{MSG_LOAD_FAILED} ({e})")
	except CaptureError as e:
		raise HTTPException(status_code=400, detail=str(e))
	return _session_response(track)


@router.post("/session/dismiss")
async def session_dismiss(ctl: SessionController = Depends(get_controller)):
	"""Drop the current track and frame artifacts (replay view dismissed)."""
	await ctl.dismiss()
	return {"detail": "Session dismissed."}
