"""
FastAPI dependencies. Use Depends(get_state) / Depends(get_controller) in route handlers.
"""
from fastapi import HTTPException, Request

from app_state import AppState
from poseplay.session import SessionController


def get_state(request: Request) -> AppState:
	"""Return the app state instance attached in lifespan."""
	return request.app.state.state


def get_controller(request: Request) -> SessionController:
	ctl = get_state(request).controller
	if ctl is None:
		raise HTTPException(status_code=503, detail="Session controller not ready")
	return ctl
