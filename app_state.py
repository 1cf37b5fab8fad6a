"""
Explicit app state: single source of truth for the runtime lifecycle.
Created in lifespan, attached to app.state.state; injected into routes via Depends(get_state).
"""
from typing import Any, Optional, Set

from poseplay.config import AppConfig
from poseplay.session import SessionController


class AppState:
	"""
	Holds all runtime state for the app. Populated in server lifespan.
	"""
	cfg: Optional[AppConfig] = None

	# Owns the pose adapter, the current session and its replay state
	controller: Optional[SessionController] = None

	# WebSocket fan-out (routers.ws.ConnectionManager)
	manager: Any = None

	# Fire-and-forget broadcast tasks; referenced here so they are not collected mid-flight
	bg_tasks: Set[Any]

	def __init__(self) -> None:
		self.bg_tasks = set()
