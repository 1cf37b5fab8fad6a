import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app_state import AppState
from poseplay import __version__
from poseplay.capture import get_capture_device
from poseplay.config import AppConfig, get_config
from poseplay.pipeline import ProgressUpdate
from poseplay.pose import get_pose_adapter
from poseplay.session import SessionController
from routers import replay, sessions, ws

logger = logging.getLogger("poseplay.server")


def _progress_to_clients(state: AppState, update: ProgressUpdate) -> None:
	"""
	Push a progress update to all connected WebSocket clients.
	Fire-and-forget; called on the event loop by the session controller.
	"""
	try:
		task = asyncio.get_running_loop().create_task(
			state.manager.broadcast_json({"type": "progress", **update.to_dict()})
		)
	except RuntimeError:
		# No running loop yet; ignore
		return
	state.bg_tasks.add(task)
	task.add_done_callback(state.bg_tasks.discard)


def create_app(cfg: Optional[AppConfig] = None, controller: Optional[SessionController] = None) -> FastAPI:
	"""
	Build the app. `controller` lets callers (tests, embedding apps) supply their own
	adapter/capture wiring; by default both come from configuration.
	"""

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		c = cfg or get_config()
		state = AppState()
		state.cfg = c
		state.manager = ws.manager
		state.controller = controller or SessionController(c, get_pose_adapter(c), get_capture_device(c))
		state.controller.add_listener(lambda u: _progress_to_clients(state, u))
		app.state.state = state

		# Non-fatal: without a model the record/process routes answer 503.
		if not await state.controller.load_model():
			logger.warning("Pose detection unavailable; recording disabled")
		try:
			yield
		finally:
			await state.controller.close()
			for t in list(state.bg_tasks):
				t.cancel()

	app = FastAPI(title="poseplay", version=__version__, lifespan=lifespan)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.include_router(sessions.router)
	app.include_router(replay.router)
	app.include_router(ws.router)

	@app.get("/health")
	async def health():
		return {"status": "ok", "version": __version__}

	return app


def main() -> None:
	import uvicorn

	logging.basicConfig(
		level=logging.DEBUG if os.environ.get("POSEPLAY_DEBUG") else logging.INFO,
		format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
	)
	host = os.environ.get("POSEPLAY_HOST", "127.0.0.1")
	port = int(os.environ.get("POSEPLAY_PORT", "8000"))
	uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
	main()
