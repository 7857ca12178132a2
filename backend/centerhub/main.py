"""FastAPI application entrypoint."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from centerhub.api import ops
from centerhub.api.errors import install_error_handlers
from centerhub.centers.api import router as centers_router
from centerhub.centers.infra import socketio as centers_socketio
from centerhub.infra.changefeed import ChangeFeed
from centerhub.infra.redis import redis_client
from centerhub.obs import init as obs_init
from centerhub.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	worker_tasks: list[asyncio.Task] = []
	feed: ChangeFeed | None = None
	if settings.tree_feed_enabled:
		feed = ChangeFeed()
		worker_tasks.append(asyncio.create_task(feed.run_forever(), name="tree-change-feed"))
	app.state.change_feed = feed
	try:
		yield
	finally:
		if feed is not None:
			feed.stop()
		for task in worker_tasks:
			task.cancel()
		if worker_tasks:
			await asyncio.gather(*worker_tasks, return_exceptions=True)
		await redis_client.close()


app = FastAPI(title="Centerhub", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
centers_socketio.register(sio)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.include_router(ops.router, tags=["ops"])
app.include_router(centers_router)
