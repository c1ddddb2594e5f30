"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import admin_users, auth_hooks, connections, deps, notifications, ops
from app.api.errors import install_error_handlers
from app.domain.notifications.sockets import NotificationsNamespace, set_namespace
from app.infra import postgres
from app.obs import init as obs_init
from app.settings import settings

_DEV_ORIGINS = [
	"http://localhost:3000",
	"http://127.0.0.1:3000",
	"http://localhost:5173",
	"http://127.0.0.1:5173",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	await postgres.apply_schema()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Campus Connect API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
if not allow_origins or "*" in allow_origins:
	# wildcard is not allowed together with credentials
	allow_origins = _DEV_ORIGINS if settings.is_dev() else [settings.public_app_url]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)
obs_init(app)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
notifications_namespace = NotificationsNamespace(feed_factory=deps.open_notification_feed)
sio.register_namespace(notifications_namespace)
set_namespace(notifications_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)

app.include_router(connections.router, tags=["connections"])
app.include_router(notifications.router, tags=["notifications"])
app.include_router(admin_users.router, tags=["admin"])
app.include_router(auth_hooks.router, tags=["hooks"])
app.include_router(ops.router, tags=["ops"])
