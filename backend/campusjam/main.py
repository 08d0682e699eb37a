"""FastAPI application entrypoint.

Serve ``campusjam.main:socket_app`` to expose both the REST API and the
Socket.IO transport on one port.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campusjam.api import messages, notifications, ops, sessions, users
from campusjam.api.errors import install_error_handlers
from campusjam.domain.chat.sockets import ChatNamespace, set_namespace
from campusjam.infra import postgres
from campusjam.obs import init as obs_init
from campusjam.settings import settings

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="CampusJam API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
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
obs_init(app)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
chat_namespace = ChatNamespace()
sio.register_namespace(chat_namespace)
set_namespace(chat_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)

app.include_router(users.router, prefix=API_PREFIX, tags=["users"])
app.include_router(sessions.router, prefix=API_PREFIX, tags=["sessions"])
app.include_router(messages.router, prefix=API_PREFIX, tags=["messages"])
app.include_router(notifications.router, prefix=API_PREFIX, tags=["notifications"])
app.include_router(ops.router)
