"""FastAPI application exposing the chat store, demo auth and AI replies."""
from __future__ import annotations

import logging
import os
import threading
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import psutil
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import ai as ai_mod
from . import database as db_mod
from .auth import UserDirectory
from .config import chat_descriptors, deep_merge, load_config
from .errors import ValidationError
from .models import iso_utc
from .store import MessageStore

logger = logging.getLogger(__name__)

ENDPOINTS = [
    "GET  /",
    "GET  /api/health",
    "GET  /api/status",
    "POST /api/auth/register",
    "POST /api/auth/login",
    "GET  /api/chats",
    "GET  /api/chats/{chatId}",
    "POST /api/chats/{chatId}/messages",
    "POST /api/ai/chat",
    "GET  /api/settings",
    "PUT  /api/settings",
    "GET  /api/deployment",
]


# -----------------------------
# Pydantic request models
# -----------------------------
class RegisterRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class MessageRequest(BaseModel):
    # Left optional so an empty body reaches the store's own validation.
    text: Optional[str] = None
    sender: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class AIChatRequest(BaseModel):
    message: Optional[str] = None
    prompt: Optional[str] = None
    personality: Optional[str] = Field(default=None, description="friendly | professional | witty | supportive | default")
    context: List[Dict[str, Any]] = Field(default_factory=list)


# -----------------------------
# Utilities
# -----------------------------
def _now_iso() -> str:
    return iso_utc(datetime.now(timezone.utc))


def _mb(n_bytes: int) -> str:
    return f"{round(n_bytes / 1024 / 1024)} MB"


def _make_store(cfg: Dict[str, Any]) -> MessageStore:
    store_cfg = cfg.get("store", {})
    server_cfg = cfg.get("server", {})
    store = MessageStore(
        ceiling=int(store_cfg.get("ceiling", 100)),
        floor=int(store_cfg.get("floor", 50)),
        annotations={
            "platform": cfg.get("deployment", {}).get("platform", "local"),
            "environment": server_cfg.get("environment", "development"),
        },
    )
    if store_cfg.get("seed_demo", True):
        store.seed_demo()
        logger.info("Demo data initialized (%d messages)", len(store))
    return store


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    store: Optional[MessageStore] = None,
    replier: Optional[ai_mod.ReplyService] = None,
    database: Optional[db_mod.Database] = None,
    users: Optional[UserDirectory] = None,
) -> FastAPI:
    cfg = load_config(config_path)
    server_cfg = cfg.get("server", {})
    deploy_cfg = cfg.get("deployment", {})
    environment = str(server_cfg.get("environment", "development"))
    version = str(server_cfg.get("version", "2.0.0"))
    service_name = str(server_cfg.get("service_name", "CAT CHAT Backend"))
    placeholder = str(cfg.get("store", {}).get("placeholder", "Start chatting!"))
    chats = chat_descriptors(cfg)

    # Services
    store = store if store is not None else _make_store(cfg)
    replier = replier or ai_mod.create_from_config(cfg)
    users = users or UserDirectory(email_domain=str(cfg.get("auth", {}).get("email_domain", "catchat.local")))
    if database is None:
        database = db_mod.create_from_config(cfg)
        database.connect()

    settings_overrides: Dict[str, Any] = {}
    settings_lock = threading.Lock()
    started = time.monotonic()

    def uptime() -> float:
        return round(time.monotonic() - started, 3)

    def current_settings() -> Dict[str, Any]:
        base = deep_merge(cfg.get("settings", {}), {
            "deployment": {
                "platform": deploy_cfg.get("platform"),
                "url": deploy_cfg.get("url"),
                "serviceId": deploy_cfg.get("service_id"),
                "environment": environment,
            },
        })
        with settings_lock:
            return deep_merge(base, settings_overrides)

    app = FastAPI(title=service_name, version=version)
    app.state.store = store
    app.state.replier = replier
    app.state.database = database
    app.state.users = users

    cors_origins = server_cfg.get("cors_origins", ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s", request.method, request.url.path)
        return await call_next(request)

    # -----------------------------
    # Error handling
    # -----------------------------
    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": exc.message, "field": exc.field},
        )

    @app.exception_handler(RequestValidationError)
    async def request_shape_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={"success": False, "error": "Invalid request body", "details": details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "error": "Route not found",
                    "path": request.url.path,
                    "method": request.method,
                    "availableEndpoints": ENDPOINTS,
                },
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal server error",
                "message": str(exc) if environment == "development" else "Something went wrong",
                "requestId": f"req_{int(time.time() * 1000)}",
                "timestamp": _now_iso(),
            },
        )

    # -----------------------------
    # Health & status
    # -----------------------------
    @app.get("/")
    def root() -> Dict[str, Any]:
        return {
            "message": f"{service_name} running",
            "status": "online",
            "version": version,
            "environment": environment,
            "platform": deploy_cfg.get("platform"),
            "database": database.backend,
            "uptime": uptime(),
            "timestamp": _now_iso(),
            "endpoints": ENDPOINTS,
        }

    @app.get("/api/health")
    def health() -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": service_name,
            "version": version,
            "timestamp": _now_iso(),
            "database": "connected" if database.connected else "memory",
            "memory": {
                "users": len(users),
                "messages": len(store),
                "chats": len(store.chat_ids()),
            },
            "environment": {
                "name": environment,
                "port": server_cfg.get("port"),
                "platform": deploy_cfg.get("platform"),
            },
        }

    @app.get("/api/status")
    def status() -> Dict[str, Any]:
        mem = psutil.Process(os.getpid()).memory_info()
        return {
            "status": "operational",
            "metrics": {
                "uptime": uptime(),
                "memory": {"rss": _mb(mem.rss), "vms": _mb(mem.vms)},
                "messages": len(store),
                "retention": {"ceiling": store.policy.ceiling, "floor": store.policy.floor},
            },
            "deployment": {
                "platform": deploy_cfg.get("platform"),
                "region": deploy_cfg.get("region"),
                "serviceId": deploy_cfg.get("service_id"),
            },
        }

    # -----------------------------
    # Authentication (demo)
    # -----------------------------
    @app.post("/api/auth/register")
    def register(req: RegisterRequest) -> Dict[str, Any]:
        user, token = users.register(req.username, req.email, req.password)
        logger.info("Registered user %s", user.username)
        return {"success": True, "message": "Registered", "user": user.to_dict(), "token": token}

    @app.post("/api/auth/login")
    def login(req: LoginRequest) -> Dict[str, Any]:
        user, token = users.login(req.username, req.password)
        return {
            "success": True,
            "message": "Logged in",
            "user": user.to_dict(),
            "token": token,
            "url": deploy_cfg.get("url"),
        }

    # -----------------------------
    # Chats & messages
    # -----------------------------
    @app.get("/api/chats")
    def list_chats() -> Dict[str, Any]:
        summaries = store.summarize_chats(
            [c.id for c in chats],
            placeholder=placeholder,
            placeholders={c.id: c.placeholder for c in chats},
        )
        data = []
        for chat, summary in zip(chats, summaries):
            data.append({
                "id": chat.id,
                "name": chat.name,
                "type": chat.type,
                "icon": chat.icon,
                "unread": 0,
                "participants": chat.participants if chat.participants is not None else len(users),
                **summary.to_dict(),
            })
        return {"success": True, "data": data, "total": len(data)}

    @app.get("/api/chats/{chat_id}")
    def get_chat(chat_id: str) -> Dict[str, Any]:
        messages = store.list_by_chat(chat_id)
        last_updated = messages[-1].to_dict()["timestamp"] if messages else _now_iso()
        return {
            "success": True,
            "data": {
                "id": chat_id,
                "messages": [m.to_dict() for m in messages],
                "totalMessages": len(messages),
                "lastUpdated": last_updated,
            },
        }

    @app.post("/api/chats/{chat_id}/messages")
    def post_message(chat_id: str, req: MessageRequest) -> Dict[str, Any]:
        message = store.append(chat_id, req.text or "", sender=req.sender, metadata=req.metadata or {})
        logger.info("Message sent to %s: %r", chat_id, message.text[:50])
        return {
            "success": True,
            "data": message.to_dict(),
            "deployment": {
                "service": deploy_cfg.get("service"),
                "deployment": deploy_cfg.get("deployment_id"),
            },
        }

    # -----------------------------
    # AI
    # -----------------------------
    @app.post("/api/ai/chat")
    def ai_chat(req: AIChatRequest) -> Dict[str, Any]:
        text = (req.message or req.prompt or "").strip()
        if not text:
            raise HTTPException(status_code=400, detail="Message or prompt is required")
        logger.info("AI request: %r", text[:50])
        reply = replier.reply(text, req.personality, req.context)
        return {"success": True, "data": reply.to_dict()}

    # -----------------------------
    # Settings & deployment
    # -----------------------------
    @app.get("/api/settings")
    def get_settings() -> Dict[str, Any]:
        return {"success": True, "data": current_settings()}

    @app.put("/api/settings")
    def put_settings(updates: Dict[str, Any]) -> Dict[str, Any]:
        nonlocal settings_overrides
        with settings_lock:
            settings_overrides = deep_merge(settings_overrides, updates)
        return {
            "success": True,
            "message": "Settings updated",
            "data": current_settings(),
            "updatedAt": _now_iso(),
        }

    @app.get("/api/deployment")
    def deployment() -> Dict[str, Any]:
        return {
            "platform": deploy_cfg.get("platform"),
            "service": deploy_cfg.get("service"),
            "environment": environment,
            "region": deploy_cfg.get("region"),
            "serviceId": deploy_cfg.get("service_id"),
            "deploymentId": deploy_cfg.get("deployment_id"),
            "url": deploy_cfg.get("url"),
            "health": f"{str(deploy_cfg.get('url') or '').rstrip('/')}/api/health",
            "database": database.status(),
            "ai": {"realAI": replier.real_ai_enabled},
        }

    return app
