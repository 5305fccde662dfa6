"""
Smart Feedback Portal - FastAPI Application
Main entry point for the web process.

Run with:
    uvicorn feedback_portal.app:app --reload --host 0.0.0.0 --port 8001
"""

import json
import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.websockets import WebSocketState

from feedback_portal import __version__, config
from feedback_portal.api.schemas import HealthResponse
from feedback_portal.core.errors import PortalError
from feedback_portal.core.logging import configure_logging
from feedback_portal.gateway.client import create_backend_client
from feedback_portal.routers.auth import router as auth_router
from feedback_portal.routers.feedback import router as feedback_router
from feedback_portal.services.submission import FormRegistry
from feedback_portal.session import get_current_user, requires_auth
from feedback_portal.websocket import manager

configure_logging()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan (startup / shutdown)
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the one backend client for the process, release it on shutdown."""
    app.state.backend = create_backend_client()
    app.state.forms = FormRegistry()

    yield  # Application is running

    await manager.close_all()
    if app.state.backend is not None:
        await app.state.backend.aclose()
    app.state.backend = None


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Smart Feedback Portal",
    version=__version__,
    description="Feedback submission with automated classification and live status",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    logger.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    content = {"detail": exc.message, "notification": exc.notification()}
    field = getattr(exc, "field", None)
    if field:
        content["field"] = field
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method, request.url.path, exc, traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "path": request.url.path,
        },
    )


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

async def auth_middleware(request: Request, call_next):
    """Reject unauthenticated access to protected /api/* routes."""
    if request.method == "OPTIONS":
        # CORS preflights carry no credentials.
        return await call_next(request)
    if requires_auth(request.url.path) and get_current_user(request) is None:
        return JSONResponse(
            status_code=401,
            content={"detail": {"message": "Not authenticated.", "redirect": config.LOGIN_PATH}},
        )
    return await call_next(request)


async def request_logging_middleware(request: Request, call_next):
    """Emit one ``request_log {json}`` line per request and tag the response."""
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = round((time.perf_counter() - started) * 1000, 2)

    user = get_current_user(request)
    payload = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "user_id": user.id if user else None,
    }
    log = logger.error if response.status_code >= 500 else logger.info
    log("request_log %s", json.dumps(payload))
    response.headers["X-Request-ID"] = request_id
    return response


# Registered innermost first: logging wraps auth so rejected requests are logged too.
app.middleware("http")(auth_middleware)
app.middleware("http")(request_logging_middleware)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth_router)
app.include_router(feedback_router)


# ---------------------------------------------------------------------------
# WebSocket endpoint
# ---------------------------------------------------------------------------

@app.websocket("/ws/feedback")
async def websocket_feedback(websocket: WebSocket):
    """Stream the signed-in user's feedback list as changes arrive."""
    user = get_current_user(websocket)
    backend = getattr(websocket.app.state, "backend", None)
    if user is None:
        await websocket.close(code=4401)
        return
    if backend is None:
        await websocket.close(code=1011)
        return

    try:
        await manager.connect(websocket, user, backend)
    except Exception as exc:
        # Realtime refusals, handshake errors, dropped sockets during the join.
        logger.error("Could not start live feedback for %s: %s", user.id, exc)
        await manager.disconnect(websocket)
        await websocket.close(code=1011)
        return

    try:
        # The manager closes the socket itself when live updates are lost.
        while websocket.application_state == WebSocketState.CONNECTED:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_text('{"type":"ack"}')
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/api/health", response_model=HealthResponse)
async def health(request: Request):
    """Simple health/status endpoint."""
    backend = getattr(request.app.state, "backend", None)
    return HealthResponse(
        status="ok",
        version=__version__,
        backend_configured=backend is not None,
        live_subscriptions=backend.realtime.open_count if backend is not None else 0,
        websocket_clients=manager.client_count,
    )


# ---------------------------------------------------------------------------
# Development entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "feedback_portal.app:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=True,
    )
