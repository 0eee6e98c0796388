import logging
import math
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException

from detecporc.auth import AuthGate, SessionStore
from detecporc.config import Settings, get_settings
from detecporc.database import DEFAULT_POINTS, JsonDocumentStore
from detecporc.errors import DetecporcError, ValidationError
from detecporc.geo import GeoPoint
from detecporc.messages import get_message
from detecporc.moderation import ModerationQueue
from detecporc.ranking import Filters, nearest, rank
from detecporc.repository import PointRepository
from detecporc.schemas import AdminSession

logger = logging.getLogger(__name__)


def build_repository(settings: Settings) -> PointRepository:
    default = DEFAULT_POINTS if settings.seed_default_points else []
    return PointRepository(JsonDocumentStore(settings.points_file, default=default))


def build_queue(settings: Settings, repository: PointRepository) -> ModerationQueue:
    return ModerationQueue(JsonDocumentStore(settings.pending_file), repository)


def build_gate(settings: Settings) -> AuthGate:
    sessions = SessionStore(ttl=timedelta(hours=settings.session_ttl_hours))
    return AuthGate(settings.admin_accounts(), sessions, settings.session_secret)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    logger.info("Starting %s v%s (data in %s)", settings.app_name, settings.app_version, settings.data_dir)
    app.state.repository.store.ensure()
    app.state.queue.store.ensure()
    yield
    logger.info("Shutting down")


# Helpers

def error_response(settings: Settings, status_code: int, message_key: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": get_message(message_key, settings.locale)},
    )


def get_repository(request: Request) -> PointRepository:
    return request.app.state.repository


def get_queue(request: Request) -> ModerationQueue:
    return request.app.state.queue


def get_gate(request: Request) -> AuthGate:
    return request.app.state.gate


def current_session(request: Request, gate: AuthGate = Depends(get_gate)) -> Optional[AdminSession]:
    token = request.cookies.get(request.app.state.settings.session_cookie)
    return gate.session_from_token(token)


def require_admin(
    session: Optional[AdminSession] = Depends(current_session),
    gate: AuthGate = Depends(get_gate),
) -> AdminSession:
    return gate.require_admin(session)


class BodySizeLimit:
    """Reject request bodies over `settings.max_body_bytes` with 413.

    A declared Content-Length is checked up front. Bodies without one
    (chunked) are buffered up to the limit and replayed to the app.
    """

    def __init__(self, app, settings: Settings):
        self.app = app
        self.settings = settings

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = self.settings.max_body_bytes
        length = Headers(scope=scope).get("content-length")
        if length is not None:
            if length.isdigit() and int(length) > limit:
                await self.reject(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        buffered = []
        size = 0
        while True:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                break
            size += len(message.get("body", b""))
            if size > limit:
                await self.reject(scope, receive, send)
                return
            if not message.get("more_body", False):
                break

        async def replay():
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay, send)

    async def reject(self, scope, receive, send):
        logger.warning("Rejected oversized body on %s %s", scope.get("method"), scope.get("path"))
        await error_response(self.settings, 413, "payload_too_large")(scope, receive, send)


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[PointRepository] = None,
    queue: Optional[ModerationQueue] = None,
    gate: Optional[AuthGate] = None,
) -> FastAPI:
    settings = settings or get_settings()
    repository = repository or build_repository(settings)

    # App and CORS
    app = FastAPI(title=f"{settings.app_name} API", version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.repository = repository
    app.state.queue = queue or build_queue(settings, repository)
    app.state.gate = gate or build_gate(settings)

    if settings.cors_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(BodySizeLimit, settings=settings)

    # Error envelope

    @app.exception_handler(DetecporcError)
    async def detecporc_error_handler(request: Request, exc: DetecporcError):
        return error_response(settings, exc.status_code, exc.message_key)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        if request.url.path.startswith("/api/admin/") and current_session(request, app.state.gate) is None:
            return error_response(settings, 401, "unauthorized")
        on_path = any(err.get("loc", ("",))[0] == "path" for err in exc.errors())
        return error_response(settings, 400, "invalid_id" if on_path else "invalid_request")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_response(settings, 500, "storage")

    # Public Routes

    @app.get("/api/points")
    def list_points(repo: PointRepository = Depends(get_repository)):
        return {"ok": True, "points": [p.model_dump() for p in repo.list()]}

    @app.get("/api/points/nearby")
    def nearby_points(
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        q: str = "",
        max_km: Optional[float] = None,
        limit: Optional[int] = Query(None, ge=0),
        repo: PointRepository = Depends(get_repository),
    ):
        if (lat is None) != (lng is None):
            raise ValidationError("lat and lng go together", message_key="incomplete_position")
        origin = None
        if lat is not None:
            if not (math.isfinite(lat) and math.isfinite(lng)):
                raise ValidationError("non-finite position", message_key="invalid_request")
            origin = GeoPoint(lat, lng)
        ranked = rank(repo.list(), origin, Filters(query=q, max_distance_km=max_km, limit=limit))
        closest = nearest(ranked)
        return {
            "ok": True,
            "points": [p.model_dump() for p in ranked],
            "nearest": closest.model_dump() if closest else None,
        }

    @app.post("/api/suggest", status_code=201)
    def suggest_point(payload: Any = Body(None), moderation: ModerationQueue = Depends(get_queue)):
        moderation.submit(payload)
        return {"ok": True}

    # Auth Routes

    @app.post("/api/login")
    def login(response: Response, payload: Any = Body(None), gate: AuthGate = Depends(get_gate)):
        payload = payload if isinstance(payload, dict) else {}
        session = gate.login(payload.get("username"), payload.get("password"))
        response.set_cookie(
            settings.session_cookie,
            gate.issue_token(session),
            max_age=int(gate.sessions.ttl.total_seconds()),
            httponly=True,
            samesite="lax",
            secure=settings.cookie_secure,
            path="/",
        )
        return {"ok": True, "username": session.username}

    @app.post("/api/logout")
    def logout(
        response: Response,
        session: Optional[AdminSession] = Depends(current_session),
        gate: AuthGate = Depends(get_gate),
    ):
        gate.logout(session)
        response.delete_cookie(settings.session_cookie, path="/")
        return {"ok": True}

    @app.get("/api/session")
    def session_status(session: Optional[AdminSession] = Depends(current_session)):
        return {
            "ok": True,
            "authenticated": bool(session and session.is_admin),
            "username": session.username if session else None,
        }

    # Admin Routes

    @app.get("/api/admin/points")
    def admin_list_points(admin=Depends(require_admin), repo: PointRepository = Depends(get_repository)):
        return {"ok": True, "points": [p.model_dump() for p in repo.list()]}

    @app.post("/api/admin/points", status_code=201)
    def admin_create_point(
        payload: Any = Body(None),
        admin=Depends(require_admin),
        repo: PointRepository = Depends(get_repository),
    ):
        point = repo.create(payload)
        return {"ok": True, "point": point.model_dump()}

    @app.put("/api/admin/points/{point_id}")
    def admin_update_point(
        point_id: int,
        payload: Any = Body(None),
        admin=Depends(require_admin),
        repo: PointRepository = Depends(get_repository),
    ):
        point = repo.update(point_id, payload if payload is not None else {})
        return {"ok": True, "point": point.model_dump()}

    @app.delete("/api/admin/points/{point_id}")
    def admin_delete_point(point_id: int, admin=Depends(require_admin), repo: PointRepository = Depends(get_repository)):
        repo.delete(point_id)
        return {"ok": True}

    @app.get("/api/admin/pending")
    def admin_list_pending(admin=Depends(require_admin), moderation: ModerationQueue = Depends(get_queue)):
        return {"ok": True, "pending": [s.model_dump() for s in moderation.list()]}

    @app.post("/api/admin/pending/{suggestion_id}/approve")
    def admin_approve_pending(
        suggestion_id: int,
        admin=Depends(require_admin),
        moderation: ModerationQueue = Depends(get_queue),
    ):
        point = moderation.approve(suggestion_id)
        return {"ok": True, "point": point.model_dump()}

    @app.delete("/api/admin/pending/{suggestion_id}")
    def admin_reject_pending(
        suggestion_id: int,
        admin=Depends(require_admin),
        moderation: ModerationQueue = Depends(get_queue),
    ):
        moderation.reject(suggestion_id)
        return {"ok": True}

    # Utility endpoints

    @app.get("/api/health")
    def health():
        return {"ok": True, "app": settings.app_name, "version": settings.app_version}

    return app


app = create_app()
