import logging
from typing import List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from scrambler import db_helpers
from scrambler.auth_gateway import AuthenticationGateway
from scrambler.credentials import CredentialStore
from scrambler.entities import SESSION_ID_MAX_LENGTH, Base
from scrambler.errors import MalformedGeometryError, StoreError
from scrambler.geometry import Geometry, Point
from scrambler.input_service import InputResolutionService
from scrambler.layout import LayoutGenerator, layout_to_rows
from scrambler.outcomes import AuthStatus
from scrambler.session_store import ActiveField, InMemorySessionStore, SessionStore, SqlSessionStore

logger = logging.getLogger("scrambler_backend")

AUTH_STATUS_CODES = {
    AuthStatus.CREATED: 200,
    AuthStatus.AUTHENTICATED: 200,
    AuthStatus.MISSING_CREDENTIALS: 400,
    AuthStatus.IDENTIFIER_TAKEN: 400,
    AuthStatus.INVALID_CREDENTIALS: 401,
}


class FieldRequest(BaseModel):
    targetField: Optional[str] = None

    @field_validator("targetField")
    @classmethod
    def _check_field(cls, v):
        if v is not None:
            ActiveField.parse(v)
        return v

    def target(self) -> Optional[ActiveField]:
        return ActiveField.parse(self.targetField)


class InputRequest(FieldRequest):
    x: float
    y: float
    width: float
    height: float
    keyWidths: List[List[float]]
    rowOffsets: List[float]
    scramble: bool = True
    isUppercase: bool = True


class ActiveFieldRequest(BaseModel):
    field: str = Field(...)

    @field_validator("field")
    @classmethod
    def _check_field(cls, v):
        ActiveField.parse(v)
        return v


class AuthRequest(BaseModel):
    isSignup: bool = False


def build_session_store(session_factory, backend: str | None = None) -> SessionStore:
    backend = backend or db_helpers.SESSION_BACKEND
    generator = LayoutGenerator()
    if backend == "memory":
        return InMemorySessionStore(generator, ttl_seconds=db_helpers.SESSION_TTL_SECONDS)
    if backend == "db":
        return SqlSessionStore(session_factory, generator, ttl_seconds=db_helpers.SESSION_TTL_SECONDS)
    raise RuntimeError(f"Unknown SESSION_BACKEND: {backend!r} (expected 'db' or 'memory')")


def create_app(
    session_store: SessionStore | None = None,
    credentials: CredentialStore | None = None,
    enable_admin_routes: bool | None = None,
    cookie_secure: bool | None = None,
) -> FastAPI:
    if session_store is None or credentials is None:
        engine = db_helpers.get_db_engine()
        Base.metadata.create_all(engine)
        session_factory = db_helpers.create_session_factory(engine)
        if session_store is None:
            session_store = build_session_store(session_factory)
        if credentials is None:
            credentials = CredentialStore(session_factory)

    if enable_admin_routes is None:
        enable_admin_routes = db_helpers.ENABLE_ADMIN_ROUTES
    if cookie_secure is None:
        cookie_secure = db_helpers.COOKIE_SECURE

    input_service = InputResolutionService(session_store)
    auth_gateway = AuthenticationGateway(session_store, credentials)
    cookie_name = db_helpers.SESSION_COOKIE_NAME

    app = FastAPI(title="ScramblerKey")
    app.state.input_service = input_service
    app.state.auth_gateway = auth_gateway
    app.state.credentials = credentials

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allow all origins for dev
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        logger.exception(f"Store failure on {request.url.path}: {exc}")
        return JSONResponse({"success": False, "error": "Store unavailable"}, status_code=500)

    def _session_id(request: Request, response: Response) -> str:
        session_id = request.cookies.get(cookie_name)
        # an over-long cookie would not fit the sessions.id column
        if not session_id or len(session_id) > SESSION_ID_MAX_LENGTH:
            session_id = str(uuid4())
            response.set_cookie(
                cookie_name,
                session_id,
                httponly=True,
                secure=cookie_secure,
                samesite="none" if cookie_secure else "lax",
            )
        return session_id

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/keyboard/layout")
    def get_layout(request: Request, response: Response, scramble: bool = False, isUppercase: bool = True):
        session_id = _session_id(request, response)
        _, layout = input_service.request_layout(session_id, scramble=scramble, uppercase=isUppercase)
        return {"layout": layout_to_rows(layout)}

    @app.post("/api/keyboard/input")
    def post_input(body: InputRequest, request: Request, response: Response):
        session_id = _session_id(request, response)
        geometry = Geometry.from_lists(body.width, body.height, body.keyWidths, body.rowOffsets)
        try:
            outcome = input_service.resolve_input(
                session_id,
                Point(body.x, body.y),
                geometry,
                target_field=body.target(),
                scramble_next=body.scramble,
                uppercase_next=body.isUppercase,
            )
        except MalformedGeometryError as e:
            logger.info(f"[input] session={session_id} malformed geometry: {e}")
            response.status_code = 422
            return {"success": False, "outcome": "malformed_geometry", "error": str(e)}

        if not outcome.resolved:
            response.status_code = 400
        return outcome.to_payload()

    @app.post("/api/keyboard/clear")
    def post_clear(request: Request, response: Response, body: Optional[FieldRequest] = None):
        session_id = _session_id(request, response)
        input_service.clear_buffer(session_id, (body or FieldRequest()).target())
        return {"success": True}

    @app.post("/api/keyboard/backspace")
    def post_backspace(request: Request, response: Response, body: Optional[FieldRequest] = None):
        session_id = _session_id(request, response)
        outcome = input_service.backspace(session_id, (body or FieldRequest()).target())
        return outcome.to_payload()

    @app.post("/api/keyboard/field")
    def post_field(body: ActiveFieldRequest, request: Request, response: Response):
        session_id = _session_id(request, response)
        state = input_service.set_active_field(session_id, ActiveField.parse(body.field))
        return {"success": True, "activeField": state.active_field.value}

    @app.post("/api/auth")
    def post_auth(request: Request, response: Response, body: Optional[AuthRequest] = None):
        session_id = _session_id(request, response)
        outcome = auth_gateway.authenticate(session_id, is_signup=(body or AuthRequest()).isSignup)
        response.status_code = AUTH_STATUS_CODES[outcome.status]
        return outcome.to_payload()

    @app.get("/api/admin/users")
    def get_users():
        if not enable_admin_routes:
            raise HTTPException(status_code=404, detail="Not Found")
        return [{"username": identifier} for identifier in credentials.list_identifiers()]

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host=db_helpers.HOST, port=db_helpers.PORT)
