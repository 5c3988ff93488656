# src/pets_ui_bff/main.py

import logging
import typing
from pathlib import Path
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.responses import Response as StarletteResponse

from . import actions
from .api_client import UpstreamApi, get_upstream_api
from .auth_utils import (
    DASHBOARD_PATH,
    LOGIN_PATH,
    SessionGuardMiddleware,
    clear_session_cookies,
    get_session,
    write_session_cookies,
)
from .config import Settings, settings
from .session_data import ActionFailure, ActionOutcome, ActionSuccess, Redirect, SessionData

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


# --- Response helpers ---

def wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "")


def redirect_response(request: Request, outcome: Redirect) -> StarletteResponse:
    app_settings: Settings = request.app.state.settings
    response = RedirectResponse(url=outcome.location, status_code=outcome.status)
    if outcome.clear_session:
        clear_session_cookies(response, app_settings)
    if outcome.session is not None:
        write_session_cookies(response, outcome.session, app_settings)
    return response


def _flash_from_request(request: Request) -> typing.Optional[dict]:
    msg = request.query_params.get("msg")
    if not msg:
        return None
    return {"message": msg, "kind": request.query_params.get("kind") or ""}


def pet_action_response(request: Request, outcome: ActionOutcome) -> StarletteResponse:
    """JSON clients get the outcome itself; browser forms go back to the dashboard with a flash."""
    if isinstance(outcome, Redirect):
        return redirect_response(request, outcome)

    if wants_json(request):
        if isinstance(outcome, ActionFailure):
            return JSONResponse(
                status_code=outcome.status,
                content=outcome.model_dump(mode="json", exclude={"errors", "api_error"}),
            )
        return JSONResponse(content=outcome.model_dump(mode="json", exclude_none=True))

    if isinstance(outcome, ActionSuccess):
        query = urlencode({"msg": outcome.message, "kind": "ok"})
    else:
        query = urlencode({"msg": outcome.message, "kind": "bad"})
    return RedirectResponse(url=f"{DASHBOARD_PATH}?{query}", status_code=status.HTTP_303_SEE_OTHER)


def form_failure_response(request: Request, outcome: ActionFailure, template: str, title: str) -> StarletteResponse:
    if wants_json(request):
        return JSONResponse(status_code=outcome.status, content=outcome.model_dump(mode="json"))
    return templates.TemplateResponse(
        request,
        template,
        {
            "title": title,
            "errors": outcome.errors,
            "api_error": outcome.api_error or outcome.error,
            "form_data": outcome.form_data,
        },
        status_code=outcome.status,
    )


# --- App factory ---

def create_app(app_settings: Settings = settings) -> FastAPI:
    app = FastAPI(
        title="PetsUI-BFF",
        description="Backend-For-Frontend for the pets web UI, handling cookie sessions and proxying to the pets API.",
        version="0.1.0"
    )
    app.state.settings = app_settings

    app.add_middleware(SessionGuardMiddleware, settings=app_settings)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info("%s %s - %s", request.method, request.url.path, response.status_code)
        return response

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> StarletteResponse:
        logger.exception("BFF: unhandled error on %s %s", request.method, request.url.path)
        if wants_json(request):
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": "Internal server error"},
            )
        return PlainTextResponse("Internal server error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.get("/healthz")
    async def healthz() -> dict:
        return {"status": "ok"}

    @app.get("/")
    async def root() -> RedirectResponse:
        return RedirectResponse(url=DASHBOARD_PATH, status_code=status.HTTP_303_SEE_OTHER)

    # --- Authentication routes ---

    @app.get("/login", response_class=HTMLResponse)
    async def login_page(request: Request, session: typing.Optional[SessionData] = Depends(get_session)):
        if session is not None:
            return RedirectResponse(url=DASHBOARD_PATH, status_code=status.HTTP_303_SEE_OTHER)
        return templates.TemplateResponse(
            request,
            "login.html",
            {"title": "Login", "flash": _flash_from_request(request), "form_data": {}, "errors": {}},
        )

    @app.post("/login", response_model=None)
    async def login_action(request: Request, api: UpstreamApi = Depends(get_upstream_api)) -> StarletteResponse:
        form = await request.form()
        outcome = await actions.login(form, api)
        if isinstance(outcome, ActionFailure):
            return form_failure_response(request, outcome, "login.html", "Login")
        return redirect_response(request, outcome)

    @app.get("/register", response_class=HTMLResponse)
    async def register_page(request: Request, session: typing.Optional[SessionData] = Depends(get_session)):
        if session is not None:
            return RedirectResponse(url=DASHBOARD_PATH, status_code=status.HTTP_303_SEE_OTHER)
        return templates.TemplateResponse(
            request,
            "register.html",
            {"title": "Register", "form_data": {}, "errors": {}},
        )

    @app.post("/register", response_model=None)
    async def register_action(request: Request, api: UpstreamApi = Depends(get_upstream_api)) -> StarletteResponse:
        form = await request.form()
        outcome = await actions.register(form, api)
        if isinstance(outcome, ActionFailure):
            return form_failure_response(request, outcome, "register.html", "Register")
        return redirect_response(request, outcome)

    @app.post("/logout", response_model=None)
    async def logout_action(request: Request) -> StarletteResponse:
        return redirect_response(request, actions.logout())

    # --- Dashboard ---

    @app.get("/dashboard", response_model=None)
    async def dashboard(
            request: Request,
            session: typing.Optional[SessionData] = Depends(get_session),
            api: UpstreamApi = Depends(get_upstream_api),
    ) -> StarletteResponse:
        data = await actions.load_dashboard(session, api)
        if isinstance(data, Redirect):
            return redirect_response(request, data)

        if wants_json(request):
            return JSONResponse(content=data.model_dump(mode="json"))
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {"title": "Dashboard", "flash": _flash_from_request(request), "data": data},
        )

    @app.post("/dashboard/pets", response_model=None)
    async def add_pet_action(
            request: Request,
            session: typing.Optional[SessionData] = Depends(get_session),
            api: UpstreamApi = Depends(get_upstream_api),
    ) -> StarletteResponse:
        form = await request.form()
        outcome = await actions.add_pet(session, form, api)
        return pet_action_response(request, outcome)

    @app.post("/dashboard/pets/{pet_id}/update", response_model=None)
    async def update_pet_action(
            request: Request,
            pet_id: int,
            session: typing.Optional[SessionData] = Depends(get_session),
            api: UpstreamApi = Depends(get_upstream_api),
    ) -> StarletteResponse:
        form = await request.form()
        outcome = await actions.update_pet(session, pet_id, form, api)
        return pet_action_response(request, outcome)

    @app.post("/dashboard/pets/{pet_id}/delete", response_model=None)
    async def delete_pet_action(
            request: Request,
            pet_id: int,
            session: typing.Optional[SessionData] = Depends(get_session),
            api: UpstreamApi = Depends(get_upstream_api),
    ) -> StarletteResponse:
        outcome = await actions.delete_pet(session, pet_id, api)
        return pet_action_response(request, outcome)

    # --- Profile ---

    @app.get("/profile", response_model=None)
    async def profile(request: Request, session: typing.Optional[SessionData] = Depends(get_session)):
        if session is None:
            return RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)
        if wants_json(request):
            return JSONResponse(content={"user": session.user.model_dump(mode="json")})
        return templates.TemplateResponse(request, "profile.html", {"title": "Profile", "user": session.user})

    return app


app = create_app()
