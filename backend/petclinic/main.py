"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTML endpoints of the pet clinic. Controllers
are intentionally thin: they accept requests, delegate to services and
repositories, and render Jinja2 templates.

Endpoints implemented:
- GET /userexception
- GET /owners/{owner_id}/pets/{pet_id}/visits/new
- POST /owners/{owner_id}/pets/{pet_id}/visits/new
- GET /owners/{owner_id}
- GET /login, POST /login, GET /logout
- GET /, GET /health
"""

from fastapi import FastAPI, Depends, Form, HTTPException, Request
from fastapi.responses import RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware
from sqlmodel import Session
import json
import logging
import time
import uuid
from pathlib import Path
from .database import create_db_and_tables, get_session
from . import models, repositories, services
from .auth import SESSION_USER_KEY, LoginRequired, current_username, require_login
from .instrumentation import Instrumentation, capture_span, get_instrumentation
from .config import settings

DUPLICATE_USER_MESSAGE = "Duplicate entry 'Snappy' for key 'name'"
VISIT_FORM_VIEW = "pets/createOrUpdateVisitForm.html"

app = FastAPI(title="Pet Clinic")
logger = logging.getLogger("petclinic.api")
users_logger = logging.getLogger("petclinic.users")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

app.add_middleware(SessionMiddleware, secret_key=settings.SESSION_SECRET, https_only=settings.ENV != "dev")

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path != "/health":
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
    return response


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    """Render the login view instead of the gated page."""
    return templates.TemplateResponse(request, "login.html", {"next": exc.next_url, "error": None})


def get_users_repository(db: Session = Depends(get_session)) -> repositories.UsersRepository:
    return repositories.UsersRepository(db)


def get_visit_service(db: Session = Depends(get_session)) -> services.VisitService:
    return services.VisitService(db)


async def read_visit_form(request: Request, instrumentation: Instrumentation = Depends(get_instrumentation)) -> dict:
    """Record the raw submitted body, then return the parsed form fields.

    Runs before the session gate so every submission is recorded.
    """
    body = await request.body()
    instrumentation.record(
        "visit.request_body",
        {"body": body.decode("utf-8", errors="replace"), "request_id": request.state.request_id},
    )
    form = await request.form()
    return dict(form.items())


def _safe_next(next_url: str) -> str:
    if next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


@app.get("/userexception")
def save_users(request: Request, users_repo: repositories.UsersRepository = Depends(get_users_repository)):
    """Save the same demo user twice to exercise the duplicate-entry path.

    Renders the performance view; when a save fails the view carries a
    fixed `excp` message and the response status is 500.
    """
    users = models.Users(name="Snappy", age=23)
    try:
        users_repo.save(users)
        users_repo.save(users)
    except Exception as e:
        users_logger.exception("Exception occurred due to: %s", e)
        return templates.TemplateResponse(
            request, "performance/performance.html", {"excp": DUPLICATE_USER_MESSAGE}, status_code=500
        )
    return templates.TemplateResponse(request, "performance/performance.html", {})


@app.get("/owners/{owner_id}/pets/{pet_id}/visits/new")
def init_new_visit_form(
    request: Request,
    owner_id: int,
    pet_id: int,
    username: str = Depends(require_login),
    visit_service: services.VisitService = Depends(get_visit_service),
    instrumentation: Instrumentation = Depends(get_instrumentation),
):
    """Render the create-visit form for a pet with a fresh blank visit."""
    request_id = request.state.request_id
    with capture_span(instrumentation, "init_new_visit_form", request_id=request_id):
        model = visit_service.load_pet_with_visit(owner_id, pet_id)
        instrumentation.record("span.label", {"_tag_user": username, "request_id": request_id})
        instrumentation.record(
            "visit.form.requested",
            {"user": username, "method": "GET", "path": request.url.path, "pet_id": pet_id, "request_id": request_id},
        )
        instrumentation.record("visit.form.rendered", {"pet_id": pet_id, "request_id": request_id})
        return templates.TemplateResponse(request, VISIT_FORM_VIEW, {**model, "errors": {}})


@app.post("/owners/{owner_id}/pets/{pet_id}/visits/new")
def process_new_visit_form(
    request: Request,
    owner_id: int,
    pet_id: int,
    form: dict = Depends(read_visit_form),
    username: str = Depends(require_login),
    visit_service: services.VisitService = Depends(get_visit_service),
    instrumentation: Instrumentation = Depends(get_instrumentation),
):
    """Validate the submitted visit and save it through the owner.

    Redirects to the owner page on success; re-renders the form with
    field errors otherwise, leaving the stored owner untouched.
    """
    request_id = request.state.request_id
    with capture_span(instrumentation, "process_new_visit_form", request_id=request_id):
        model = visit_service.load_pet_with_visit(owner_id, pet_id)
        instrumentation.record("span.label", {"_tag_user": username, "request_id": request_id})
        owner, visit = model["owner"], model["visit"]
        errors = visit_service.bind_visit(visit, form)
        if errors:
            instrumentation.record(
                "visit.validation.failed", {"pet_id": pet_id, "errors": errors, "request_id": request_id}
            )
            instrumentation.record("visit.form.rendered", {"pet_id": pet_id, "request_id": request_id})
            return templates.TemplateResponse(request, VISIT_FORM_VIEW, {**model, "errors": errors})

        visit_service.save_visit(owner, pet_id, visit)
        instrumentation.record(
            "visit.created",
            {
                "user": username,
                "method": "POST",
                "path": request.url.path,
                "owner_id": owner.id,
                "pet_id": pet_id,
                "visit_id": visit.id,
                "request_id": request_id,
            },
        )
        return RedirectResponse(url=f"/owners/{owner_id}", status_code=302)


@app.get("/owners/{owner_id}")
def show_owner(request: Request, owner_id: int, db: Session = Depends(get_session)):
    """Render an owner with their pets and visit history."""
    owner = repositories.OwnerRepository(db).find_by_id(owner_id)
    if owner is None:
        raise HTTPException(status_code=404, detail=f"owner not found: {owner_id}")
    return templates.TemplateResponse(request, "owners/ownerDetails.html", {"owner": owner})


@app.get("/login")
def login_form(request: Request, next: str = "/"):
    """Render the login form."""
    return templates.TemplateResponse(request, "login.html", {"next": _safe_next(next), "error": None})


@app.post("/login")
def login(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
    next: str = Form(default="/"),
    db: Session = Depends(get_session),
):
    """Check credentials and store the username in the session.

    Failed logins re-render the form with status 401.
    """
    account = None
    if username.strip() and password:
        account = services.AuthService(db).authenticate(username.strip(), password)
    if account is None:
        logger.warning("login failed for username=%s", username)
        return templates.TemplateResponse(
            request,
            "login.html",
            {"next": _safe_next(next), "error": "invalid username or password"},
            status_code=401,
        )
    request.session[SESSION_USER_KEY] = account.username
    logger.info("User:%s logged in", account.username)
    return RedirectResponse(url=_safe_next(next), status_code=302)


@app.get("/logout")
def logout(request: Request):
    """Drop the session and go back to the login form."""
    request.session.clear()
    return RedirectResponse(url="/login", status_code=302)


@app.get("/")
def home(request: Request):
    """Minimal homepage for quick manual testing."""
    return templates.TemplateResponse(request, "home.html", {"username": current_username(request)})


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
