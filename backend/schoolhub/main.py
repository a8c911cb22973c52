"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the school-management
backend. Controllers are intentionally thin: they accept requests,
delegate to services, and return JSON responses. Failures are scoped to
the triggering request and reported with a localized `detail`.

Endpoints implemented:
- POST /auth/register, /auth/login, /auth/staff-login, /auth/logout
- GET /auth/me
- GET/POST /admin/users
- GET /timetable, /timetable/today; POST /timetable; PUT/DELETE /timetable/{id}
- GET /posts; POST /posts; PUT/DELETE /posts/{id}; POST /posts/{id}/read
- GET /surveys; POST /surveys; PUT/DELETE /surveys/{id}
- POST /surveys/{id}/responses; GET /surveys/{id}/results
- GET /export/pdf
"""

from contextlib import contextmanager
from typing import List
from urllib.parse import quote
import json
import logging
import os
import time
import uuid

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import models, schemas, services
from .auth import get_current_user, get_token_payload, require_admin, require_editor, require_student
from .config import settings
from .database import create_db_and_tables, get_session
from .messages import role_label, t
from .utils import dates
from .utils.pdf_export import ascii_fold, build_export_layout, export_filename, render_pdf
from .utils.rate_limit import FailedLoginLimiter

app = FastAPI(title="School Management API")
logger = logging.getLogger("schoolhub.api")
if not logger.handlers:
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
_login_limiter = FailedLoginLimiter(settings.LOGIN_MAX_FAILURES, settings.LOGIN_WINDOW_SECONDS)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    fields = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    try:
        response = await call_next(request)
    except Exception:
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(fields, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    fields["status_code"] = response.status_code
    fields["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(fields, ensure_ascii=True))
    return response


@contextmanager
def _service_call(db: Session, failure_key: str):
    """Map service errors to HTTP responses for one user action.

    Validation problems become 400, missing rows 404, duplicate keys 409.
    Store failures are logged, rolled back and reported as 500 with the
    action's localized failure message.
    """
    try:
        yield
    except services.ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except services.NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError:
        db.rollback()
        logger.exception("store_call_failed %s", json.dumps({"action": failure_key}))
        raise HTTPException(status_code=500, detail=t(failure_key))


def _require_confirmation(confirm: bool, prompt_key: str) -> None:
    if not confirm:
        raise HTTPException(status_code=400, detail=t(prompt_key))


def _throttle_key(request: Request) -> str:
    return f"{request.client.host if request.client else 'unknown'}:{request.url.path}"


def _enforce_login_throttle(key: str) -> None:
    allowed, retry_after = _login_limiter.check(key)
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=t("auth.too_many_attempts", retry_after=retry_after),
            headers={"Retry-After": str(retry_after)},
        )


def _profile_out(p: models.Profile) -> dict:
    return {
        'id': p.id,
        'email': p.email,
        'role': p.role,
        'role_label': role_label(p.role),
        'full_name': p.full_name,
        'can_edit': p.can_edit,
    }


def _timetable_out(e: models.TimetableEntry) -> dict:
    return {
        'id': e.id,
        'lesson_date': e.lesson_date,
        'lesson_time': e.lesson_time,
        'subject': e.subject,
        'room': e.room,
        'created_by': e.created_by,
    }


def _post_out(p: models.Post, is_read=None) -> dict:
    return {
        'id': p.id,
        'title': p.title,
        'body': p.body,
        'publish_date': p.publish_date,
        'created_by': p.created_by,
        'is_read': is_read,
    }


def _survey_out(s: models.Survey, user_response=None, has_responded=None) -> dict:
    return {
        'id': s.id,
        'question': s.question,
        'kind': s.kind,
        'options': s.options,
        'created_by': s.created_by,
        'created_at': s.created_at,
        'has_responded': has_responded,
        'user_response': user_response,
    }


@app.post('/auth/register', status_code=201, response_model=schemas.ProfileOut)
def register(payload: schemas.RegisterIn, db: Session = Depends(get_session)):
    """Sign up a new student account."""
    with _service_call(db, "profile.save_failed"):
        profile = services.AuthService(db).register(payload.email, payload.password, payload.full_name)
    return _profile_out(profile)


@app.post('/auth/login', response_model=schemas.TokenOut)
def login(payload: schemas.LoginIn, request: Request, db: Session = Depends(get_session)):
    """Authenticate with email and password and return a JWT token.

    Repeated failures from one client are throttled with 429.
    """
    key = _throttle_key(request)
    _enforce_login_throttle(key)
    with _service_call(db, "auth.login_failed"):
        token = services.AuthService(db).authenticate(payload.email, payload.password)
    if not token:
        _login_limiter.record_failure(key)
        raise HTTPException(status_code=401, detail=t("auth.invalid_credentials"))
    _login_limiter.reset(key)
    return {'access_token': token, 'token_type': 'bearer'}


@app.post('/auth/staff-login', response_model=schemas.TokenOut)
def staff_login(payload: schemas.StaffLoginIn, request: Request, db: Session = Depends(get_session)):
    """Sign in as the shared admin or class-representative account."""
    key = _throttle_key(request)
    _enforce_login_throttle(key)
    with _service_call(db, "auth.login_failed"):
        token = services.AuthService(db).staff_login(payload.secret_key)
    if not token:
        _login_limiter.record_failure(key)
        raise HTTPException(status_code=401, detail=t("auth.invalid_secret"))
    _login_limiter.reset(key)
    return {'access_token': token, 'token_type': 'bearer'}


@app.get('/auth/me', response_model=schemas.ProfileOut)
def me(user: models.Profile = Depends(get_current_user)):
    """Return the signed-in profile with its role and edit rights."""
    return _profile_out(user)


@app.post('/auth/logout')
def logout(payload: dict = Depends(get_token_payload), db: Session = Depends(get_session)):
    """Revoke the bearer token used for this request."""
    with _service_call(db, "auth.logout_failed"):
        services.AuthService(db).revoke(payload)
    return {'status': 'ok'}


@app.get('/admin/users', response_model=List[schemas.ProfileOut])
def list_users(db: Session = Depends(get_session), user: models.Profile = Depends(require_admin)):
    with _service_call(db, "profile.load_failed"):
        profiles = services.ProfileService(db).list_profiles()
    return [_profile_out(p) for p in profiles]


@app.post('/admin/users', status_code=201, response_model=schemas.ProfileOut)
def provision_user(payload: schemas.ProfileIn, db: Session = Depends(get_session), user: models.Profile = Depends(require_admin)):
    """Create an account with any role (administrators only)."""
    with _service_call(db, "profile.save_failed"):
        profile = services.ProfileService(db).provision(payload.email, payload.password, payload.role, payload.full_name)
    return _profile_out(profile)


@app.get('/timetable', response_model=List[schemas.TimetableOut])
def list_timetable(db: Session = Depends(get_session), user: models.Profile = Depends(get_current_user)):
    """List all timetable entries ordered by date and time."""
    with _service_call(db, "timetable.load_failed"):
        entries = services.TimetableService(db).list_entries()
    return [_timetable_out(e) for e in entries]


@app.get('/timetable/today', response_model=List[schemas.TimetableOut])
def today_timetable(db: Session = Depends(get_session), user: models.Profile = Depends(get_current_user)):
    """List the entries dated today in the school's timezone."""
    with _service_call(db, "timetable.load_failed"):
        entries = services.TimetableService(db).today()
    return [_timetable_out(e) for e in entries]


@app.post('/timetable', status_code=201, response_model=schemas.TimetableOut)
def create_timetable(payload: schemas.TimetableIn, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    with _service_call(db, "timetable.save_failed"):
        entry = services.TimetableService(db).create(
            user.id, payload.lesson_date, payload.lesson_time, payload.subject, payload.room
        )
    return _timetable_out(entry)


@app.put('/timetable/{entry_id}', response_model=schemas.TimetableOut)
def update_timetable(entry_id: int, payload: schemas.TimetableIn, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    with _service_call(db, "timetable.save_failed"):
        entry = services.TimetableService(db).update(
            entry_id, payload.lesson_date, payload.lesson_time, payload.subject, payload.room
        )
    return _timetable_out(entry)


@app.delete('/timetable/{entry_id}')
def delete_timetable(entry_id: int, confirm: bool = False, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    """Delete an entry; requires `confirm=true`."""
    _require_confirmation(confirm, "timetable.confirm_delete")
    with _service_call(db, "timetable.delete_failed"):
        services.TimetableService(db).delete(entry_id)
    return {'status': 'deleted', 'id': entry_id}


@app.get('/posts', response_model=List[schemas.PostOut])
def list_posts(db: Session = Depends(get_session), user: models.Profile = Depends(get_current_user)):
    """List posts newest first; students also get their `is_read` flag."""
    with _service_call(db, "post.load_failed"):
        rows = services.PostService(db).list_posts(user)
    return [_post_out(p, is_read) for p, is_read in rows]


@app.post('/posts', status_code=201, response_model=schemas.PostOut)
def create_post(payload: schemas.PostIn, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    with _service_call(db, "post.save_failed"):
        post = services.PostService(db).create(user.id, payload.title, payload.body, payload.publish_date)
    return _post_out(post)


@app.put('/posts/{post_id}', response_model=schemas.PostOut)
def update_post(post_id: int, payload: schemas.PostIn, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    with _service_call(db, "post.save_failed"):
        post = services.PostService(db).update(post_id, payload.title, payload.body, payload.publish_date)
    return _post_out(post)


@app.delete('/posts/{post_id}')
def delete_post(post_id: int, confirm: bool = False, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    """Delete a post and its read receipts; requires `confirm=true`."""
    _require_confirmation(confirm, "post.confirm_delete")
    with _service_call(db, "post.delete_failed"):
        services.PostService(db).delete(post_id)
    return {'status': 'deleted', 'id': post_id}


@app.post('/posts/{post_id}/read')
def mark_post_read(post_id: int, db: Session = Depends(get_session), user: models.Profile = Depends(require_student)):
    """Mark a post as read; repeating the call keeps a single receipt."""
    with _service_call(db, "post.mark_read_failed"):
        receipt = services.PostService(db).mark_read(post_id, user.id)
    return {'post_id': receipt.post_id, 'is_read': True, 'read_at': receipt.read_at}


@app.get('/surveys', response_model=List[schemas.SurveyOut])
def list_surveys(db: Session = Depends(get_session), user: models.Profile = Depends(get_current_user)):
    """List surveys newest first; students also get their own answer."""
    with _service_call(db, "survey.load_failed"):
        rows = services.SurveyService(db).list_surveys(user)
    return [_survey_out(s, answer, responded) for s, answer, responded in rows]


@app.post('/surveys', status_code=201, response_model=schemas.SurveyOut)
def create_survey(payload: schemas.SurveyIn, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    with _service_call(db, "survey.save_failed"):
        survey = services.SurveyService(db).create(user.id, payload.question, payload.kind, payload.options)
    return _survey_out(survey)


@app.put('/surveys/{survey_id}', response_model=schemas.SurveyOut)
def update_survey(survey_id: int, payload: schemas.SurveyIn, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    with _service_call(db, "survey.save_failed"):
        survey = services.SurveyService(db).update(survey_id, payload.question, payload.kind, payload.options)
    return _survey_out(survey)


@app.delete('/surveys/{survey_id}')
def delete_survey(survey_id: int, confirm: bool = False, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    """Delete a survey and its responses; requires `confirm=true`."""
    _require_confirmation(confirm, "survey.confirm_delete")
    with _service_call(db, "survey.delete_failed"):
        services.SurveyService(db).delete(survey_id)
    return {'status': 'deleted', 'id': survey_id}


@app.post('/surveys/{survey_id}/responses', status_code=201)
def submit_survey_response(survey_id: int, payload: schemas.SurveyAnswerIn, db: Session = Depends(get_session), user: models.Profile = Depends(require_student)):
    """Submit the student's one answer; a second submission returns 409."""
    with _service_call(db, "survey.submit_failed"):
        response = services.SurveyService(db).submit_response(survey_id, user.id, payload.answer)
    return {'id': response.id, 'survey_id': response.survey_id, 'answer': response.answer}


@app.get('/surveys/{survey_id}/results', response_model=schemas.SurveyResultsOut)
def survey_results(survey_id: int, db: Session = Depends(get_session), user: models.Profile = Depends(require_editor)):
    """Answer counts and percentages, in order of first appearance."""
    with _service_call(db, "survey.results_failed"):
        return services.SurveyService(db).results(survey_id)


@app.get('/export/pdf')
def export_pdf(db: Session = Depends(get_session), user: models.Profile = Depends(get_current_user)):
    """Download the student's timetable, posts and answered surveys as PDF."""
    if user.role != models.ROLE_STUDENT:
        raise HTTPException(status_code=403, detail=t("export.students_only"))
    with _service_call(db, "export.load_failed"):
        timetable, posts, answered = services.ExportService(db).collect(user.id)
    generated_at = dates.now()
    try:
        layout = build_export_layout(user.display_name, generated_at, timetable, posts, answered)
        content = render_pdf(layout)
    except Exception:
        logger.exception("export_render_failed %s", json.dumps({"user_id": user.id}))
        raise HTTPException(status_code=500, detail=t("export.render_failed"))
    filename = export_filename(user.full_name, generated_at.date())
    disposition = f'attachment; filename="{ascii_fold(filename)}"; filename*=UTF-8\'\'{quote(filename)}'
    return Response(content=content, media_type="application/pdf", headers={"Content-Disposition": disposition})


@app.get("/", response_class=HTMLResponse)
def home():
    """Minimal homepage for quick manual testing."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="UTF-8" />
      <title>School Management API</title>
      <style>
        body { font-family: Arial, sans-serif; margin: 32px; }
        a { color: #0a6; }
        .card { max-width: 640px; padding: 16px; border: 1px solid #ddd; border-radius: 8px; }
      </style>
    </head>
    <body>
      <div class="card">
        <h1>School Management API</h1>
        <p>Quick links for local testing:</p>
        <ul>
          <li><a href="/docs">Swagger UI</a></li>
          <li><a href="/health">Health check</a></li>
        </ul>
        <p>Use <code>/auth/login</code> or <code>/auth/staff-login</code> to get a token, then try <code>/timetable/today</code>, <code>/posts</code> or <code>/surveys</code>.</p>
      </div>
    </body>
    </html>
    """


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
