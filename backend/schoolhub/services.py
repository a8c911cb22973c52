"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and auxiliary logic. Services are intentionally thin: they validate
input before any store call, execute domain logic and persist rows via
repositories. Validation problems are raised as `ValueError` with a
localized message; missing rows as `NotFoundError`; duplicate keys as
`ConflictError`.
"""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from passlib.context import CryptContext
import jwt
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .messages import t
from .utils import dates
from .utils.survey_stats import answer_percentages, group_answers

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
STAFF_ACCOUNTS = {
    models.ROLE_ADMIN: ("admin@school.vn", "role.admin"),
    models.ROLE_BCS: ("bcs@school.vn", "role.bcs"),
}

logger = logging.getLogger("schoolhub.services")


class NotFoundError(LookupError):
    """The addressed row does not exist."""


class ConflictError(ValueError):
    """A keyed insert hit an existing row."""


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


class AuthService:
    """Sign-up, sign-in and sign-out."""
    def __init__(self, session: Session):
        self.session = session
        self.profile_repo = repositories.ProfileRepository(session)
        self.token_repo = repositories.TokenRepository(session)

    def register(self, email: str, password: str, full_name: Optional[str] = None,
                 role: str = models.ROLE_STUDENT) -> models.Profile:
        """Create a new profile with a hashed password.

        Returns the persisted `Profile`. Raises `ConflictError` if the email
        is already registered.
        """
        email = _clean(email).lower()
        if not email or not password:
            raise ValueError(t("auth.missing_credentials"))
        if role not in models.ROLES:
            raise ValueError(t("auth.invalid_role"))
        if self.profile_repo.get_by_email(email):
            raise ConflictError(t("auth.email_taken"))
        profile = models.Profile(
            email=email,
            password_hash=PWD_CTX.hash(password),
            role=role,
            full_name=_clean(full_name) or None,
        )
        try:
            profile = self.profile_repo.create(profile)
        except IntegrityError:
            self.session.rollback()
            raise ConflictError(t("auth.email_taken"))
        logger.info("profile_created id=%s role=%s", profile.id, profile.role)
        return profile

    def authenticate(self, email: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        email = _clean(email).lower()
        if not email or not password:
            raise ValueError(t("auth.missing_credentials"))
        profile = self.profile_repo.get_by_email(email)
        if not profile:
            return None
        if not PWD_CTX.verify(password, profile.password_hash):
            return None
        return self.issue_token(profile)

    def staff_login(self, secret_key: str) -> Optional[str]:
        """Sign in the shared admin or BCS account with its secret key.

        The matching staff profile is upserted on every successful sign-in
        so its role and display name stay in sync with configuration.
        Returns `None` for an unknown key.
        """
        if not secret_key:
            raise ValueError(t("auth.missing_secret"))
        if secret_key == settings.ADMIN_SECRET_KEY:
            role = models.ROLE_ADMIN
        elif secret_key == settings.BCS_SECRET_KEY:
            role = models.ROLE_BCS
        else:
            return None
        email, label_key = STAFF_ACCOUNTS[role]
        existing = self.profile_repo.get_by_email(email)
        fields = {"role": role, "full_name": t(label_key)}
        if not existing or not PWD_CTX.verify(secret_key, existing.password_hash):
            fields["password_hash"] = PWD_CTX.hash(secret_key)
        profile = self.profile_repo.upsert(email, **fields)
        logger.info("staff_login role=%s profile=%s", role, profile.id)
        return self.issue_token(profile)

    def issue_token(self, profile: models.Profile) -> str:
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {
            "user_id": profile.id,
            "email": profile.email,
            "role": profile.role,
            "jti": uuid.uuid4().hex,
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    def revoke(self, payload: dict) -> None:
        """Sign out: remember the token's `jti` until it would have expired."""
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        self.token_repo.purge_expired(datetime.now(timezone.utc))
        self.token_repo.revoke(payload["jti"], expires_at)


class ProfileService:
    """Account provisioning for administrators."""
    def __init__(self, session: Session):
        self.session = session
        self.profile_repo = repositories.ProfileRepository(session)

    def list_profiles(self) -> List[models.Profile]:
        return self.profile_repo.list_all()

    def provision(self, email: str, password: str, role: str, full_name: Optional[str] = None) -> models.Profile:
        return AuthService(self.session).register(email, password, full_name=full_name, role=role)


class TimetableService:
    """List and edit timetable entries."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.TimetableRepository(session)

    def list_entries(self) -> List[models.TimetableEntry]:
        return self.repo.list_all()

    def today(self, day: Optional[date] = None) -> List[models.TimetableEntry]:
        """Entries dated `day` (default: today in the school's timezone)."""
        return self.repo.list_for_day(day or dates.today())

    def _validated(self, lesson_date, lesson_time, subject, room) -> dict:
        subject, room = _clean(subject), _clean(room)
        if not lesson_date or not lesson_time or not subject or not room:
            raise ValueError(t("timetable.missing_fields"))
        return {"lesson_date": lesson_date, "lesson_time": lesson_time, "subject": subject, "room": room}

    def create(self, user_id: int, lesson_date, lesson_time, subject: str, room: str) -> models.TimetableEntry:
        fields = self._validated(lesson_date, lesson_time, subject, room)
        entry = self.repo.create(models.TimetableEntry(created_by=user_id, **fields))
        logger.info("timetable_created id=%s by=%s", entry.id, user_id)
        return entry

    def update(self, entry_id: int, lesson_date, lesson_time, subject: str, room: str) -> models.TimetableEntry:
        fields = self._validated(lesson_date, lesson_time, subject, room)
        entry = self.repo.get(entry_id)
        if not entry:
            raise NotFoundError(t("timetable.not_found"))
        return self.repo.update(entry, **fields)

    def delete(self, entry_id: int) -> None:
        entry = self.repo.get(entry_id)
        if not entry:
            raise NotFoundError(t("timetable.not_found"))
        self.repo.delete(entry)
        logger.info("timetable_deleted id=%s", entry_id)


class PostService:
    """List, edit and mark posts as read."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.PostRepository(session)
        self.receipt_repo = repositories.ReadReceiptRepository(session)

    def list_posts(self, viewer: models.Profile) -> List[Tuple[models.Post, Optional[bool]]]:
        """Return `(post, is_read)` pairs, newest first.

        `is_read` is only computed for students; other roles get `None`.
        """
        posts = self.repo.list_all()
        if viewer.role != models.ROLE_STUDENT:
            return [(p, None) for p in posts]
        read_ids = self.receipt_repo.read_post_ids(viewer.id)
        return [(p, p.id in read_ids) for p in posts]

    def _validated(self, title, body) -> dict:
        title, body = _clean(title), (body or "").strip()
        if not title or not body:
            raise ValueError(t("post.missing_fields"))
        return {"title": title, "body": body}

    def create(self, user_id: int, title: str, body: str, publish_date: Optional[date] = None) -> models.Post:
        fields = self._validated(title, body)
        fields["publish_date"] = publish_date or dates.today()
        post = self.repo.create(models.Post(created_by=user_id, **fields))
        logger.info("post_created id=%s by=%s", post.id, user_id)
        return post

    def update(self, post_id: int, title: str, body: str, publish_date: Optional[date] = None) -> models.Post:
        """Edit a post; a missing `publish_date` keeps the stored one."""
        fields = self._validated(title, body)
        post = self.repo.get(post_id)
        if not post:
            raise NotFoundError(t("post.not_found"))
        if publish_date:
            fields["publish_date"] = publish_date
        return self.repo.update(post, **fields)

    def delete(self, post_id: int) -> None:
        post = self.repo.get(post_id)
        if not post:
            raise NotFoundError(t("post.not_found"))
        self.repo.delete(post)
        logger.info("post_deleted id=%s", post_id)

    def mark_read(self, post_id: int, user_id: int) -> models.ReadReceipt:
        """Upsert the read receipt for `(post_id, user_id)`."""
        if not self.repo.get(post_id):
            raise NotFoundError(t("post.not_found"))
        try:
            return self.receipt_repo.upsert(post_id, user_id)
        except IntegrityError:
            # a concurrent request inserted the same key first
            self.session.rollback()
            return self.receipt_repo.upsert(post_id, user_id)


def validate_survey(question: str, kind: str, options: Optional[List[str]]) -> dict:
    """Normalize survey fields or raise `ValueError`.

    Blank options are dropped and the rest trimmed. A multiple-choice
    survey needs at least two remaining options; a text survey stores
    none.
    """
    question = _clean(question)
    if not question:
        raise ValueError(t("survey.missing_question"))
    if kind not in models.SURVEY_KINDS:
        raise ValueError(t("survey.invalid_kind"))
    if kind == models.KIND_TEXT:
        return {"question": question, "kind": kind, "options": None}
    cleaned = [o.strip() for o in (options or []) if o and o.strip()]
    if len(cleaned) < 2:
        raise ValueError(t("survey.too_few_options"))
    return {"question": question, "kind": kind, "options": cleaned}


class SurveyService:
    """Survey editing, student responses and aggregated results."""
    def __init__(self, session: Session):
        self.session = session
        self.repo = repositories.SurveyRepository(session)
        self.response_repo = repositories.SurveyResponseRepository(session)

    def list_surveys(self, viewer: models.Profile) -> List[Tuple[models.Survey, Optional[str], Optional[bool]]]:
        """Return `(survey, user_response, has_responded)` triples, newest first.

        Response status is only computed for students.
        """
        surveys = self.repo.list_all()
        if viewer.role != models.ROLE_STUDENT:
            return [(s, None, None) for s in surveys]
        answers = self.response_repo.answers_by_user(viewer.id)
        return [(s, answers.get(s.id), s.id in answers) for s in surveys]

    def get(self, survey_id: int) -> models.Survey:
        survey = self.repo.get(survey_id)
        if not survey:
            raise NotFoundError(t("survey.not_found"))
        return survey

    def create(self, user_id: int, question: str, kind: str, options: Optional[List[str]] = None) -> models.Survey:
        fields = validate_survey(question, kind, options)
        survey = self.repo.create(models.Survey(created_by=user_id, **fields))
        logger.info("survey_created id=%s kind=%s by=%s", survey.id, survey.kind, user_id)
        return survey

    def update(self, survey_id: int, question: str, kind: str, options: Optional[List[str]] = None) -> models.Survey:
        fields = validate_survey(question, kind, options)
        return self.repo.update(self.get(survey_id), **fields)

    def delete(self, survey_id: int) -> None:
        self.repo.delete(self.get(survey_id))
        logger.info("survey_deleted id=%s", survey_id)

    def submit_response(self, survey_id: int, user_id: int, answer: str) -> models.SurveyResponse:
        """Record a student's single answer to a survey.

        Raises `ConflictError` if the student already answered; the stored
        answer is left unchanged.
        """
        survey = self.get(survey_id)
        answer = (answer or "").strip()
        if not answer:
            raise ValueError(t("survey.missing_answer"))
        if survey.kind == models.KIND_MULTIPLE_CHOICE and answer not in (survey.options or []):
            raise ValueError(t("survey.invalid_option"))
        if self.response_repo.get_for_user(survey_id, user_id):
            raise ConflictError(t("survey.already_responded"))
        try:
            response = self.response_repo.insert(
                models.SurveyResponse(survey_id=survey_id, user_id=user_id, answer=answer)
            )
        except IntegrityError:
            self.session.rollback()
            raise ConflictError(t("survey.already_responded"))
        logger.info("survey_response survey=%s user=%s", survey_id, user_id)
        return response

    def results(self, survey_id: int) -> dict:
        """Count answers by text with each answer's share of the total.

        Zero responses yield an empty result list and the placeholder
        message instead of any percentage.
        """
        survey = self.get(survey_id)
        answers = self.response_repo.answers_for_survey(survey_id)
        out = {"survey_id": survey.id, "question": survey.question, "total": len(answers), "results": []}
        if not answers:
            out["message"] = t("survey.no_responses")
            return out
        counts = group_answers(answers)
        shares = answer_percentages(counts)
        out["results"] = [
            {"answer": answer, "count": count, "percentage": round(shares[answer], 2)}
            for answer, count in counts.items()
        ]
        return out


class ExportService:
    """Collect everything that goes into a student's personal export."""
    def __init__(self, session: Session):
        self.session = session

    def collect(self, user_id: int):
        """Return `(timetable, posts, answered)` for the export document.

        `answered` holds `(question, answer)` pairs for the surveys the user
        responded to, newest survey first.
        """
        timetable = repositories.TimetableRepository(self.session).list_all()
        posts = repositories.PostRepository(self.session).list_all()
        surveys = repositories.SurveyRepository(self.session).list_all()
        answers = repositories.SurveyResponseRepository(self.session).answers_by_user(user_id)
        answered = [(s.question, answers[s.id]) for s in surveys if answers.get(s.id)]
        return timetable, posts, answered
