"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Table names follow the hosted schema the school already used
(`profiles`, `timetable`, `posts`, `survey`, `survey_responses`,
`read_posts`) so an existing database can be pointed at directly.
"""

from typing import List, Optional
from datetime import date, datetime, time, timezone

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field

ROLE_ADMIN = "admin"
ROLE_BCS = "bcs"
ROLE_STUDENT = "student"
ROLES = (ROLE_ADMIN, ROLE_BCS, ROLE_STUDENT)
EDITOR_ROLES = (ROLE_ADMIN, ROLE_BCS)

KIND_TEXT = "text"
KIND_MULTIPLE_CHOICE = "multiple_choice"
SURVEY_KINDS = (KIND_TEXT, KIND_MULTIPLE_CHOICE)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(SQLModel, table=True):
    """A registered account and its role.

    Fields:
    - `email`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `role`: one of `admin`, `bcs` or `student`; gates edit rights
    """
    __tablename__ = "profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    role: str = Field(default=ROLE_STUDENT, index=True)
    full_name: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def can_edit(self) -> bool:
        return self.role in EDITOR_ROLES

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


class TimetableEntry(SQLModel, table=True):
    """A single lesson slot in the class timetable."""
    __tablename__ = "timetable"

    id: Optional[int] = Field(default=None, primary_key=True)
    lesson_date: date = Field(index=True)
    lesson_time: time
    subject: str
    room: str
    created_by: int = Field(foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=_utcnow)


class Post(SQLModel, table=True):
    """An announcement shown to the whole class."""
    __tablename__ = "posts"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    body: str
    publish_date: date = Field(index=True)
    created_by: int = Field(foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=_utcnow)


class Survey(SQLModel, table=True):
    """A single-question survey.

    `options` holds the choices for `multiple_choice` surveys and is
    `None` for free-text ones.
    """
    __tablename__ = "survey"

    id: Optional[int] = Field(default=None, primary_key=True)
    question: str
    kind: str = Field(default=KIND_TEXT)
    options: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    created_by: int = Field(foreign_key="profiles.id")
    created_at: datetime = Field(default_factory=_utcnow, index=True)


class SurveyResponse(SQLModel, table=True):
    """One student's answer to a survey; at most one per (survey, user)."""
    __tablename__ = "survey_responses"
    __table_args__ = (UniqueConstraint("survey_id", "user_id", name="uq_survey_response_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    survey_id: int = Field(foreign_key="survey.id", index=True)
    user_id: int = Field(foreign_key="profiles.id", index=True)
    answer: str
    timestamp: datetime = Field(default_factory=_utcnow)


class ReadReceipt(SQLModel, table=True):
    """Marks a post as read by a user; at most one per (post, user)."""
    __tablename__ = "read_posts"
    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_read_post_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(foreign_key="posts.id", index=True)
    user_id: int = Field(foreign_key="profiles.id", index=True)
    read_at: datetime = Field(default_factory=_utcnow)


class RevokedToken(SQLModel, table=True):
    """The `jti` of a bearer token that was signed out before it expired."""
    __tablename__ = "revoked_tokens"

    jti: str = Field(primary_key=True)
    expires_at: datetime
