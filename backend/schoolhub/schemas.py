"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable. Required text fields
default to empty strings so that missing values reach the service
layer, which reports them with a localized message instead of a
generic validation error.
"""

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel


class RegisterIn(BaseModel):
    """Payload for student self sign-up."""
    email: str = ""
    password: str = ""
    full_name: Optional[str] = None


class LoginIn(BaseModel):
    """Payload for email/password sign-in."""
    email: str = ""
    password: str = ""


class StaffLoginIn(BaseModel):
    """Payload for the admin/BCS secret key sign-in."""
    secret_key: str = ""


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str
    token_type: str = "bearer"


class ProfileOut(BaseModel):
    id: int
    email: str
    role: str
    role_label: str
    full_name: Optional[str] = None
    can_edit: bool


class ProfileIn(BaseModel):
    """Account provisioning payload (admin only)."""
    email: str = ""
    password: str = ""
    role: str = "student"
    full_name: Optional[str] = None


class TimetableIn(BaseModel):
    lesson_date: Optional[date] = None
    lesson_time: Optional[time] = None
    subject: str = ""
    room: str = ""


class TimetableOut(BaseModel):
    id: int
    lesson_date: date
    lesson_time: time
    subject: str
    room: str
    created_by: int


class PostIn(BaseModel):
    """Create/update payload for a post; `publish_date` defaults to today."""
    title: str = ""
    body: str = ""
    publish_date: Optional[date] = None


class PostOut(BaseModel):
    id: int
    title: str
    body: str
    publish_date: date
    created_by: int
    is_read: Optional[bool] = None


class SurveyIn(BaseModel):
    question: str = ""
    kind: str = "text"
    options: List[str] = []


class SurveyOut(BaseModel):
    id: int
    question: str
    kind: str
    options: Optional[List[str]] = None
    created_by: int
    created_at: datetime
    has_responded: Optional[bool] = None
    user_response: Optional[str] = None


class SurveyAnswerIn(BaseModel):
    """A student's answer: free text or the chosen option string."""
    answer: str = ""


class AnswerCount(BaseModel):
    answer: str
    count: int
    percentage: float


class SurveyResultsOut(BaseModel):
    survey_id: int
    question: str
    total: int
    results: List[AnswerCount]
    message: Optional[str] = None
