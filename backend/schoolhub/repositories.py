"""Repository classes encapsulating database operations.

Each repository is small and focused on a single table (profiles,
timetable, posts, surveys, responses, read receipts, revoked tokens).
Repositories return SQLModel objects and perform commits/refreshes
where appropriate. Together they are the only code that talks to the
data store; everything above them treats it as a generic tabular CRUD
API with ordering, equality filters and keyed upserts.
"""

from datetime import date, datetime, timezone
from typing import List, Optional

from sqlmodel import Session, select

from . import models


class ProfileRepository:
    """CRUD operations for `Profile` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, profile: models.Profile) -> models.Profile:
        """Persist a new profile and return the managed instance."""
        self.session.add(profile)
        self.session.commit()
        self.session.refresh(profile)
        return profile

    def get(self, profile_id: int) -> Optional[models.Profile]:
        """Get a `Profile` by primary key."""
        return self.session.get(models.Profile, profile_id)

    def get_by_email(self, email: str) -> Optional[models.Profile]:
        """Return a `Profile` by email or `None` if not found."""
        stmt = select(models.Profile).where(models.Profile.email == email)
        return self.session.exec(stmt).first()

    def list_all(self) -> List[models.Profile]:
        stmt = select(models.Profile).order_by(models.Profile.created_at, models.Profile.id)
        return self.session.exec(stmt).all()

    def upsert(self, email: str, **fields) -> models.Profile:
        """Insert or update the profile keyed by `email`."""
        existing = self.get_by_email(email)
        if existing:
            for name, value in fields.items():
                setattr(existing, name, value)
            self.session.add(existing)
            self.session.commit()
            self.session.refresh(existing)
            return existing
        return self.create(models.Profile(email=email, **fields))


class TimetableRepository:
    """CRUD operations for timetable entries."""
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> List[models.TimetableEntry]:
        """Return every entry ordered by date then time."""
        stmt = select(models.TimetableEntry).order_by(
            models.TimetableEntry.lesson_date, models.TimetableEntry.lesson_time, models.TimetableEntry.id
        )
        return self.session.exec(stmt).all()

    def list_for_day(self, day: date) -> List[models.TimetableEntry]:
        stmt = select(models.TimetableEntry).where(
            models.TimetableEntry.lesson_date == day
        ).order_by(models.TimetableEntry.lesson_time, models.TimetableEntry.id)
        return self.session.exec(stmt).all()

    def get(self, entry_id: int) -> Optional[models.TimetableEntry]:
        return self.session.get(models.TimetableEntry, entry_id)

    def create(self, entry: models.TimetableEntry) -> models.TimetableEntry:
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def update(self, entry: models.TimetableEntry, **fields) -> models.TimetableEntry:
        for name, value in fields.items():
            setattr(entry, name, value)
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def delete(self, entry: models.TimetableEntry) -> None:
        self.session.delete(entry)
        self.session.commit()


class PostRepository:
    """CRUD operations for posts; deleting a post drops its read receipts."""
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> List[models.Post]:
        """Return every post, newest publish date first."""
        stmt = select(models.Post).order_by(models.Post.publish_date.desc(), models.Post.id.desc())
        return self.session.exec(stmt).all()

    def get(self, post_id: int) -> Optional[models.Post]:
        return self.session.get(models.Post, post_id)

    def create(self, post: models.Post) -> models.Post:
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        return post

    def update(self, post: models.Post, **fields) -> models.Post:
        for name, value in fields.items():
            setattr(post, name, value)
        self.session.add(post)
        self.session.commit()
        self.session.refresh(post)
        return post

    def delete(self, post: models.Post) -> None:
        receipts = self.session.exec(select(models.ReadReceipt).where(models.ReadReceipt.post_id == post.id)).all()
        for receipt in receipts:
            self.session.delete(receipt)
        self.session.delete(post)
        self.session.commit()


class ReadReceiptRepository:
    """Keyed upserts and lookups for read receipts."""
    def __init__(self, session: Session):
        self.session = session

    def upsert(self, post_id: int, user_id: int) -> models.ReadReceipt:
        """Mark `post_id` read for `user_id`, refreshing `read_at` if already read."""
        existing = self.session.exec(
            select(models.ReadReceipt).where(
                models.ReadReceipt.post_id == post_id,
                models.ReadReceipt.user_id == user_id
            )
        ).first()
        if existing:
            existing.read_at = datetime.now(timezone.utc)
            self.session.add(existing)
            self.session.commit()
            self.session.refresh(existing)
            return existing
        receipt = models.ReadReceipt(post_id=post_id, user_id=user_id)
        self.session.add(receipt)
        self.session.commit()
        self.session.refresh(receipt)
        return receipt

    def read_post_ids(self, user_id: int) -> set:
        stmt = select(models.ReadReceipt.post_id).where(models.ReadReceipt.user_id == user_id)
        return set(self.session.exec(stmt).all())


class SurveyRepository:
    """CRUD operations for surveys; deleting a survey drops its responses."""
    def __init__(self, session: Session):
        self.session = session

    def list_all(self) -> List[models.Survey]:
        """Return every survey, newest first."""
        stmt = select(models.Survey).order_by(models.Survey.created_at.desc(), models.Survey.id.desc())
        return self.session.exec(stmt).all()

    def get(self, survey_id: int) -> Optional[models.Survey]:
        return self.session.get(models.Survey, survey_id)

    def create(self, survey: models.Survey) -> models.Survey:
        self.session.add(survey)
        self.session.commit()
        self.session.refresh(survey)
        return survey

    def update(self, survey: models.Survey, **fields) -> models.Survey:
        for name, value in fields.items():
            setattr(survey, name, value)
        self.session.add(survey)
        self.session.commit()
        self.session.refresh(survey)
        return survey

    def delete(self, survey: models.Survey) -> None:
        responses = self.session.exec(
            select(models.SurveyResponse).where(models.SurveyResponse.survey_id == survey.id)
        ).all()
        for response in responses:
            self.session.delete(response)
        self.session.delete(survey)
        self.session.commit()


class SurveyResponseRepository:
    """Insert-once storage and queries for survey responses."""
    def __init__(self, session: Session):
        self.session = session

    def get_for_user(self, survey_id: int, user_id: int) -> Optional[models.SurveyResponse]:
        stmt = select(models.SurveyResponse).where(
            models.SurveyResponse.survey_id == survey_id,
            models.SurveyResponse.user_id == user_id
        )
        return self.session.exec(stmt).first()

    def insert(self, response: models.SurveyResponse) -> models.SurveyResponse:
        """Insert a response; the unique (survey, user) key rejects a second one."""
        self.session.add(response)
        self.session.commit()
        self.session.refresh(response)
        return response

    def answers_for_survey(self, survey_id: int) -> List[str]:
        """Return every stored answer for `survey_id` in insertion order."""
        stmt = select(models.SurveyResponse.answer).where(
            models.SurveyResponse.survey_id == survey_id
        ).order_by(models.SurveyResponse.id)
        return self.session.exec(stmt).all()

    def answers_by_user(self, user_id: int) -> dict:
        """Map survey id -> answer for everything `user_id` has answered."""
        stmt = select(models.SurveyResponse.survey_id, models.SurveyResponse.answer).where(
            models.SurveyResponse.user_id == user_id
        )
        return {survey_id: answer for survey_id, answer in self.session.exec(stmt).all()}


class TokenRepository:
    """Track bearer tokens revoked by sign-out."""
    def __init__(self, session: Session):
        self.session = session

    def revoke(self, jti: str, expires_at: datetime) -> None:
        if self.session.get(models.RevokedToken, jti):
            return
        self.session.add(models.RevokedToken(jti=jti, expires_at=expires_at))
        self.session.commit()

    def is_revoked(self, jti: str) -> bool:
        return self.session.get(models.RevokedToken, jti) is not None

    def purge_expired(self, now: datetime) -> int:
        """Drop revocations whose token has expired anyway."""
        expired = self.session.exec(select(models.RevokedToken).where(models.RevokedToken.expires_at < now)).all()
        for token in expired:
            self.session.delete(token)
        self.session.commit()
        return len(expired)
