from __future__ import annotations

from typing import Optional
from sqlmodel import Session, select

from notepin.models.base import utc_now
from notepin.models.recording import Recording, RecordingStatus


LISTED_STATUSES = [s.value for s in RecordingStatus]


class RecordingsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, recording: Recording) -> Recording:
        self.session.add(recording)
        self.session.commit()
        self.session.refresh(recording)
        return recording

    def get(self, recording_id: int) -> Optional[Recording]:
        return self.session.get(Recording, recording_id)

    def update(self, recording: Recording) -> Recording:
        # Whole-row save; concurrent writers are last-writer-wins
        recording.updated_at = utc_now()
        self.session.add(recording)
        self.session.commit()
        self.session.refresh(recording)
        return recording

    def list_for_owner(
        self,
        user_id: Optional[int] = None,
        anonymous_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Recording]:
        statement = select(Recording).where(Recording.status.in_(LISTED_STATUSES))
        if user_id is not None:
            statement = statement.where(Recording.user_id == user_id)
        elif anonymous_id:
            statement = statement.where(Recording.anonymous_id == anonymous_id)
        else:
            return []
        statement = statement.order_by(Recording.created_at.desc(), Recording.id.desc()).limit(limit).offset(offset)
        return list(self.session.exec(statement))

    def link_anonymous(self, anonymous_id: str, user_id: int) -> int:
        """Move unowned recordings of an anonymous visitor to a user account."""
        statement = select(Recording).where(
            Recording.anonymous_id == anonymous_id,
            Recording.user_id.is_(None),
        )
        rows = list(self.session.exec(statement))
        for row in rows:
            row.user_id = user_id
            row.anonymous_id = None
            row.updated_at = utc_now()
            self.session.add(row)
        if rows:
            self.session.commit()
        return len(rows)
