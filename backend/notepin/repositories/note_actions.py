from __future__ import annotations

from typing import Optional
from sqlmodel import Session, select

from notepin.models.base import utc_now
from notepin.models.note_action import NoteAction


class NoteActionsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, action: NoteAction) -> NoteAction:
        self.session.add(action)
        self.session.commit()
        self.session.refresh(action)
        return action

    def get_for_recording(self, recording_id: int, action_id: int) -> Optional[NoteAction]:
        statement = select(NoteAction).where(
            NoteAction.recording_id == recording_id,
            NoteAction.id == action_id,
        )
        return self.session.exec(statement).first()

    def update(self, action: NoteAction) -> NoteAction:
        action.updated_at = utc_now()
        self.session.add(action)
        self.session.commit()
        self.session.refresh(action)
        return action

    def delete(self, action: NoteAction) -> None:
        self.session.delete(action)
        self.session.commit()

    def list_by_recording(self, recording_id: int) -> list[NoteAction]:
        statement = select(NoteAction).where(NoteAction.recording_id == recording_id).order_by(NoteAction.id.asc())
        return list(self.session.exec(statement))
