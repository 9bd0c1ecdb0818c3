from __future__ import annotations

from sqlmodel import Session, select

from notepin.models.event import Event


class EventsRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, event: Event) -> Event:
        self.session.add(event)
        self.session.commit()
        return event

    def list_by_name(self, name: str) -> list[Event]:
        statement = select(Event).where(Event.name == name).order_by(Event.id.asc())
        return list(self.session.exec(statement))

    def list_by_recording(self, recording_id: int) -> list[Event]:
        statement = select(Event).where(Event.recording_id == recording_id).order_by(Event.id.asc())
        return list(self.session.exec(statement))
