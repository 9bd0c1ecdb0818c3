from __future__ import annotations

import secrets
import string
from typing import Optional, Tuple
from sqlmodel import Session, select

from notepin.models.share import Share


TOKEN_LENGTH = 32
_ALPHABET = string.ascii_letters + string.digits


def generate_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class SharesRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_or_create_for_recording(self, recording_id: int) -> Tuple[Share, bool]:
        existing = self.get_by_recording(recording_id)
        if existing is not None:
            return existing, False
        share = Share(recording_id=recording_id, token=generate_token())
        self.session.add(share)
        self.session.commit()
        self.session.refresh(share)
        return share, True

    def get_by_recording(self, recording_id: int) -> Optional[Share]:
        statement = select(Share).where(Share.recording_id == recording_id)
        return self.session.exec(statement).first()

    def get_by_token(self, token: str) -> Optional[Share]:
        statement = select(Share).where(Share.token == token)
        return self.session.exec(statement).first()
