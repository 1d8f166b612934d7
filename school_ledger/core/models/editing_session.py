"""Editing session: owns one undo stack. top_sequence is the explicit top-of-stack pointer (0 = empty)."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Uuid

from school_ledger.db.session import Base


class EditingSession(Base):
    __tablename__ = "editing_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), nullable=False, index=True)
    actor = Column(String(255), nullable=False)
    next_sequence = Column(Integer, nullable=False, default=1)
    top_sequence = Column(Integer, nullable=False, default=0)
    opened_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
