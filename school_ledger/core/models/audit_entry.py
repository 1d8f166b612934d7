"""
Audit entry: before/after snapshot pair written ahead of every tracked mutation.
Entries of one editing session form a single LIFO stack ordered by sequence.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from school_ledger.db.session import Base
from school_ledger.db.types import JSONType


class AuditEntry(Base):
    __tablename__ = "audit_entries"
    __table_args__ = (
        UniqueConstraint("session_id", "sequence", name="uq_audit_entry_session_sequence"),
        CheckConstraint(
            "state IN ('active','superseded','reverted')",
            name="chk_audit_entry_state",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("editing_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id = Column(String(64), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    section_name = Column(String(40), nullable=False)
    # Snapshots are tagged by section_name and validated by that section's schema on revert.
    before_snapshot = Column(JSONType, nullable=True)
    after_snapshot = Column(JSONType, nullable=True)
    actor = Column(String(255), nullable=False)
    state = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    reverted_at = Column(DateTime(timezone=True), nullable=True)

    session = relationship("EditingSession", backref="entries", foreign_keys=[session_id])
