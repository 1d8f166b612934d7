"""Profile section storage: one JSON document per student per tracked section."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, UniqueConstraint, Uuid

from school_ledger.db.session import Base
from school_ledger.db.types import JSONType


class StudentSection(Base):
    """Current value of a profile section. Overwritten by mutations and by undo."""

    __tablename__ = "student_sections"
    __table_args__ = (
        UniqueConstraint("student_id", "section_name", name="uq_student_section"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(String(64), nullable=False, index=True)
    section_name = Column(String(40), nullable=False)
    data = Column(JSONType, nullable=False)
    updated_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
