"""
Registration model: one attendee's seat or waitlist slot for one event.

Key design decisions:
- Cancellation deletes the row; only `registered` and `waitlisted` exist
- Partial unique index on (attendee_id, event_id) over active statuses
  rejects a second active row even when two inserts race
- Composite index (event_id, status, created_at, id) serves both the
  registered-count query and the FIFO waitlist scan
- `created_at` is store-assigned; ties are broken by `id`
"""

import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class RegistrationStatus(str, enum.Enum):
    REGISTERED = "registered"
    WAITLISTED = "waitlisted"


ACTIVE_STATUSES = (RegistrationStatus.REGISTERED.value, RegistrationStatus.WAITLISTED.value)
_ACTIVE_PREDICATE = text("status IN ('registered', 'waitlisted')")


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    attendee_id = Column(Integer, nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False)

    event = relationship("Event", back_populates="registrations")

    __table_args__ = (
        CheckConstraint("status IN ('registered', 'waitlisted')", name="check_registration_status"),
        Index(
            "uq_registrations_active_attendee_event",
            "attendee_id",
            "event_id",
            unique=True,
            postgresql_where=_ACTIVE_PREDICATE,
            sqlite_where=_ACTIVE_PREDICATE,
        ),
        Index("ix_registrations_event_status_fifo", "event_id", "status", "created_at", "id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, attendee={self.attendee_id}, "
            f"event={self.event_id}, status={self.status})>"
        )
