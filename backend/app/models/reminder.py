"""
Event reminder scheduled by an attendee and fired by the reminder sweep.
"""

from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey, Index, false

from app.db.base import Base, TimestampMixin


class EventReminder(Base, TimestampMixin):
    __tablename__ = "event_reminders"

    id = Column(Integer, primary_key=True, index=True)
    attendee_id = Column(Integer, nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    remind_at = Column(DateTime(timezone=True), nullable=False)
    is_triggered = Column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        # Sweep query: untriggered reminders that are due
        Index("ix_event_reminders_due", "is_triggered", "remind_at"),
    )

    def __repr__(self) -> str:
        return f"<EventReminder(id={self.id}, attendee={self.attendee_id}, event={self.event_id})>"
