"""
Event reminder endpoints. Due reminders are fired by the background sweep.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.schemas.reminder import ReminderCreate, ReminderResponse
from app.services.reminder_service import create_reminder, list_pending_reminders

router = APIRouter(prefix="/reminders", tags=["Reminders"])


@router.post("/", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
async def create_reminder_endpoint(
    data: ReminderCreate,
    db: AsyncSession = Depends(get_db),
):
    return await create_reminder(db, data)


@router.get("/{attendee_id}", response_model=list[ReminderResponse])
async def list_reminders_endpoint(
    attendee_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Reminders that have not fired yet, soonest first."""
    return await list_pending_reminders(db, attendee_id)
