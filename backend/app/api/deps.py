"""
FastAPI dependencies wiring the registration core to its collaborators.
Tests override these to point at a throwaway database or a fake notifier.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.session import get_registration_session_factory
from app.services.event_service import SqlEventCatalog
from app.services.interfaces.catalog import EventCatalog
from app.services.notification_service import NotificationDispatcher, get_dispatcher
from app.services.registration_service import RegistrationCoordinator


def get_catalog() -> EventCatalog:
    return SqlEventCatalog()


def get_coordinator(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_registration_session_factory),
    catalog: EventCatalog = Depends(get_catalog),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> RegistrationCoordinator:
    return RegistrationCoordinator(session_factory, catalog, dispatcher)
