"""
Registration service: seat admission, waitlisting and FIFO promotion.

CONCURRENCY STRATEGY: Serializable Transactions with Retry
==========================================================

Problem:
  Two attendees register for the last seat simultaneously.
  Both count registered=C-1, both insert 'registered', both succeed.
  Result: registered count exceeds capacity.

Solution:
  Each register/cancel call is one unit of work executed by
  run_in_transaction():

  1. Existence check, capacity read, live COUNT(*) and the single write
     all happen inside one transaction
  2. On PostgreSQL that transaction runs at SERIALIZABLE isolation, so of
     two racing units that both read the same count, one is aborted with
     a serialization failure and re-run from scratch; the re-run sees the
     committed seat and waitlists instead
  3. On SQLite every transaction starts with BEGIN IMMEDIATE, which
     serializes units of work on the database write lock
  4. A partial unique index on (attendee_id, event_id) over the active
     statuses is the final guard against a duplicate active row

  The registered count is never stored. It is derived inside the
  transaction that acts on it, so there is no second counter to keep
  consistent.

Promotion:
  Cancelling a 'registered' row frees a seat. In the same transaction as
  the delete, the oldest 'waitlisted' row (created_at, then id) is flipped
  to 'registered' if the event still has headroom. Cancelling a
  'waitlisted' row never promotes anyone.

Alternatives considered:
  - SELECT ... FOR UPDATE on the event row: serializes per event without
    aborts, but blocks readers of the event and does nothing on SQLite.
  - Denormalized counter with optimistic version check: fast, but a
    second invariant to maintain on every write path.
"""

import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, delete, func, and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from app.models.registration import Registration, RegistrationStatus, ACTIVE_STATUSES
from app.services.interfaces.catalog import EventCatalog
from app.services.notification_service import NotificationDispatcher
from app.db.transaction import run_in_transaction, is_unique_violation
from app.core.exceptions import AlreadyActive, NotRegistered, EventNotFound, RegistrationError
from app.core.logging import get_logger
from app.core.metrics import record_registration, record_cancellation, registration_latency

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    registration_id: int
    status: RegistrationStatus

    @property
    def admitted(self) -> bool:
        return self.status is RegistrationStatus.REGISTERED


@dataclass(frozen=True)
class CancellationResult:
    prior_status: RegistrationStatus
    promoted_registration_id: Optional[int] = None
    promoted_attendee_id: Optional[int] = None


@dataclass(frozen=True)
class RegistrationSummary:
    event_id: int
    capacity: Optional[int]
    registered_count: int
    waitlisted_count: int

    @property
    def seats_remaining(self) -> Optional[int]:
        if self.capacity is None:
            return None
        return max(self.capacity - self.registered_count, 0)


def has_open_seat(capacity: Optional[int], registered_count: int) -> bool:
    """None capacity is unbounded; capacity 0 never has a seat."""
    return capacity is None or registered_count < capacity


class RegistrationCoordinator:
    """
    Owns the lifecycle of registration rows.

    Stateless: every decision is made from what the store returns inside
    the current transaction, so any number of instances may run in
    parallel across processes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        catalog: EventCatalog,
        dispatcher: NotificationDispatcher,
    ):
        self.session_factory = session_factory
        self.catalog = catalog
        self.dispatcher = dispatcher

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def register(self, attendee_id: int, event_id: int) -> RegistrationResult:
        """
        Admit or waitlist an attendee.

        Raises:
            AlreadyActive: attendee already registered or waitlisted
            EventNotFound: event does not exist
            TransientStoreFailure: store conflicts outlived all retries
        """
        start = time.perf_counter()
        try:
            result = await run_in_transaction(
                self.session_factory,
                lambda session: self._register(session, attendee_id, event_id),
                operation="register",
            )
        except AlreadyActive:
            record_registration("already_active")
            logger.warning("registration_rejected", reason="already_active",
                           attendee_id=attendee_id, event_id=event_id)
            raise
        except EventNotFound:
            record_registration("event_not_found")
            raise
        except RegistrationError:
            record_registration("error")
            raise
        finally:
            registration_latency.observe(time.perf_counter() - start)

        record_registration(result.status.value)
        logger.info(
            "registration_created",
            registration_id=result.registration_id,
            attendee_id=attendee_id,
            event_id=event_id,
            status=result.status.value,
        )

        if result.admitted:
            self.dispatcher.registration_confirmed(attendee_id, event_id)
        return result

    async def cancel(self, attendee_id: int, event_id: int) -> CancellationResult:
        """
        Remove an attendee's active registration, promoting from the waitlist
        when a confirmed seat is freed.

        Raises:
            NotRegistered: no active registration for the pair
            TransientStoreFailure: store conflicts outlived all retries
        """
        result = await run_in_transaction(
            self.session_factory,
            lambda session: self._cancel(session, attendee_id, event_id),
            operation="cancel",
        )

        promoted = result.promoted_registration_id is not None
        record_cancellation(result.prior_status.value, promoted)
        logger.info(
            "registration_cancelled",
            attendee_id=attendee_id,
            event_id=event_id,
            prior_status=result.prior_status.value,
        )

        if promoted:
            logger.info(
                "waitlist_promoted",
                registration_id=result.promoted_registration_id,
                attendee_id=result.promoted_attendee_id,
                event_id=event_id,
            )
            self.dispatcher.registration_confirmed(result.promoted_attendee_id, event_id)
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_registration(self, attendee_id: int, event_id: int) -> tuple[Registration, Optional[int]]:
        """Active registration and, when waitlisted, its 1-based queue position."""
        return await run_in_transaction(
            self.session_factory,
            lambda session: self._get_registration(session, attendee_id, event_id),
            operation="get_registration",
        )

    async def list_attendee_registrations(self, attendee_id: int) -> list[Registration]:
        return await run_in_transaction(
            self.session_factory,
            lambda session: self._list_attendee_registrations(session, attendee_id),
            operation="list_registrations",
        )

    async def event_summary(self, event_id: int) -> RegistrationSummary:
        return await run_in_transaction(
            self.session_factory,
            lambda session: self._event_summary(session, event_id),
            operation="event_summary",
        )

    # ------------------------------------------------------------------
    # Units of work (run inside one transaction each)
    # ------------------------------------------------------------------

    async def _get_registration(
        self, session: AsyncSession, attendee_id: int, event_id: int
    ) -> tuple[Registration, Optional[int]]:
        registration = await self._active_registration(session, attendee_id, event_id)
        if registration is None:
            raise NotRegistered()

        position = None
        if registration.status == RegistrationStatus.WAITLISTED.value:
            position = await self._waitlist_position(session, registration.id)
        return registration, position

    async def _list_attendee_registrations(self, session: AsyncSession, attendee_id: int) -> list[Registration]:
        result = await session.execute(
            select(Registration)
            .where(
                Registration.attendee_id == attendee_id,
                Registration.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Registration.created_at.desc(), Registration.id.desc())
        )
        return list(result.scalars().all())

    async def _event_summary(self, session: AsyncSession, event_id: int) -> RegistrationSummary:
        capacity = await self.catalog.get_event_capacity(session, event_id)
        result = await session.execute(
            select(Registration.status, func.count(Registration.id))
            .where(Registration.event_id == event_id)
            .group_by(Registration.status)
        )
        counts = {status: count for status, count in result.all()}

        return RegistrationSummary(
            event_id=event_id,
            capacity=capacity,
            registered_count=counts.get(RegistrationStatus.REGISTERED.value, 0),
            waitlisted_count=counts.get(RegistrationStatus.WAITLISTED.value, 0),
        )

    async def _register(self, session: AsyncSession, attendee_id: int, event_id: int) -> RegistrationResult:
        if await self._active_registration(session, attendee_id, event_id) is not None:
            raise AlreadyActive()

        capacity = await self.catalog.get_event_capacity(session, event_id)
        registered_count = await self._registered_count(session, event_id)

        if has_open_seat(capacity, registered_count):
            status = RegistrationStatus.REGISTERED
        else:
            status = RegistrationStatus.WAITLISTED

        registration = Registration(attendee_id=attendee_id, event_id=event_id, status=status.value)
        session.add(registration)
        try:
            await session.flush()
        except IntegrityError as e:
            # Active-row unique index: a concurrent call won the insert
            if is_unique_violation(e):
                raise AlreadyActive() from e
            raise

        return RegistrationResult(registration_id=registration.id, status=status)

    async def _cancel(self, session: AsyncSession, attendee_id: int, event_id: int) -> CancellationResult:
        registration = await self._active_registration(session, attendee_id, event_id)
        if registration is None:
            raise NotRegistered()

        prior_status = RegistrationStatus(registration.status)
        deleted = await session.execute(
            delete(Registration)
            .where(Registration.id == registration.id)
            .execution_options(synchronize_session=False)
        )
        if deleted.rowcount == 0:
            raise NotRegistered()
        session.expunge(registration)

        if prior_status is not RegistrationStatus.REGISTERED:
            return CancellationResult(prior_status=prior_status)

        promoted = await self._promote_next(session, event_id)
        if promoted is None:
            return CancellationResult(prior_status=prior_status)
        return CancellationResult(
            prior_status=prior_status,
            promoted_registration_id=promoted.id,
            promoted_attendee_id=promoted.attendee_id,
        )

    async def _promote_next(self, session: AsyncSession, event_id: int) -> Optional[Registration]:
        """Flip the oldest waitlisted row to registered if a seat is open."""
        capacity = await self.catalog.get_event_capacity(session, event_id)
        if capacity is None:
            return None

        registered_count = await self._registered_count(session, event_id)
        if registered_count >= capacity:
            return None

        result = await session.execute(
            select(Registration)
            .where(
                Registration.event_id == event_id,
                Registration.status == RegistrationStatus.WAITLISTED.value,
            )
            .order_by(Registration.created_at.asc(), Registration.id.asc())
            .limit(1)
        )
        candidate = result.scalar_one_or_none()
        if candidate is None:
            return None

        candidate.status = RegistrationStatus.REGISTERED.value
        await session.flush()
        return candidate

    # ------------------------------------------------------------------
    # Store reads
    # ------------------------------------------------------------------

    async def _active_registration(
        self, session: AsyncSession, attendee_id: int, event_id: int
    ) -> Optional[Registration]:
        result = await session.execute(
            select(Registration).where(
                Registration.attendee_id == attendee_id,
                Registration.event_id == event_id,
                Registration.status.in_(ACTIVE_STATUSES),
            )
        )
        return result.scalar_one_or_none()

    async def _registered_count(self, session: AsyncSession, event_id: int) -> int:
        result = await session.execute(
            select(func.count(Registration.id)).where(
                Registration.event_id == event_id,
                Registration.status == RegistrationStatus.REGISTERED.value,
            )
        )
        return result.scalar_one()

    async def _waitlist_position(self, session: AsyncSession, registration_id: int) -> int:
        # Column-to-column comparison; no timestamp is bound as a parameter
        ahead = aliased(Registration)
        result = await session.execute(
            select(func.count(ahead.id))
            .where(
                Registration.id == registration_id,
                ahead.event_id == Registration.event_id,
                ahead.status == RegistrationStatus.WAITLISTED.value,
                or_(
                    ahead.created_at < Registration.created_at,
                    and_(ahead.created_at == Registration.created_at, ahead.id < Registration.id),
                ),
            )
        )
        return result.scalar_one() + 1
