import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Awaitable, Dict, List, Optional, Set

from ..application.lifecycle import AppointmentStatus, next_statuses
from ..application.ports.appointments_repo import AppointmentDto, AppointmentFilters, NO_FILTERS
from ..config import settings
from ..exceptions import (
    ActionInFlightError,
    AppointmentError,
    NotFoundError,
    RequestTimeoutError,
    SessionClosedError,
    TransportError,
)
from .gateway import AppointmentsGateway
from .notifications import LoggingNotifier, Notification, NotificationKind, Notifier
from .session import ClientSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MirrorEntry:
    appointment: AppointmentDto
    pending_status: Optional[AppointmentStatus] = None

    @property
    def id(self) -> str:
        return self.appointment.id

    @property
    def status(self) -> AppointmentStatus:
        return self.appointment.status

    @property
    def is_pending(self) -> bool:
        return self.pending_status is not None


class AppointmentMirror:
    """One viewer's local copy of their appointments.

    Status changes are applied locally first and reconciled with the server
    afterwards:

    1. snapshot the whole mirror,
    2. apply the requested status and mark the entry pending,
    3. send the request (bounded by ``timeout``),
    4. adopt the server's record on success, or restore the snapshot and
       re-raise on failure,
    5. refresh everything from the server either way.

    Only one action per appointment may be in flight; a second one fails
    with ``ActionInFlightError`` instead of queueing. Entries are replaced,
    never mutated, so a shallow copy of the entry map is a full snapshot.
    """

    def __init__(self, session: ClientSession, gateway: AppointmentsGateway, notifier: Optional[Notifier] = None, timeout: Optional[float] = None):
        session.attach(self)
        self.session = session
        self.gateway = gateway
        self.notifier = notifier or LoggingNotifier()
        self.timeout = timeout if timeout is not None else settings.CLIENT_REQUEST_TIMEOUT_SECONDS
        self._entries: Dict[str, MirrorEntry] = {}
        self._in_flight: Dict[str, AppointmentStatus] = {}
        self._background: Set[asyncio.Future] = set()
        self._closed = False

    # ---- read side ---------------------------------------------------

    @property
    def entries(self) -> List[MirrorEntry]:
        return sorted(self._entries.values(), key=lambda e: e.appointment.scheduled_at)

    def entry(self, appointment_id: str) -> MirrorEntry:
        try:
            return self._entries[appointment_id]
        except KeyError:
            raise NotFoundError("Appointment is not in this view")

    def view(self, filters: AppointmentFilters = NO_FILTERS) -> List[MirrorEntry]:
        return [e for e in self.entries if filters.matches(e.appointment)]

    def counts(self) -> Dict[str, int]:
        out = {s.value: 0 for s in AppointmentStatus}
        for e in self._entries.values():
            out[e.status.value] += 1
        out["all"] = len(self._entries)
        return out

    def actions_for(self, appointment_id: str) -> List[AppointmentStatus]:
        """Statuses this viewer may request next; none while an update is pending."""
        e = self.entry(appointment_id)
        if appointment_id in self._in_flight:
            return []
        return list(next_statuses(e.status, self.session.actor.role))

    # ---- reconciliation ----------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError("This view has been closed")
        self.session.require_open()

    async def refresh(self) -> None:
        self._check_open()
        rows = await self.gateway.list_appointments()
        if self._closed:
            return
        fresh: Dict[str, MirrorEntry] = {}
        for appt in rows:
            pending = self._in_flight.get(appt.id)
            if pending is not None:
                # Keep showing the optimistic status until that action settles
                fresh[appt.id] = MirrorEntry(replace(appt, status=pending), pending)
            else:
                fresh[appt.id] = MirrorEntry(appt)
        self._entries = fresh

    async def _refresh_quietly(self) -> None:
        if self._closed or not self.session.is_open:
            return
        try:
            await self.refresh()
        except Exception as e:
            logger.warning(f"Appointment refresh failed, keeping current view: {e}")

    # ---- server calls ------------------------------------------------

    async def _send(self, call: Awaitable) -> AppointmentDto:
        task = asyncio.ensure_future(call)
        try:
            return await asyncio.wait_for(asyncio.shield(task), self.timeout)
        except asyncio.TimeoutError:
            # The request keeps running; if it lands later the view is
            # refreshed so it converges on what the server did.
            self._background.add(task)
            task.add_done_callback(self._on_late_completion)
            raise RequestTimeoutError()

    def _on_late_completion(self, task: asyncio.Future) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.info(f"Timed out request finished with {type(exc).__name__}: {exc}")
            return
        if self._closed:
            return
        logger.info("Timed out request succeeded late; refreshing appointments")
        refresh = asyncio.ensure_future(self._refresh_quietly())
        self._background.add(refresh)
        refresh.add_done_callback(self._background.discard)

    def _notify(self, kind: NotificationKind, title: str, message: str, error_kind: Optional[str] = None) -> None:
        self.notifier.notify(Notification(kind=kind, title=title, message=message, error_kind=error_kind))

    # ---- actions -----------------------------------------------------

    async def request_status(self, appointment_id: str, status: AppointmentStatus) -> AppointmentDto:
        status = AppointmentStatus(status)
        if status == AppointmentStatus.CANCELLED:
            return await self._apply(
                appointment_id,
                status,
                self.gateway.cancel,
                ("Appointment Cancelled", "Your appointment has been cancelled successfully."),
                ("Cancellation Failed", "Unable to cancel appointment. Please try again."),
            )
        return await self._apply(
            appointment_id,
            status,
            lambda appt_id: self.gateway.update_status(appt_id, status),
            ("Status updated", f"Appointment marked as {status.value}."),
            ("Update failed", "Unable to update appointment status"),
        )

    async def cancel(self, appointment_id: str) -> AppointmentDto:
        return await self.request_status(appointment_id, AppointmentStatus.CANCELLED)

    async def _apply(self, appointment_id: str, status: AppointmentStatus, send, on_success, on_error) -> AppointmentDto:
        self._check_open()
        if appointment_id in self._in_flight:
            raise ActionInFlightError(appointment_id)
        current = self.entry(appointment_id)

        snapshot = dict(self._entries)
        self._entries[appointment_id] = MirrorEntry(
            replace(current.appointment, status=status), pending_status=status
        )
        self._in_flight[appointment_id] = status
        try:
            updated = await self._send(send(appointment_id))
        except (AppointmentError, TransportError) as e:
            self._entries = snapshot
            self._notify(NotificationKind.ERROR, on_error[0], e.message or on_error[1], error_kind=e.kind)
            raise
        except asyncio.CancelledError:
            self._entries = snapshot
            raise
        except Exception as e:
            self._entries = snapshot
            logger.error(f"Unexpected error updating appointment {appointment_id}: {e}", exc_info=True)
            self._notify(NotificationKind.ERROR, on_error[0], on_error[1], error_kind="unexpected")
            raise
        else:
            self._entries[appointment_id] = MirrorEntry(updated)
            self._notify(NotificationKind.SUCCESS, on_success[0], on_success[1])
            return updated
        finally:
            self._in_flight.pop(appointment_id, None)
            await self._refresh_quietly()

    async def book(self, doctor_id: str, scheduled_at: datetime, notes: Optional[str] = None) -> AppointmentDto:
        """Book a new appointment. Not optimistic: there is no id until the server answers."""
        self._check_open()
        try:
            appt = await self._send(self.gateway.book(doctor_id, scheduled_at, notes))
        except (AppointmentError, TransportError) as e:
            self._notify(NotificationKind.ERROR, "Booking Failed", e.message or "Something went wrong. Please try again.", error_kind=e.kind)
            raise
        except Exception as e:
            logger.error(f"Unexpected error booking appointment: {e}", exc_info=True)
            self._notify(NotificationKind.ERROR, "Booking Failed", "Something went wrong. Please try again.", error_kind="unexpected")
            raise
        else:
            self._entries[appt.id] = MirrorEntry(appt)
            self._notify(
                NotificationKind.SUCCESS,
                "Appointment Booked!",
                "Your appointment has been successfully scheduled.",
            )
            return appt
        finally:
            await self._refresh_quietly()

    async def teardown(self) -> None:
        if self._closed:
            return
        self._closed = True
        for task in list(self._background):
            task.cancel()
        self._background.clear()
        self._entries.clear()
        self._in_flight.clear()
        self.session.detach(self)
