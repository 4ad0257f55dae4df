import asyncio
from datetime import date, datetime, time
from typing import List, Optional, Protocol

from ..application.lifecycle import AppointmentStatus
from ..application.ports.appointments_repo import AppointmentDto, AppointmentFilters, NO_FILTERS
from ..application.services.appointments_service import AppointmentsService
from .session import ClientSession


class AppointmentsGateway(Protocol):
    """What a mirror needs from the server, bound to one session."""

    async def list_appointments(self, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        ...

    async def update_status(self, appointment_id: str, status: AppointmentStatus) -> AppointmentDto:
        ...

    async def cancel(self, appointment_id: str) -> AppointmentDto:
        ...

    async def book(self, doctor_id: str, scheduled_at: datetime, notes: Optional[str] = None) -> AppointmentDto:
        ...

    async def available_slots(self, doctor_id: str, day: date) -> List[time]:
        ...


class LocalAppointmentsGateway(AppointmentsGateway):
    """Drives an in-process ``AppointmentsService``.

    Service calls are blocking, so each one runs in a worker thread and the
    event loop stays free the same way it does with a network gateway.
    """

    def __init__(self, service: AppointmentsService, session: ClientSession):
        self.service = service
        self.session = session

    async def _call(self, fn, *args):
        self.session.require_open()
        return await asyncio.to_thread(fn, *args)

    async def list_appointments(self, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        return await self._call(self.service.list_appointments, self.session.actor, filters)

    async def update_status(self, appointment_id: str, status: AppointmentStatus) -> AppointmentDto:
        return await self._call(self.service.update_status, self.session.actor, appointment_id, status)

    async def cancel(self, appointment_id: str) -> AppointmentDto:
        return await self._call(self.service.cancel, self.session.actor, appointment_id)

    async def book(self, doctor_id: str, scheduled_at: datetime, notes: Optional[str] = None) -> AppointmentDto:
        return await self._call(self.service.book, self.session.actor, doctor_id, scheduled_at, notes)

    async def available_slots(self, doctor_id: str, day: date) -> List[time]:
        return await self._call(self.service.available_slots, doctor_id, day)
