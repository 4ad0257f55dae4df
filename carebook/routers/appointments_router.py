from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session
import logging
from datetime import date

from ..application.lifecycle import Actor, AppointmentStatus
from ..application.ports.appointments_repo import AppointmentFilters
from ..application.services.appointments_service import AppointmentsService, build_appointments_service
from ..auth import get_current_actor
from ..config import settings
from ..db.session import get_session
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.directory_repository_sql import SqlDirectoryRepository
from ..schemas.common.common import ErrorResponse
from ..schemas.appointments.appointment import (
    AppointmentCounts,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
    responses={code: {"model": ErrorResponse} for code in (400, 403, 404, 409)},
)

_audit = StdAuditLogger()


def get_appointments_service(session: Session = Depends(get_session)) -> AppointmentsService:
    return build_appointments_service(
        repo=SqlAppointmentsRepository(session),
        directory=SqlDirectoryRepository(session),
        audit=_audit,
        working_hours=settings.default_working_hours_list,
        slot_minutes=settings.SLOT_DURATION_MINUTES,
    )


@router.post("/book", response_model=AppointmentResponse, status_code=201)
def book_appointment(
    payload: AppointmentCreate,
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.book(actor, payload.doctor_id, payload.scheduled_at, payload.notes)
    return AppointmentResponse.from_dto(appt)


@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    status: Optional[List[AppointmentStatus]] = Query(None),
    on: Optional[date] = Query(None, alias="date"),
    q: Optional[str] = Query(None, max_length=100),
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    filters = AppointmentFilters(statuses=frozenset(status or ()), text=q, day=on)
    return [AppointmentResponse.from_dto(a) for a in appt_service.list_appointments(actor, filters)]


@router.get("/counts", response_model=AppointmentCounts)
def appointment_counts(
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentCounts(**appt_service.counts(actor))


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return AppointmentResponse.from_dto(appt_service.get(actor, appointment_id))


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    payload: AppointmentStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.update_status(actor, appointment_id, payload.status)
    return AppointmentResponse.from_dto(appt)


@router.patch("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: str,
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.cancel(actor, appointment_id)
    return AppointmentResponse.from_dto(appt)
