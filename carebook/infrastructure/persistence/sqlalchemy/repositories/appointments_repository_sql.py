from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Set
from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....application.lifecycle import AppointmentStatus, can_transition
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    AppointmentFilters,
    NewAppointment,
    NO_FILTERS,
)
from .....db.models import Appointment, Doctor, Patient
from .....exceptions import ConflictError, InvalidTransitionError, NotFoundError
from .....utils import to_utc, utcnow


class SqlAppointmentsRepository(AppointmentsRepository):
    """Appointment store over SQLModel.

    Slot uniqueness is enforced by the partial unique index on
    ``(doctor_id, scheduled_at)``; status changes use a conditional UPDATE
    so two writers cannot both succeed from the same starting status.
    """

    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment, d: Optional[Doctor] = None, p: Optional[Patient] = None) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            doctor_id=a.doctor_id,
            patient_id=a.patient_id,
            scheduled_at=to_utc(a.scheduled_at),
            status=AppointmentStatus(a.status),
            consultation_fee=a.consultation_fee,
            notes=a.notes,
            created_at=to_utc(a.created_at) if a.created_at else None,
            updated_at=to_utc(a.updated_at) if a.updated_at else None,
            doctor_name=d.name if d else None,
            doctor_email=d.email if d else None,
            doctor_specialization=d.specialization if d else None,
            patient_name=p.name if p else None,
            patient_email=p.email if p else None,
        )

    def _joined(self):
        return (
            select(Appointment, Doctor, Patient)
            .join(Doctor, Doctor.id == Appointment.doctor_id, isouter=True)
            .join(Patient, Patient.id == Appointment.patient_id, isouter=True)
        )

    def _apply_filters(self, query, filters: AppointmentFilters):
        if filters.statuses:
            query = query.where(Appointment.status.in_([s.value for s in filters.statuses]))
        term = filters.search_term
        if term:
            pattern = f"%{term}%"
            query = query.where(
                or_(
                    Patient.name.ilike(pattern),
                    Patient.email.ilike(pattern),
                    Doctor.name.ilike(pattern),
                    Doctor.email.ilike(pattern),
                )
            )
        if filters.day is not None:
            start, end = filters.day_bounds()
            query = query.where(Appointment.scheduled_at >= start).where(Appointment.scheduled_at < end)
        return query

    def create(self, new: NewAppointment) -> AppointmentDto:
        appt = Appointment(
            doctor_id=new.doctor_id,
            patient_id=new.patient_id,
            scheduled_at=to_utc(new.scheduled_at),
            status=AppointmentStatus.PENDING.value,
            consultation_fee=new.consultation_fee,
            notes=new.notes,
        )
        appt_id = appt.id
        self.session.add(appt)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError("This time slot has just been booked")
        return self.get(appt_id)

    def get(self, appointment_id: str) -> AppointmentDto:
        row = self.session.exec(self._joined().where(Appointment.id == appointment_id)).first()
        if not row:
            raise NotFoundError("Appointment not found")
        return self._appt_to_dto(*row)

    def _list(self, query, filters: AppointmentFilters) -> List[AppointmentDto]:
        query = self._apply_filters(query, filters).order_by(Appointment.scheduled_at.asc())
        return [self._appt_to_dto(*row) for row in self.session.exec(query).all()]

    def list_by_doctor(self, doctor_id: str, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        return self._list(self._joined().where(Appointment.doctor_id == doctor_id), filters)

    def list_by_patient(self, patient_id: str, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        return self._list(self._joined().where(Appointment.patient_id == patient_id), filters)

    def update_status(self, appointment_id: str, new_status: AppointmentStatus, expected_status: Optional[AppointmentStatus] = None) -> AppointmentDto:
        new_status = AppointmentStatus(new_status)
        current = self.session.exec(select(Appointment.status).where(Appointment.id == appointment_id)).first()
        if current is None:
            raise NotFoundError("Appointment not found")
        current = AppointmentStatus(current)
        if expected_status is not None and current != expected_status:
            raise ConflictError(f"Appointment is now {current.value}; it was changed by another request")
        if not can_transition(current, new_status):
            raise InvalidTransitionError(
                f"Cannot change an appointment from {current.value} to {new_status.value}"
            )

        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id)
            .where(Appointment.status == current.value)
            .values(status=new_status.value, updated_at=utcnow())
        )
        result = self.session.connection().execute(stmt)
        if result.rowcount != 1:
            self.session.rollback()
            raise ConflictError("Appointment was changed by another request")
        self.session.commit()
        self.session.expire_all()
        return self.get(appointment_id)

    def held_times(self, doctor_id: str, day: date) -> Set[datetime]:
        start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        rows = self.session.exec(
            select(Appointment.scheduled_at)
            .where(Appointment.doctor_id == doctor_id)
            .where(Appointment.status != AppointmentStatus.CANCELLED.value)
            .where(Appointment.scheduled_at >= start)
            .where(Appointment.scheduled_at < start + timedelta(days=1))
        ).all()
        return {to_utc(at) for at in rows}

    def status_counts(self, doctor_id: Optional[str] = None, patient_id: Optional[str] = None) -> Dict[AppointmentStatus, int]:
        query = select(Appointment.status, func.count()).group_by(Appointment.status)
        if doctor_id is not None:
            query = query.where(Appointment.doctor_id == doctor_id)
        if patient_id is not None:
            query = query.where(Appointment.patient_id == patient_id)
        return {AppointmentStatus(status): count for status, count in self.session.exec(query).all()}
