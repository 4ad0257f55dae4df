from typing import List, Optional
from fastapi import APIRouter, Depends, Query
import logging
from datetime import date

from ..application.lifecycle import Actor
from ..application.services.appointments_service import AppointmentsService
from ..auth import get_current_actor
from ..schemas.doctors.doctor import DoctorResponse, SlotsResponse
from .appointments_router import get_appointments_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("", response_model=List[DoctorResponse])
def get_doctors(
    q: Optional[str] = Query(None, max_length=100),
    specialization: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return [DoctorResponse.from_dto(d) for d in appt_service.search_doctors(q, specialization)]


@router.get("/specializations", response_model=List[str])
def get_specializations(
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return appt_service.specializations()


@router.get("/{doctor_id}", response_model=DoctorResponse)
def get_doctor(
    doctor_id: str,
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return DoctorResponse.from_dto(appt_service.get_doctor(doctor_id))


@router.get("/{doctor_id}/slots", response_model=SlotsResponse)
def get_available_slots(
    doctor_id: str,
    on: date = Query(..., alias="date"),
    actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    slots = appt_service.available_slots(doctor_id, on)
    return SlotsResponse(doctor_id=doctor_id, date=on, slots=[t.strftime("%H:%M") for t in slots])
