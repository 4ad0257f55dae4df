import asyncio
from datetime import date, datetime, time, timezone

import pytest

from carebook.application.lifecycle import AppointmentStatus
from carebook.client import AppointmentMirror, ClientSession, LocalAppointmentsGateway
from carebook.exceptions import ConflictError, InvalidTransitionError, SlotUnavailableError

S = AppointmentStatus
NINE = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


class Collector:
    def __init__(self):
        self.items = []

    def notify(self, notification):
        self.items.append(notification)


def open_mirror(service, actor_id, role, notifier=None):
    session = ClientSession.open(actor_id, role)
    return AppointmentMirror(session, LocalAppointmentsGateway(service, session), notifier=notifier)


@pytest.mark.asyncio
async def test_book_confirm_complete_then_cancel_is_refused(service):
    seen = Collector()
    patient = open_mirror(service, "P1", "patient", seen)
    doctor = open_mirror(service, "D1", "doctor")

    booked = await patient.book("D1", NINE)
    assert booked.status == S.PENDING
    assert booked.consultation_fee == 80.0

    await doctor.refresh()
    assert [e.id for e in doctor.entries] == [booked.id]
    assert doctor.actions_for(booked.id) == [S.CONFIRMED, S.CANCELLED]

    assert (await doctor.request_status(booked.id, S.CONFIRMED)).status == S.CONFIRMED
    assert (await doctor.request_status(booked.id, S.COMPLETED)).status == S.COMPLETED

    await patient.refresh()
    assert patient.entry(booked.id).status == S.COMPLETED
    assert patient.actions_for(booked.id) == []

    with pytest.raises(InvalidTransitionError):
        await patient.cancel(booked.id)
    assert patient.entry(booked.id).status == S.COMPLETED
    assert seen.items[-1].title == "Cancellation Failed"
    assert seen.items[-1].error_kind == "invalid_transition"


@pytest.mark.asyncio
async def test_concurrent_bookings_for_one_slot(service):
    jane = open_mirror(service, "P1", "patient")
    john = open_mirror(service, "P2", "patient")

    results = await asyncio.gather(
        jane.book("D1", NINE),
        john.book("D1", NINE),
        return_exceptions=True,
    )
    booked = [r for r in results if not isinstance(r, Exception)]
    refused = [r for r in results if isinstance(r, (ConflictError, SlotUnavailableError))]
    assert len(booked) == 1
    assert len(refused) == 1

    slots = service.available_slots("D1", date(2025, 3, 10))
    assert time(9, 0) not in slots
    assert time(9, 30) in slots


@pytest.mark.asyncio
async def test_patient_cancel_frees_the_slot_for_others(service):
    jane = open_mirror(service, "P1", "patient")
    john = open_mirror(service, "P2", "patient")

    first = await jane.book("D1", NINE)
    with pytest.raises(SlotUnavailableError):
        await john.book("D1", NINE)

    await jane.cancel(first.id)
    again = await john.book("D1", NINE)
    assert again.patient_id == "P2"
    assert jane.counts()["cancelled"] == 1


@pytest.mark.asyncio
async def test_doctor_and_patient_race_on_pending(service, repo):
    patient = open_mirror(service, "P1", "patient")
    doctor = open_mirror(service, "D1", "doctor")
    booked = await patient.book("D1", NINE)
    await doctor.refresh()

    results = await asyncio.gather(
        doctor.request_status(booked.id, S.CONFIRMED),
        patient.cancel(booked.id),
        return_exceptions=True,
    )
    winners = [r for r in results if not isinstance(r, Exception)]
    assert winners
    for r in results:
        if isinstance(r, Exception):
            assert isinstance(r, (ConflictError, InvalidTransitionError))

    final = repo.get(booked.id).status
    await patient.refresh()
    await doctor.refresh()
    assert patient.entry(booked.id).status == final
    assert doctor.entry(booked.id).status == final
