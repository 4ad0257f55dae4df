from datetime import date, datetime, time, timedelta, timezone

import httpx
import pytest
from sqlmodel import Session

from carebook.application.lifecycle import AppointmentStatus
from carebook.application.ports.appointments_repo import AppointmentFilters
from carebook.client import AppointmentMirror, ClientSession, HttpAppointmentsGateway
from carebook.database import get_session
from carebook.db.models import Doctor, Patient
from carebook.exceptions import (
    InvalidTransitionError,
    RequestTimeoutError,
    SessionClosedError,
    SlotUnavailableError,
    TransportError,
)
from carebook.main import app
from carebook.utils import create_access_token

S = AppointmentStatus

APPOINTMENT = {
    "id": "A1",
    "doctor_id": "D1",
    "patient_id": "P1",
    "scheduled_at": "2025-03-10T09:00:00Z",
    "status": "confirmed",
    "consultation_fee": 80.0,
    "notes": None,
    "doctor_name": "Dr. Ahsan Khan",
    "doctor_email": "ahsan@clinic.test",
    "patient_name": "Jane Doe",
}


def gateway_for(handler, session=None):
    session = session or ClientSession.open("D1", "doctor", token="tok")
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://carebook.test")
    return HttpAppointmentsGateway("http://carebook.test", session, client=client)


@pytest.mark.asyncio
async def test_update_status_sends_token_and_parses():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, json=APPOINTMENT)

    appt = await gateway_for(handler).update_status("A1", S.CONFIRMED)
    assert seen["auth"] == "Bearer tok"
    assert seen["path"] == "/appointments/A1/status"
    assert b'"confirmed"' in seen["body"]
    assert appt.status == S.CONFIRMED
    assert appt.scheduled_at == datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
    assert appt.doctor_name == "Dr. Ahsan Khan"


@pytest.mark.asyncio
async def test_list_passes_filters():
    seen = {}

    def handler(request):
        seen["params"] = request.url.params
        return httpx.Response(200, json=[APPOINTMENT])

    filters = AppointmentFilters(statuses=frozenset({S.PENDING, S.CONFIRMED}), text="  Jane ", day=date(2025, 3, 10))
    rows = await gateway_for(handler).list_appointments(filters)
    assert [r.id for r in rows] == ["A1"]
    assert seen["params"].get_list("status") == ["confirmed", "pending"]
    assert seen["params"]["q"] == "jane"
    assert seen["params"]["date"] == "2025-03-10"


@pytest.mark.asyncio
async def test_error_envelope_becomes_domain_error():
    def handler(request):
        return httpx.Response(409, json={
            "success": False,
            "data": None,
            "error": {"kind": "invalid_transition", "message": "Cannot change status from completed to cancelled"},
        })

    with pytest.raises(InvalidTransitionError) as info:
        await gateway_for(handler).cancel("A1")
    assert "completed" in info.value.message


@pytest.mark.asyncio
async def test_unknown_error_kind_is_transport_error():
    def handler(request):
        return httpx.Response(500, json={"success": False, "data": None, "error": {"kind": "boom", "message": "x"}})

    with pytest.raises(TransportError):
        await gateway_for(handler).cancel("A1")


@pytest.mark.asyncio
async def test_malformed_body():
    def handler(request):
        return httpx.Response(200, content=b"<html>gateway</html>")

    with pytest.raises(TransportError):
        await gateway_for(handler).cancel("A1")


@pytest.mark.asyncio
async def test_malformed_appointment():
    def handler(request):
        return httpx.Response(200, json={"id": "A1"})

    with pytest.raises(TransportError):
        await gateway_for(handler).cancel("A1")


@pytest.mark.asyncio
async def test_connection_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError) as info:
        await gateway_for(handler).list_appointments()
    assert not isinstance(info.value, RequestTimeoutError)


@pytest.mark.asyncio
async def test_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(RequestTimeoutError):
        await gateway_for(handler).list_appointments()


@pytest.mark.asyncio
async def test_closed_session_sends_nothing():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json=[])

    session = ClientSession.open("D1", "doctor", token="tok")
    gateway = gateway_for(handler, session)
    await session.close()
    with pytest.raises(SessionClosedError):
        await gateway.list_appointments()
    assert calls == []


@pytest.mark.asyncio
async def test_available_slots():
    def handler(request):
        return httpx.Response(200, json={"doctor_id": "D1", "date": "2025-03-10", "slots": ["09:00", "09:30"]})

    assert await gateway_for(handler).available_slots("D1", date(2025, 3, 10)) == [time(9, 0), time(9, 30)]


@pytest.fixture
def api(engine):
    with Session(engine) as session:
        session.add_all([
            Doctor(id="D1", name="Dr. Ahsan Khan", email="ahsan@clinic.test", specialization="Cardiology", consultation_fee=80.0),
            Patient(id="P1", name="Jane Doe", email="jane@mail.test"),
            Patient(id="P2", name="John Roe", email="john@mail.test"),
        ])
        session.commit()

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    yield httpx.ASGITransport(app=app)
    app.dependency_overrides.clear()


def open_over_http(transport, actor_id, role):
    session = ClientSession.open(actor_id, role, token=create_access_token(actor_id, role))
    client = httpx.AsyncClient(transport=transport, base_url="http://carebook.test")
    return session, HttpAppointmentsGateway("http://carebook.test", session, client=client)


@pytest.mark.asyncio
async def test_mirrors_over_the_api(api):
    day = (datetime.now(timezone.utc) + timedelta(days=7)).date()
    nine = datetime(day.year, day.month, day.day, 9, 0, tzinfo=timezone.utc)

    jane_session, jane_gw = open_over_http(api, "P1", "patient")
    john_session, john_gw = open_over_http(api, "P2", "patient")
    doc_session, doc_gw = open_over_http(api, "D1", "doctor")
    jane = AppointmentMirror(jane_session, jane_gw)
    doctor = AppointmentMirror(doc_session, doc_gw)

    booked = await jane.book("D1", nine)
    assert time(9, 0) not in await john_gw.available_slots("D1", day)
    with pytest.raises(SlotUnavailableError):
        await john_gw.book("D1", nine)

    await doctor.refresh()
    await doctor.request_status(booked.id, S.CONFIRMED)
    await doctor.request_status(booked.id, S.COMPLETED)

    await jane.refresh()
    assert jane.entry(booked.id).status == S.COMPLETED
    assert [e.id for e in jane.view(AppointmentFilters(text="ahsan@clinic"))] == [booked.id]
    with pytest.raises(InvalidTransitionError):
        await jane.cancel(booked.id)
    assert jane.entry(booked.id).status == S.COMPLETED

    for s in (jane_session, john_session, doc_session):
        await s.close()
    for gw in (jane_gw, john_gw, doc_gw):
        await gw._client.aclose()


@pytest.mark.asyncio
async def test_mirror_text_filter_matches_doctor_email():
    def handler(request):
        return httpx.Response(200, json=[APPOINTMENT])

    session = ClientSession.open("P1", "patient", token="tok")
    mirror = AppointmentMirror(session, gateway_for(handler, session))
    await mirror.refresh()
    assert mirror.entry("A1").appointment.doctor_email == "ahsan@clinic.test"
    assert [e.id for e in mirror.view(AppointmentFilters(text="ahsan@clinic"))] == ["A1"]
    assert mirror.view(AppointmentFilters(text="sara@clinic")) == []
