import logging
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..application.lifecycle import AppointmentStatus
from ..application.ports.appointments_repo import AppointmentDto, AppointmentFilters, NO_FILTERS
from ..exceptions import RequestTimeoutError, TransportError, error_from_payload
from ..schemas.appointments.appointment import AppointmentResponse
from ..schemas.doctors.doctor import SlotsResponse
from ..utils import to_utc
from .gateway import AppointmentsGateway
from .session import ClientSession

logger = logging.getLogger(__name__)


class HttpAppointmentsGateway(AppointmentsGateway):
    """Talks to the CareBook HTTP API with the session's bearer token.

    Domain errors come back as the exception class named by the envelope's
    ``kind``; anything unreadable or unreachable becomes ``TransportError``.
    """

    def __init__(self, base_url: str, session: ClientSession, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.session = session
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpAppointmentsGateway":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def _headers(self) -> Dict[str, str]:
        self.session.require_open()
        return {"Authorization": f"Bearer {self.session.token}"}

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException:
            raise RequestTimeoutError()
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(f"Unable to reach the appointments server: {e}")

        try:
            body = resp.json()
        except ValueError:
            raise TransportError(f"Malformed response from server (HTTP {resp.status_code})")

        if resp.is_success:
            return body
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            raise error_from_payload(error)
        raise TransportError(f"Unexpected response from server (HTTP {resp.status_code})")

    def _appointment(self, data: Any) -> AppointmentDto:
        try:
            return AppointmentResponse.model_validate(data).to_dto()
        except ValidationError as e:
            raise TransportError(f"Malformed appointment in server response: {e.error_count()} errors")

    async def list_appointments(self, filters: AppointmentFilters = NO_FILTERS) -> List[AppointmentDto]:
        params: Dict[str, Any] = {}
        if filters.statuses:
            params["status"] = sorted(s.value for s in filters.statuses)
        if filters.search_term:
            params["q"] = filters.search_term
        if filters.day is not None:
            params["date"] = filters.day.isoformat()
        body = await self._request("GET", "/appointments", params=params)
        if not isinstance(body, list):
            raise TransportError("Malformed appointment list in server response")
        return [self._appointment(item) for item in body]

    async def update_status(self, appointment_id: str, status: AppointmentStatus) -> AppointmentDto:
        body = await self._request(
            "PATCH",
            f"/appointments/{appointment_id}/status",
            json={"status": AppointmentStatus(status).value},
        )
        return self._appointment(body)

    async def cancel(self, appointment_id: str) -> AppointmentDto:
        body = await self._request("PATCH", f"/appointments/{appointment_id}/cancel")
        return self._appointment(body)

    async def book(self, doctor_id: str, scheduled_at: datetime, notes: Optional[str] = None) -> AppointmentDto:
        payload = {"doctor_id": doctor_id, "scheduled_at": to_utc(scheduled_at).isoformat()}
        if notes is not None:
            payload["notes"] = notes
        body = await self._request("POST", "/appointments/book", json=payload)
        return self._appointment(body)

    async def available_slots(self, doctor_id: str, day: date) -> List[time]:
        body = await self._request("GET", f"/doctors/{doctor_id}/slots", params={"date": day.isoformat()})
        try:
            slots = SlotsResponse.model_validate(body).slots
            return [datetime.strptime(s, "%H:%M").time() for s in slots]
        except (ValidationError, ValueError):
            raise TransportError("Malformed slot list in server response")
