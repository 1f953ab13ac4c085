"""
Campaign Builder - Persistence Client
======================================

Async REST client for the campaign phases API.
Handles:
- Listing the phase tree of a campaign
- Create / update of phases and phase activities (conditions ride along)
- Deletes for phases, phase activities and both condition kinds

Auth headers are configured once per client and sent with every call.
"""

from typing import Any, Optional

import httpx
import structlog

from campaign_builder.core.config import settings
from campaign_builder.core.exceptions import PersistenceError
from campaign_builder.core.schemas import (
    ErrorResponse,
    PhaseActivitySavePayload,
    PhaseActivitySaveResponse,
    PhaseRecord,
    PhaseSavePayload,
    PhaseSaveResponse,
)

logger = structlog.get_logger()


def auth_headers(
    auth_token: Optional[str] = None,
    user_email: Optional[str] = None,
    company_id: Optional[str | int] = None,
) -> dict[str, str]:
    """Session auth headers, falling back to configured defaults."""
    values = {
        "X-Auth-Token": auth_token or settings.API_AUTH_TOKEN,
        "X-User-Email": user_email or settings.API_USER_EMAIL,
        "X-Company-Id": company_id if company_id is not None else settings.API_COMPANY_ID,
    }
    return {name: str(value) for name, value in values.items() if value is not None}


class PersistenceClient:
    """
    Client for one campaign's phases resource.

    Every path is relative to /api/v1/campaigns/{campaign_id}. Failed calls
    raise PersistenceError carrying the server's validation message; deletes
    answered with 404 are treated as already gone.
    """

    def __init__(
        self,
        campaign_id: int | str,
        *,
        base_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        user_email: Optional[str] = None,
        company_id: Optional[str | int] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.campaign_id = campaign_id
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.base_path = f"{settings.API_V1_PREFIX}/campaigns/{campaign_id}"
        self.headers = auth_headers(auth_token, user_email, company_id)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=timeout if timeout is not None else settings.API_TIMEOUT_SECONDS,
            transport=transport,
        )

        logger.info(
            "persistence_client_initialized",
            campaign_id=campaign_id,
            base_url=self.base_url,
            authenticated="X-Auth-Token" in self.headers,
        )

    async def __aenter__(self) -> "PersistenceClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ==================== Transport ====================

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> Any:
        url = f"{self.base_path}{path}"
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.RequestError as e:
            logger.error("persistence_request_failed", method=method, url=url, error=str(e))
            raise PersistenceError(f"Could not reach the server: {e}") from e

        if response.is_error:
            message, errors = self._error_details(response)
            logger.warning(
                "persistence_request_rejected",
                method=method,
                url=url,
                status_code=response.status_code,
                message=message,
            )
            raise PersistenceError(message, status_code=response.status_code, errors=errors)

        logger.debug("persistence_request_ok", method=method, url=url, status_code=response.status_code)
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[str, Any]:
        fallback = f"{response.status_code} {response.reason_phrase}".strip()
        try:
            body = response.json()
        except ValueError:
            return fallback, None
        if not isinstance(body, dict):
            return fallback, body
        error = ErrorResponse.model_validate(body)
        return error.describe() or fallback, error.errors

    async def _delete(self, path: str) -> bool:
        """DELETE a resource; False when the server no longer knows it."""
        try:
            await self._request("DELETE", path)
        except PersistenceError as e:
            if e.is_not_found:
                logger.info("persistence_delete_not_found", path=path)
                return False
            raise
        return True

    # ==================== Phases ====================

    async def list_phases(self) -> list[PhaseRecord]:
        data = await self._request("GET", "/phases.json") or []
        return [PhaseRecord.model_validate(item) for item in data]

    async def create_phase(self, payload: PhaseSavePayload) -> PhaseSaveResponse:
        data = await self._request("POST", "/phases.json", json=payload.to_wire())
        return PhaseSaveResponse.model_validate(data)

    async def update_phase(self, phase_id: int, payload: PhaseSavePayload) -> PhaseSaveResponse:
        data = await self._request("PUT", f"/phases/{phase_id}.json", json=payload.to_wire())
        return PhaseSaveResponse.model_validate(data)

    async def delete_phase(self, phase_id: int) -> bool:
        return await self._delete(f"/phases/{phase_id}.json")

    async def delete_phase_condition(self, phase_id: int, condition_id: int) -> bool:
        return await self._delete(f"/phases/{phase_id}/phase_conditions/{condition_id}.json")

    # ==================== Phase Activities ====================

    async def create_phase_activity(
        self, phase_id: int, payload: PhaseActivitySavePayload
    ) -> PhaseActivitySaveResponse:
        data = await self._request(
            "POST", f"/phases/{phase_id}/phase_activities.json", json=payload.to_wire()
        )
        return PhaseActivitySaveResponse.model_validate(data)

    async def update_phase_activity(
        self, phase_id: int, activity_id: int, payload: PhaseActivitySavePayload
    ) -> PhaseActivitySaveResponse:
        data = await self._request(
            "PUT",
            f"/phases/{phase_id}/phase_activities/{activity_id}.json",
            json=payload.to_wire(),
        )
        return PhaseActivitySaveResponse.model_validate(data)

    async def delete_phase_activity(self, phase_id: int, activity_id: int) -> bool:
        return await self._delete(f"/phases/{phase_id}/phase_activities/{activity_id}.json")

    async def delete_activity_condition(
        self, phase_id: int, activity_id: int, condition_id: int
    ) -> bool:
        return await self._delete(
            f"/phases/{phase_id}/phase_activities/{activity_id}"
            f"/phase_activity_conditions/{condition_id}.json"
        )
