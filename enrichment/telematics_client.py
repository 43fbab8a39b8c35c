"""
Mapon telematics API client.

Fetches one historical position + mileage point for a unit. The client
never retries: every failure surfaces as a TelematicsError subclass and the
enrichment engine records it on the transaction.
"""

import httpx
from typing import Any, Dict, Optional, Sequence
from core.config import settings
from core.exceptions import (
    NetworkError,
    AuthenticationError,
    ResourceNotFoundError,
    RateLimitError,
    APIRequestError,
    InvalidResponseError,
    UnitDataNotFoundError,
)
from schemas.telematics import UnitSample
import logging

logger = logging.getLogger(__name__)

HISTORY_POINT_ENDPOINT = "unit_data/history_point.json"
DEFAULT_INCLUDE = ("position", "mileage")


class MaponClient:
    """
    Thin async wrapper around the Mapon REST API.

    Attributes:
        api_url: Base URL, e.g. https://mapon.com/api/v1
        api_key: Mapon API key, sent as the `key` query parameter
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_url = (api_url or settings.MAPON_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.MAPON_API_KEY
        self.timeout = timeout or settings.MAPON_TIMEOUT_SECONDS
        self.transport = transport

    def _url(self, endpoint: str) -> str:
        return f"{self.api_url}/{endpoint.lstrip('/')}"

    async def get(self, endpoint: str, params: Dict[str, Any]) -> Any:
        """
        GET an endpoint and decode the JSON body.

        Raises:
            NetworkError: Transport failure or timeout
            AuthenticationError: HTTP 401/403
            ResourceNotFoundError: HTTP 404
            RateLimitError: HTTP 429
            APIRequestError: Any other HTTP error status
            InvalidResponseError: Body is not JSON
        """
        url = self._url(endpoint)
        query = {**params, "key": self.api_key or ""}
        context = {"api_url": url, "unit_id": params.get("unit_id")}

        logger.debug(f"GET {url} unit_id={params.get('unit_id')} datetime={params.get('datetime')}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, params=query, headers={"Accept": "application/json"})
        except httpx.TimeoutException as e:
            raise NetworkError(
                "Request to Mapon timed out",
                context={**context, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.HTTPError as e:
            raise NetworkError(
                "Network error while calling Mapon",
                context=context,
                original_exception=e
            )

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed for {url}",
                context={**context, "status_code": response.status_code}
            )

        if response.status_code == 404:
            raise ResourceNotFoundError(
                f"Resource not found: {url}",
                context={**context, "status_code": 404}
            )

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                f"Rate limit exceeded for {url}",
                context={**context, "status_code": 429},
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )

        if response.status_code >= 400:
            raise APIRequestError(
                f"Mapon returned HTTP {response.status_code}",
                context={
                    **context,
                    "status_code": response.status_code,
                    "response_body": response.text[:500]  # Truncate
                }
            )

        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(
                "Failed to parse JSON response",
                context={**context, "response_body": response.text[:500]},
                original_exception=e
            )

    async def fetch_sample(
        self,
        unit_id: int,
        at: str,
        include: Sequence[str] = DEFAULT_INCLUDE
    ) -> UnitSample:
        """
        Fetch the position + mileage point closest to `at` for a unit.

        Args:
            unit_id: Mapon unit id
            at: ISO-8601 UTC timestamp, e.g. 2025-01-01T08:30:00Z
            include: Data groups to request

        Returns:
            Exactly one UnitSample

        Raises:
            TelematicsError: Transport/HTTP/parse failure, or zero or
                several units in the response (UnitDataNotFoundError)
        """
        data = await self.get(
            HISTORY_POINT_ENDPOINT,
            params={
                "unit_id": unit_id,
                "datetime": at,
                "include[]": list(include),
            },
        )

        units = None
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            units = data["data"].get("units")

        if not isinstance(units, list) or len(units) != 1:
            count = len(units) if isinstance(units, list) else 0
            raise UnitDataNotFoundError(
                f"Unit data not found for unit {unit_id} at {at}",
                context={"unit_id": unit_id, "datetime": at, "units_returned": count}
            )

        if not isinstance(units[0], dict):
            raise InvalidResponseError(
                "Unexpected unit payload",
                context={"unit_id": unit_id, "datetime": at}
            )

        return UnitSample.from_api_unit(units[0])

