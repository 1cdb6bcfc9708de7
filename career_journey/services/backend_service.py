"""Hosted backend client: REST table reads, RPC calls and edge functions.

Uses httpx for async HTTP requests and tenacity for retrying idempotent reads.
"""

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from typing import Any, Dict, List, Optional
import logging

from ..models import BackendConfig

logger = logging.getLogger(__name__)


class BackendServiceError(Exception):
    """Base exception for backend errors."""
    pass


class FunctionInvocationError(BackendServiceError):
    """Raised when an edge function call fails or returns a non-2xx status."""

    def __init__(self, function: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.function = function
        self.status_code = status_code


def _is_retryable(exc: BaseException) -> bool:
    """Transport failures and 5xx responses are worth another try."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        payload = response.json()
    except ValueError:
        return None
    if isinstance(payload, dict):
        return payload.get("error") or payload.get("message")
    return None


class BackendService:
    """Async client for the journey backend.

    Responsibilities:
    - Read rows from REST tables
    - Call RPC functions (journey state lookups)
    - Invoke edge functions (remote AI stages)

    Usage:
        async with BackendService(config) as backend:
            rows = await backend.select("resume_store", {"resume_id": rid})
            state = await backend.rpc("get_sigma_journey_state", {...})
    """

    REST_PATH = "/rest/v1"
    FUNCTIONS_PATH = "/functions/v1"

    def __init__(
        self,
        config: BackendConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "BackendService":
        self._client = httpx.AsyncClient(
            base_url=self.config.url.rstrip("/"),
            headers={
                "apikey": self.config.api_key,
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.config.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise BackendServiceError("Service not initialized. Use async context manager.")
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    async def _read_json(self, method: str, url: str, **kwargs) -> Any:
        client = self._require_client()
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendServiceError(f"{method} {url} returned invalid JSON") from e

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        columns: str = "*",
        order: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch rows from a table using equality filters.

        Args:
            table: Table name
            filters: Column -> value equality filters
            columns: Comma separated column list
            order: Column to order by
            descending: Sort direction when ``order`` is set
            limit: Maximum rows to return

        Returns:
            List of row dictionaries (possibly empty).

        Raises:
            BackendServiceError: On HTTP or transport failure after retries.
        """
        params: Dict[str, Any] = {"select": columns}
        for column, value in (filters or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = f"{order}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = limit

        try:
            rows = await self._read_json("GET", f"{self.REST_PATH}/{table}", params=params)
        except httpx.HTTPError as e:
            raise BackendServiceError(f"select from {table} failed: {e}") from e

        logger.debug(f"Fetched {len(rows or [])} rows from {table}")
        return rows or []

    async def select_one(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        columns: str = "*",
        order: Optional[str] = "created_at",
    ) -> Optional[Dict[str, Any]]:
        """Latest matching row, or None."""
        rows = await self.select(table, filters, columns=columns, order=order, limit=1)
        return rows[0] if rows else None

    async def rpc(self, function: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a database RPC function and return its JSON result."""
        try:
            return await self._read_json(
                "POST",
                f"{self.REST_PATH}/rpc/{function}",
                json=params or {},
            )
        except httpx.HTTPError as e:
            raise BackendServiceError(f"rpc {function} failed: {e}") from e

    async def invoke_function(self, name: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke an edge function once.

        Not retried: edge functions persist their results and flip journey
        flags, so a repeated call is a repeated write.

        Raises:
            FunctionInvocationError: On transport failure or non-2xx response.
        """
        client = self._require_client()
        logger.info(f"Invoking edge function: {name}")

        try:
            response = await client.post(f"{self.FUNCTIONS_PATH}/{name}", json=body)
        except httpx.TransportError as e:
            raise FunctionInvocationError(name, f"{name} unreachable: {e}") from e

        if response.is_error:
            message = _error_message(response) or f"{name} returned HTTP {response.status_code}"
            raise FunctionInvocationError(name, message, response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise FunctionInvocationError(name, f"{name} returned invalid JSON") from e

        if not isinstance(payload, dict):
            return {"success": True, "data": payload}
        return payload
