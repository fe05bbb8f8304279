"""
Storefront adapter framework for the commerce backend.

Every outbound HTTP integration (catalog lookup, cart) inherits from
AdapterBase. A request runs through:
- Circuit breaker: after CB_FAILURE_THRESHOLD consecutive failures calls are
  refused with 503 until CB_RECOVERY_TIMEOUT passes, then one trial request is let
  through (half open)
- Auth headers (API key bearer or basic)
- Retry with exponential backoff on transport errors and 5xx
- Health counters (requests, failures, mean latency)

Adapters never raise for upstream trouble: they return an AdapterResponse
and the caller decides what a failed response means in its domain.
"""
from __future__ import annotations
from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import asyncio
import base64
import logging
import time

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class AuthType(str, Enum):
    NONE = "none"
    API_KEY = "api_key"
    BASIC = "basic"  # WooCommerce consumer key / secret


@dataclass
class AuthCredentials:
    auth_type: AuthType = AuthType.NONE
    api_key: str | None = None
    api_key_header: str = "Authorization"
    api_key_prefix: str = "Bearer"
    username: str | None = None
    password: str | None = None

    def headers(self) -> dict[str, str]:
        if self.auth_type == AuthType.API_KEY and self.api_key:
            return {self.api_key_header: f"{self.api_key_prefix} {self.api_key}"}
        if self.auth_type == AuthType.BASIC and self.username and self.password:
            token = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
            return {"Authorization": f"Basic {token}"}
        return {}


# ---------------------------------------------------------------------------
# Request / Response envelope
# ---------------------------------------------------------------------------

@dataclass
class AdapterRequest:
    method: str
    path: str  # relative to the adapter's base_url
    params: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] | None = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0


@dataclass
class AdapterResponse:
    status_code: int
    data: Any = None
    latency_ms: float = 0.0
    adapter_name: str = ""
    error: str | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


# ---------------------------------------------------------------------------
# Circuit breaker & health
# ---------------------------------------------------------------------------

class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class IntegrationHealth:
    """Running health counters for one adapter."""
    adapter_name: str
    total_requests: int = 0
    failed_requests: int = 0
    avg_latency_ms: float = 0.0
    circuit_state: CircuitState = CircuitState.CLOSED
    last_error: str | None = None

    @property
    def error_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.failed_requests / self.total_requests

    def record(self, latency_ms: float, error: str | None = None) -> None:
        self.total_requests += 1
        # incremental mean, no latency history kept
        self.avg_latency_ms += (latency_ms - self.avg_latency_ms) / self.total_requests
        if error is not None:
            self.failed_requests += 1
            self.last_error = error


# ---------------------------------------------------------------------------
# AdapterBase
# ---------------------------------------------------------------------------

class AdapterBase(ABC):
    """
    Base class for the commerce backend adapters.

    Subclasses set ``name`` and pass the API root URL to __init__. Tests
    inject an ``httpx.MockTransport`` through ``transport``.
    """

    name: str = ""

    CB_FAILURE_THRESHOLD: int = 5
    CB_RECOVERY_TIMEOUT: float = 30.0

    MAX_RETRIES: int = 2
    BACKOFF_BASE: float = 0.5
    BACKOFF_MAX: float = 5.0

    def __init__(
        self,
        base_url: str,
        credentials: AuthCredentials | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._credentials = credentials or AuthCredentials()
        self._transport = transport
        self._health = IntegrationHealth(adapter_name=self.name)
        self._consecutive_failures = 0
        self._opened_at: float | None = None

    def get_health(self) -> IntegrationHealth:
        return self._health

    # --- Circuit breaker ---

    def _circuit_allows(self) -> bool:
        if self._health.circuit_state != CircuitState.OPEN:
            return True
        if time.monotonic() - (self._opened_at or 0.0) > self.CB_RECOVERY_TIMEOUT:
            self._health.circuit_state = CircuitState.HALF_OPEN
            return True
        return False

    def _on_success(self, latency_ms: float) -> None:
        self._health.record(latency_ms)
        self._consecutive_failures = 0
        self._health.circuit_state = CircuitState.CLOSED

    def _on_failure(self, latency_ms: float, error: str) -> None:
        self._health.record(latency_ms, error)
        self._consecutive_failures += 1
        half_open = self._health.circuit_state == CircuitState.HALF_OPEN
        if half_open or self._consecutive_failures >= self.CB_FAILURE_THRESHOLD:
            if self._health.circuit_state != CircuitState.OPEN:
                logger.warning("Circuit breaker opened for %s", self.name)
            self._health.circuit_state = CircuitState.OPEN
            self._opened_at = time.monotonic()

    def _backoff(self, attempt: int) -> float:
        return min(self.BACKOFF_BASE * (2 ** attempt), self.BACKOFF_MAX)

    # --- Core request ---

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    async def request(self, req: AdapterRequest) -> AdapterResponse:
        """Circuit breaker → auth → retry w/ backoff → health."""
        if not self._circuit_allows():
            return AdapterResponse(
                status_code=503,
                error=f"Circuit breaker OPEN for {self.name}",
                adapter_name=self.name,
            )

        url = f"{self.base_url}/{req.path.lstrip('/')}"
        headers = {**self._credentials.headers(), **req.headers}
        last_error = ""
        latency = 0.0
        attempts = 0

        async with self._client() as client:
            while attempts <= self.MAX_RETRIES:
                if attempts:
                    await asyncio.sleep(self._backoff(attempts - 1))
                attempts += 1
                start = time.monotonic()
                try:
                    resp = await client.request(
                        req.method,
                        url,
                        params=req.params or None,
                        json=req.body,
                        headers=headers,
                        timeout=req.timeout,
                    )
                except httpx.HTTPError as exc:
                    latency = (time.monotonic() - start) * 1000
                    last_error = str(exc) or exc.__class__.__name__
                    logger.debug("%s %s attempt %d failed: %s", req.method, url, attempts, last_error)
                    continue

                latency = (time.monotonic() - start) * 1000
                if resp.status_code >= 500:
                    last_error = f"HTTP {resp.status_code}: {resp.text[:200]}"
                    logger.debug("%s %s attempt %d failed: %s", req.method, url, attempts, last_error)
                    continue

                data: Any = resp.text
                if resp.headers.get("content-type", "").startswith("application/json"):
                    try:
                        data = resp.json()
                    except ValueError:
                        error = f"HTTP {resp.status_code}: malformed JSON body"
                        self._on_failure(latency, error)
                        logger.warning("%s %s returned %s", req.method, url, error)
                        return AdapterResponse(
                            status_code=502,
                            data=resp.text,
                            latency_ms=latency,
                            adapter_name=self.name,
                            error=error,
                            attempts=attempts,
                        )

                if resp.status_code < 400:
                    self._on_success(latency)
                else:
                    self._on_failure(latency, f"HTTP {resp.status_code}")
                return AdapterResponse(
                    status_code=resp.status_code,
                    data=data,
                    latency_ms=latency,
                    adapter_name=self.name,
                    error=None if resp.status_code < 400 else resp.text[:200],
                    attempts=attempts,
                )

        self._on_failure(latency, last_error)
        logger.warning("%s %s failed after %d attempt(s): %s", req.method, url, attempts, last_error)
        return AdapterResponse(
            status_code=502,
            error=last_error,
            adapter_name=self.name,
            attempts=attempts,
        )
