"""
Storefront Core Integrations — outbound adapter framework.

Provides the HTTP plumbing shared by commerce backend adapters:
- AdapterBase: HTTP adapter with auth, retry/backoff and circuit breaker
- AdapterRequest / AdapterResponse: standardized envelope
- IntegrationHealth: per-adapter latency and error tracking
"""
from core.integrations.adapter_base import (
    AdapterBase,
    AdapterRequest,
    AdapterResponse,
    AuthCredentials,
    AuthType,
    CircuitState,
    IntegrationHealth,
)

__all__ = [
    "AdapterBase",
    "AdapterRequest",
    "AdapterResponse",
    "AuthCredentials",
    "AuthType",
    "CircuitState",
    "IntegrationHealth",
]
