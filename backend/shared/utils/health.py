"""
Dependency health checks.

Each check is an async function wrapped with @health_check_with_timeout.
The wrapper never raises: a timeout or exception becomes an UNHEALTHY
result carrying the error text.

    @health_check_with_timeout(timeout=3.0, component="redis")
    async def check_redis_health() -> dict:
        await (await get_redis_pool()).ping()
        return {}
"""

from __future__ import annotations

import asyncio
import functools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from shared.config.logging import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class HealthCheckResult:
    component: str
    status: HealthStatus
    latency_ms: float
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.status.value, "latency_ms": round(self.latency_ms, 2)}
        if self.error:
            out["error"] = self.error
        if self.details:
            out["details"] = self.details
        return out


def health_check_with_timeout(timeout: float, component: str):
    def decorator(check: Callable[..., Awaitable[dict[str, Any] | None]]):
        @functools.wraps(check)
        async def run(*args: Any, **kwargs: Any) -> HealthCheckResult:
            started = time.perf_counter()
            status, error, details = HealthStatus.HEALTHY, None, {}
            try:
                details = await asyncio.wait_for(check(*args, **kwargs), timeout=timeout) or {}
            except asyncio.TimeoutError:
                status, error = HealthStatus.UNHEALTHY, f"timeout after {timeout}s"
            except Exception as e:
                status, error = HealthStatus.UNHEALTHY, str(e)
            if error:
                logger.warning("Health check failed", component=component, error=error)
            return HealthCheckResult(
                component=component,
                status=status,
                latency_ms=(time.perf_counter() - started) * 1000,
                error=error,
                details=details,
            )

        return run

    return decorator


async def aggregate_health_checks(checks: list[Awaitable[HealthCheckResult]]) -> dict[str, Any]:
    """
    Run checks concurrently.

    Returns {"status": "healthy" | "degraded", "components": {name: result}}.
    """
    results = await asyncio.gather(*checks)
    healthy = all(r.status == HealthStatus.HEALTHY for r in results)
    return {
        "status": (HealthStatus.HEALTHY if healthy else HealthStatus.DEGRADED).value,
        "components": {r.component: r.to_dict() for r in results},
    }
