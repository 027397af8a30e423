"""Explicit per-process registry of circuit breakers."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from durable_breaker.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from durable_breaker.circuit_breaker.health import HealthReport
from durable_breaker.circuit_breaker.metrics import BreakerListener
from durable_breaker.clock import Clock
from durable_breaker.logging import Logger
from durable_breaker.storage.memory import InMemoryStorageAdapter
from durable_breaker.storage.repository import (
    CircuitStateRepository,
    DefaultCircuitStateRepository,
)

T = TypeVar("T")


class BreakerRegistry:
    """Create, cache and look up one ``CircuitBreaker`` per service key.

    Breakers share the registry's repository, listeners and clock. Per-key
    configuration set through ``configure`` applies to breakers created after
    the call.
    """

    def __init__(
        self,
        repository: CircuitStateRepository | None = None,
        config: CircuitBreakerConfig | None = None,
        listeners: Sequence[BreakerListener] = (),
        clock: Clock | None = None,
        logger: Logger | None = None,
    ) -> None:
        self._repository = (
            DefaultCircuitStateRepository(InMemoryStorageAdapter())
            if repository is None
            else repository
        )
        self._default_config = CircuitBreakerConfig() if config is None else config
        self._listeners = tuple(listeners)
        self._clock = clock
        self._logger = logger
        self._configs: dict[str, CircuitBreakerConfig] = {}
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = asyncio.Lock()

    @property
    def repository(self) -> CircuitStateRepository:
        return self._repository

    def configure(self, service_key: str, config: CircuitBreakerConfig) -> None:
        """Set the configuration used when ``service_key``'s breaker is created."""
        self._configs[service_key] = config

    def config_for(self, service_key: str) -> CircuitBreakerConfig:
        return self._configs.get(service_key, self._default_config)

    async def get(self, service_key: str) -> CircuitBreaker:
        """Return the breaker for ``service_key``, creating and restoring it once."""
        breaker = self._breakers.get(service_key)
        if breaker is not None:
            return breaker
        async with self._lock:
            breaker = self._breakers.get(service_key)
            if breaker is None:
                breaker = await CircuitBreaker.create(
                    service_key,
                    config=self.config_for(service_key),
                    repository=self._repository,
                    listeners=self._listeners,
                    clock=self._clock,
                    logger=self._logger,
                )
                self._breakers[service_key] = breaker
        return breaker

    async def protect(
        self,
        service_key: str,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        fallback: Callable[[Exception], T | Awaitable[T]] | None = None,
        **kwargs: Any,
    ) -> T:
        """Run ``func`` through ``service_key``'s breaker, with optional fallback."""
        breaker = await self.get(service_key)
        if fallback is None:
            return await breaker.call(func, *args, **kwargs)
        return await breaker.call_with_fallback(func, fallback, *args, **kwargs)

    def forget(self, service_key: str) -> None:
        """Drop the cached breaker; persisted state is left untouched."""
        self._breakers.pop(service_key, None)

    def clear(self) -> None:
        self._breakers.clear()

    def all(self) -> dict[str, CircuitBreaker]:
        return dict(self._breakers)

    def health_reports(self) -> dict[str, HealthReport]:
        return {key: breaker.health_report() for key, breaker in self._breakers.items()}
