"""Core circuit breaker implementation."""

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import ParamSpec, TypeVar, cast

import structlog

from durable_breaker.circuit_breaker.exceptions import CircuitOpenError
from durable_breaker.circuit_breaker.health import HealthReport, status_for
from durable_breaker.circuit_breaker.metrics import BreakerListener
from durable_breaker.circuit_breaker.states import OpenState, StateHandler, handler_for
from durable_breaker.clock import Clock, SystemClock
from durable_breaker.logging import Logger, log_debug, log_exception
from durable_breaker.state import BreakerState, CircuitState
from durable_breaker.storage.memory import InMemoryStorageAdapter
from durable_breaker.storage.repository import (
    CircuitStateRepository,
    DefaultCircuitStateRepository,
)

T = TypeVar("T")
P = ParamSpec("P")

_Signal = tuple[str, tuple[object, ...]]


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        failure_threshold: Failures required while ``CLOSED`` before opening.
        success_threshold: Successes required while ``HALF_OPEN`` before closing.
        timeout_seconds: Seconds to wait while ``OPEN`` before allowing a probe.
        expected_exceptions: Exceptions that count as failures.
        excluded_exceptions: Exceptions that must not count as failures.
    """

    failure_threshold: int = 5
    success_threshold: int = 2
    timeout_seconds: float = 30.0
    expected_exceptions: tuple[type[Exception], ...] = (Exception,)
    excluded_exceptions: tuple[type[Exception], ...] = ()

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")
        if self.timeout_seconds < 0:
            raise ValueError("timeout_seconds must be >= 0")


class CircuitBreaker:
    """Stateful proxy around a dangerous async operation.

    The live ``CircuitState`` is kept in memory and written through the
    repository after every change. Admission and outcome recording are
    serialized by a per-breaker ``asyncio.Lock``; the protected operation runs
    outside it, so concurrent calls may overlap.
    """

    def __init__(
        self,
        service_key: str,
        *,
        config: CircuitBreakerConfig | None = None,
        repository: CircuitStateRepository | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        clock: Clock | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        State is not loaded here. Use ``create`` to restore it eagerly, or let
        the first call load it.

        Args:
            service_key: Identity of the protected service, used as the
                storage key.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            repository: State persistence. Defaults to an in-memory repository.
            listeners: Optional listener hooks for breaker events.
            clock: Time source for failure timestamps and timeouts.
            logger: Logger receiving listener failures.
        """
        self._service_key = service_key
        self._config = CircuitBreakerConfig() if config is None else config
        self._repository = (
            DefaultCircuitStateRepository(InMemoryStorageAdapter())
            if repository is None
            else repository
        )
        self._listeners = tuple(listeners) if listeners is not None else ()
        self._clock = SystemClock() if clock is None else clock
        self._logger: Logger = (
            structlog.get_logger(__name__) if logger is None else logger
        )
        self._snapshot = CircuitState.initial(service_key)
        self._loaded = False
        self._lock = asyncio.Lock()

    @classmethod
    async def create(
        cls,
        service_key: str,
        *,
        config: CircuitBreakerConfig | None = None,
        repository: CircuitStateRepository | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        clock: Clock | None = None,
        logger: Logger | None = None,
    ) -> "CircuitBreaker":
        """Build a breaker and restore its persisted state."""
        breaker = cls(
            service_key,
            config=config,
            repository=repository,
            listeners=listeners,
            clock=clock,
            logger=logger,
        )
        await breaker.restore()
        return breaker

    @property
    def service_key(self) -> str:
        return self._service_key

    @property
    def config(self) -> CircuitBreakerConfig:
        return self._config

    @property
    def snapshot(self) -> CircuitState:
        return self._snapshot

    @property
    def state(self) -> BreakerState:
        return self._snapshot.state

    @property
    def failure_count(self) -> int:
        return self._snapshot.failure_count

    @property
    def success_count(self) -> int:
        return self._snapshot.success_count

    @property
    def last_failure_time(self) -> int | None:
        return self._snapshot.last_failure_time

    async def restore(self) -> CircuitState:
        """Reload state from the repository, discarding the in-memory snapshot.

        Returns:
            The restored snapshot; a fresh ``CLOSED`` state when nothing was
            persisted.
        """
        async with self._lock:
            await self._load()
        return self._snapshot

    async def _load(self) -> None:
        persisted = await self._repository.find(self._service_key)
        self._snapshot = (
            CircuitState.initial(self._service_key) if persisted is None else persisted
        )
        self._loaded = True
        log_debug(
            self._logger,
            "circuit_breaker.restored",
            service_key=self._service_key,
            found=persisted is not None,
            state=self._snapshot.state.value,
        )

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self._load()

    def _handler(self) -> StateHandler:
        return handler_for(self._snapshot.state)

    async def _transition(self, new: CircuitState, signals: list[_Signal]) -> None:
        old = self._snapshot
        if new == old:
            return
        self._snapshot = new
        if new.state is not old.state:
            signals.append(("on_state_change", (old.state, new.state, new)))
        await self._repository.save(new)

    async def _emit(self, signals: Sequence[_Signal]) -> None:
        for method, args in signals:
            for listener in self._listeners:
                try:
                    await getattr(listener, method)(*args)
                except Exception:
                    log_exception(
                        self._logger,
                        "circuit_breaker.listener_failed",
                        service_key=self._service_key,
                        listener=type(listener).__name__,
                        signal=method,
                    )

    async def _admit(self) -> None:
        signals: list[_Signal] = []
        try:
            async with self._lock:
                await self._ensure_loaded()
                try:
                    admitted = self._handler().admit(
                        self._snapshot, now=self._clock.now(), config=self._config
                    )
                except CircuitOpenError as exc:
                    signals.append(
                        ("on_call_rejected", (self._snapshot, exc.retry_after))
                    )
                    raise
                await self._transition(admitted, signals)
        finally:
            await self._emit(signals)

    async def _record(
        self,
        *,
        success: bool,
        signal: Callable[[CircuitState], _Signal],
    ) -> None:
        signals: list[_Signal] = []
        try:
            async with self._lock:
                handler = self._handler()
                record = handler.record_success if success else handler.record_failure
                await self._transition(
                    record(self._snapshot, now=self._clock.now(), config=self._config),
                    signals,
                )
        finally:
            signals.append(signal(self._snapshot))
            await self._emit(signals)

    async def call(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under circuit breaker protection.

        Args:
            func: Dangerous async callable to execute.
            *args: Positional arguments forwarded to ``func``.
            **kwargs: Keyword arguments forwarded to ``func``.

        Returns:
            The result of ``func`` when allowed and successful.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected.
            StorageError: When the new state cannot be persisted.
            Exception: The original exception from ``func`` when it is attempted
                and fails.
        """
        await self._admit()

        start = time.monotonic()
        try:
            result = await func(*args, **kwargs)
        except self._config.excluded_exceptions:
            raise
        except self._config.expected_exceptions as exc:
            elapsed = max(time.monotonic() - start, 0.0)
            await self._record(
                success=False,
                signal=lambda snapshot: ("on_call_failed", (snapshot, exc, elapsed)),
            )
            raise

        elapsed = max(time.monotonic() - start, 0.0)
        await self._record(
            success=True,
            signal=lambda snapshot: ("on_call_succeeded", (snapshot, elapsed)),
        )
        return result

    async def call_with_fallback(
        self,
        func: Callable[P, Awaitable[T]],
        fallback: Callable[[Exception], T | Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke ``func`` and fall back to ``fallback(exc)`` on any error.

        The fallback covers rejections (``CircuitOpenError``) and operation
        failures alike. It may be sync or async, and its outcome is not counted
        by the breaker.
        """
        try:
            return await self.call(func, *args, **kwargs)
        except Exception as exc:
            await self._emit([("on_fallback_executed", (self._snapshot, exc))])
            result = fallback(exc)
            if inspect.isawaitable(result):
                return await result
            return cast(T, result)

    async def force_open(self) -> CircuitState:
        """Open the circuit now, as if the failure threshold had been reached."""
        signals: list[_Signal] = []
        try:
            async with self._lock:
                await self._ensure_loaded()
                await self._transition(
                    CircuitState(
                        service_key=self._service_key,
                        state=BreakerState.OPEN,
                        failure_count=self._snapshot.failure_count,
                        success_count=0,
                        last_failure_time=int(self._clock.now()),
                    ),
                    signals,
                )
        finally:
            await self._emit(signals)
        return self._snapshot

    async def reset(self) -> CircuitState:
        """Close the circuit and clear counters and the failure timestamp."""
        signals: list[_Signal] = []
        try:
            async with self._lock:
                await self._ensure_loaded()
                await self._transition(CircuitState.initial(self._service_key), signals)
        finally:
            await self._emit(signals)
        return self._snapshot

    def health_report(self) -> HealthReport:
        """Describe the breaker's current health from its in-memory snapshot."""
        snapshot = self._snapshot
        retry_after = None
        if snapshot.state is BreakerState.OPEN:
            retry_after = OpenState.retry_after(
                snapshot,
                now=self._clock.now(),
                timeout=self._config.timeout_seconds,
            )
        return HealthReport(
            service_key=snapshot.service_key,
            status=status_for(snapshot),
            state=snapshot.state,
            failure_count=snapshot.failure_count,
            success_count=snapshot.success_count,
            last_failure_time=snapshot.last_failure_time,
            failure_threshold=self._config.failure_threshold,
            success_threshold=self._config.success_threshold,
            retry_after=retry_after,
        )
