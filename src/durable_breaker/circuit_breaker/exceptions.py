"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open (``CircuitOpenError``).
  - The protected operation failing, which propagates its own exception.
"""


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        service_key: Service whose breaker rejected the call.
        retry_after: Seconds until a half-open probe may be attempted.
    """

    def __init__(self, service_key: str, retry_after: float) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            service_key: Service whose breaker rejected the call.
            retry_after: Seconds until the next probe window opens.
        """
        self.service_key = service_key
        self.retry_after = retry_after
        super().__init__(f"circuit_open: {service_key} retry_after={retry_after:g}s")
