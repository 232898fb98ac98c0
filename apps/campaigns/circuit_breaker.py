# apps/campaigns/circuit_breaker.py
import copy
import time
from enum import Enum
from functools import wraps
from django.core.cache import cache
from django.conf import settings
from django.db import DatabaseError
from django_redis.exceptions import ConnectionInterrupted
import logging

logger = logging.getLogger(__name__)

class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

class CircuitBreaker:
    """Serve a fixed fallback instead of raising when the wrapped call fails.

    State is kept in the Django cache so every worker process sees the same
    circuit. While the circuit is open the wrapped function is not called.
    """

    def __init__(self, fallback=None, failure_threshold=None, recovery_timeout=None,
                 expected_exception=DatabaseError):
        self.fallback = fallback
        self.failure_threshold = failure_threshold or settings.PLACEMENT_BREAKER_THRESHOLD
        self.recovery_timeout = recovery_timeout or settings.PLACEMENT_BREAKER_RECOVERY
        self.expected_exception = expected_exception

    @staticmethod
    def cache_key(func_name):
        return f"circuit_breaker:{func_name}"

    def _get_state(self, func_name):
        closed = {
            'state': CircuitState.CLOSED.value,
            'failure_count': 0,
            'last_failure_time': None
        }
        try:
            return cache.get(self.cache_key(func_name), closed)
        except ConnectionInterrupted as e:
            # No shared state without the cache: run the call as if CLOSED
            logger.warning(f"Circuit breaker state unavailable for {func_name}: {e}")
            return closed

    def _set_state(self, func_name, state_data):
        try:
            cache.set(self.cache_key(func_name), state_data, 300)
        except ConnectionInterrupted as e:
            logger.warning(f"Could not store circuit breaker state for {func_name}: {e}")

    def _should_attempt_reset(self, state_data):
        if state_data['state'] != CircuitState.OPEN.value:
            return False
        return time.time() - state_data['last_failure_time'] >= self.recovery_timeout

    def __call__(self, func):
        func_name = f"{func.__module__}.{func.__name__}"

        @wraps(func)
        def wrapper(*args, **kwargs):
            state_data = self._get_state(func_name)

            # Circuit OPEN - fail fast
            if state_data['state'] == CircuitState.OPEN.value:
                if not self._should_attempt_reset(state_data):
                    logger.warning(f"Circuit breaker OPEN for {func_name}")
                    return self._fallback_response()
                state_data['state'] = CircuitState.HALF_OPEN.value
                self._set_state(func_name, state_data)

            try:
                result = func(*args, **kwargs)
            except self.expected_exception as e:
                logger.error(f"Circuit breaker failure in {func_name}: {e}")
                self._record_failure(func_name, state_data)
                return self._fallback_response()

            if state_data['state'] != CircuitState.CLOSED.value:
                self._reset_circuit(func_name)
                logger.info(f"Circuit breaker CLOSED for {func_name}")

            return result

        wrapper.circuit_name = func_name
        return wrapper

    def _record_failure(self, func_name, state_data):
        state_data['failure_count'] += 1
        state_data['last_failure_time'] = time.time()

        if (state_data['state'] == CircuitState.HALF_OPEN.value or
                state_data['failure_count'] >= self.failure_threshold):
            state_data['state'] = CircuitState.OPEN.value
            logger.error(f"Circuit breaker OPENED for {func_name}")

        self._set_state(func_name, state_data)

    def _reset_circuit(self, func_name):
        self._set_state(func_name, {
            'state': CircuitState.CLOSED.value,
            'failure_count': 0,
            'last_failure_time': None
        })

    def _fallback_response(self):
        # Callers may mutate what they get back
        return copy.deepcopy(self.fallback)


def circuit_status(func):
    """Current breaker state for a function wrapped by CircuitBreaker."""
    name = getattr(func, 'circuit_name', f"{func.__module__}.{func.__name__}")
    data = cache.get(CircuitBreaker.cache_key(name)) or {}
    return {
        'circuit': name,
        'status': data.get('state', CircuitState.CLOSED.value),
        'failures': data.get('failure_count', 0),
    }
