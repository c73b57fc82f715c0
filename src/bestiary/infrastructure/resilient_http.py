import logging
import os
import time
from dataclasses import dataclass
from typing import Any

import httpx


logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


class CircuitOpenError(RuntimeError):
    pass


@dataclass
class _CircuitState:
    failures: int = 0
    opened_until_epoch: float = 0.0


@dataclass(frozen=True)
class CircuitSettings:
    enabled: bool = True
    failure_threshold: int = 3
    reset_seconds: float = 120.0

    @classmethod
    def from_env(cls) -> "CircuitSettings":
        enabled_raw = os.getenv("BESTIARY_HTTP_CIRCUIT_BREAKER_ENABLED", "1")
        return cls(
            enabled=str(enabled_raw).strip().lower() in {"1", "true", "yes"},
            failure_threshold=max(1, int(os.getenv("BESTIARY_HTTP_CIRCUIT_FAILURE_THRESHOLD", "3"))),
            reset_seconds=max(0.0, float(os.getenv("BESTIARY_HTTP_CIRCUIT_RESET_SECONDS", "120"))),
        )


_CIRCUITS: dict[str, _CircuitState] = {}


def reset_circuit_breakers() -> None:
    _CIRCUITS.clear()


def _host_key(client: httpx.Client) -> str:
    return str(getattr(client, "base_url", "") or "unknown")


def _guard_circuit(key: str, settings: CircuitSettings) -> None:
    state = _CIRCUITS.get(key)
    if not settings.enabled or state is None:
        return
    if state.opened_until_epoch > time.time():
        raise CircuitOpenError(f"HTTP circuit open for {key} until {int(state.opened_until_epoch)}")
    if state.opened_until_epoch > 0:
        _CIRCUITS[key] = _CircuitState()


def _note_failure(key: str, settings: CircuitSettings) -> None:
    if not settings.enabled:
        return
    state = _CIRCUITS.setdefault(key, _CircuitState())
    state.failures += 1
    if state.failures >= settings.failure_threshold:
        state.opened_until_epoch = time.time() + settings.reset_seconds
        logger.warning("HTTP circuit opened", extra={"host": key, "failures": state.failures})


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return False


def get_json_with_retry(
    client: httpx.Client,
    path: str,
    *,
    params: dict[str, Any] | None = None,
    retries: int = 0,
    backoff_seconds: float = 0.2,
) -> dict[str, Any]:
    """GET ``path`` and decode a JSON object, retrying transient failures with backoff.

    A list payload is wrapped as ``{"results": [...]}``.
    """

    settings = CircuitSettings.from_env()
    key = _host_key(client)
    attempts = max(0, int(retries)) + 1

    for attempt in range(attempts):
        try:
            _guard_circuit(key, settings)
            response = client.get(path, params=params)
            if response.status_code in _RETRYABLE_STATUS_CODES:
                raise httpx.HTTPStatusError(
                    f"Retryable HTTP status: {response.status_code}",
                    request=response.request,
                    response=response,
                )
            response.raise_for_status()
            payload = response.json()
            _CIRCUITS.pop(key, None)
            return payload if isinstance(payload, dict) else {"results": payload}
        except Exception as exc:
            retryable = _is_retryable(exc)
            if retryable:
                _note_failure(key, settings)
            if not retryable or attempt >= attempts - 1:
                raise
            delay = max(0.0, backoff_seconds) * (2 ** attempt)
            logger.debug("Retrying HTTP request", extra={"path": path, "attempt": attempt + 1, "delay": delay})
            if delay > 0:
                time.sleep(delay)

    return {}
