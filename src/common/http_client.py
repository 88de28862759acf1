"""Shared HTTP helpers used by the registry metadata client.

Encapsulates request/timeout handling and retry so the provider adapter does
not duplicate try/except blocks. Transient failures (timeouts, connection
errors, 429, 5xx) are retried according to a :class:`RetryPolicy`; any other
response is handed back to the caller, which decides what a 404 means.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, redact, safe_url, Timer
from common.retry import RetryPolicy
from errors import RegistryError, RegistryUnavailable

logger = logging.getLogger(__name__)


def robust_get(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], str]:
    """Perform GET request with timeout and bounded retries with DEBUG traces.

    Returns:
        Tuple of (status_code, headers_dict, body_text) for the first
        non-transient response.

    Raises:
        RegistryUnavailable: transient failures outlasted the retry budget.
    """
    policy = policy or RetryPolicy()
    safe_target = safe_url(url)
    last_error = ""
    last_status = 0

    for attempt in range(policy.max_attempts):
        retry_after = None
        with Timer() as t:
            try:
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request",
                        extra=extra_context(
                            event="http_request",
                            component="http_client",
                            action="GET",
                            target=safe_target,
                            attempt=attempt + 1
                        )
                    )

                response = requests.get(
                    url,
                    timeout=Constants.REQUEST_TIMEOUT,
                    headers=headers,
                    **kwargs
                )
            except requests.RequestException as exc:  # includes Timeout, ConnectionError
                last_error = "timeout" if isinstance(exc, requests.Timeout) else redact(str(exc))
                last_status = 0
                if is_debug_enabled(logger):
                    logger.debug(
                        "HTTP request exception",
                        extra=extra_context(
                            event="http_exception",
                            component="http_client",
                            action="GET",
                            outcome="timeout" if last_error == "timeout" else "request_exception",
                            attempt=attempt + 1,
                            target=safe_target
                        )
                    )
                if not policy.should_retry(attempt, exc):
                    if policy.retryable(exc):
                        break
                    raise RegistryError(f"GET {safe_target} failed: {last_error}", url=safe_target) from exc
                policy.sleep(policy.delay(attempt))
                continue

        status = response.status_code
        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    outcome="success" if status < 400 else "error_status",
                    status_code=status,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    attempt=attempt + 1
                )
            )

        if policy.retryable(status):
            last_error = f"HTTP {status}"
            last_status = status
            if status == 429:
                retry_after = response.headers.get("Retry-After")
            if not policy.should_retry(attempt, status):
                break
            logger.warning(
                "Registry returned %s for %s; retrying (attempt %d/%d)",
                status, safe_target, attempt + 1, policy.max_attempts,
            )
            policy.sleep(policy.delay(attempt, retry_after))
            continue

        return status, dict(response.headers), response.text

    logger.error("GET %s failed after %d attempts: %s", safe_target, policy.max_attempts, last_error)
    raise RegistryUnavailable(safe_target, policy.max_attempts, last_error, status=last_status)


def get_json(
    url: str,
    *,
    headers: Optional[Dict[str, str]] = None,
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any
) -> Tuple[int, Dict[str, str], Optional[Any]]:
    """GET ``url`` and decode a 200 body as JSON.

    Returns:
        (status_code, headers, document); the document is None for any
        other status.

    Raises:
        RegistryError: a 200 response carried a body that is not JSON.
    """
    status_code, response_headers, text = robust_get(url, headers=headers, policy=policy, **kwargs)

    if status_code == 200 and text:
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RegistryError(
                f"Invalid JSON from {safe_url(url)}: {exc}", url=safe_url(url), status=status_code
            ) from exc
        return status_code, response_headers, parsed

    return status_code, response_headers, None
