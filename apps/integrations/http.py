"""
Shared HTTP plumbing for the integration clients.

Every upstream call goes through ``send_with_retry``: an explicit timeout on
each attempt and a bounded number of attempts with exponential backoff.
"""

import logging
import time

import requests

from .exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def build_session(user_agent='bartab/0.3'):
    session = requests.Session()
    session.headers.update({'User-Agent': user_agent, 'Accept': 'application/json'})
    return session


def send_with_retry(
    session,
    method,
    url,
    *,
    service,
    timeout,
    attempts=3,
    backoff_base=0.2,
    retry_on_status=True,
    **kwargs
):
    """
    Perform an HTTP request with retry on transient failures.

    Connection errors and timeouts are always retried. Retryable status
    codes (429, 5xx) are retried only when ``retry_on_status`` is set; a
    non-idempotent call should leave it off.

    Args:
        session: ``requests.Session`` used for the call.
        method: HTTP method.
        url: Absolute URL.
        service: Upstream name, used in errors and logs.
        timeout: Per-attempt timeout in seconds.
        attempts: Maximum number of attempts (at least 1).
        backoff_base: First backoff delay; doubles on each retry.
        retry_on_status: Retry on 429/5xx responses.
        **kwargs: Passed through to ``session.request``.

    Returns:
        requests.Response: The final response (any status below 400).

    Raises:
        UpstreamServiceError: When every attempt failed or the response
            status is an error.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        last_attempt = attempt >= attempts - 1
        try:
            response = session.request(method, url, timeout=timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            logger.warning('%s %s %s failed (attempt %d/%d): %s',
                           service, method, url, attempt + 1, attempts, exc)
            if last_attempt:
                raise UpstreamServiceError(
                    f'{service} is unreachable: {exc}', service=service
                ) from exc
        except requests.RequestException as exc:
            raise UpstreamServiceError(
                f'{service} request failed: {exc}', service=service
            ) from exc
        else:
            if response.status_code < 400:
                return response
            retryable = retry_on_status and response.status_code in RETRYABLE_STATUS_CODES
            if not retryable or last_attempt:
                raise UpstreamServiceError(
                    f'{service} returned HTTP {response.status_code}: {_error_detail(response)}',
                    service=service,
                    status_code=response.status_code,
                )
            logger.warning('%s %s %s returned HTTP %d (attempt %d/%d)',
                           service, method, url, response.status_code, attempt + 1, attempts)
        time.sleep(backoff_base * (2 ** attempt))


def _error_detail(response):
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return body.get('message') or body.get('error_message') or body.get('error') or str(body)
    return str(body)[:200]
