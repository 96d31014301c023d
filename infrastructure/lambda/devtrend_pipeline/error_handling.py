"""Error recovery utilities for the collection pipeline.

Bounded HTTP retry with exponential backoff, a catch-all recovery wrapper,
and JSON parsing helpers that never raise on malformed upstream payloads.
"""

import json
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import requests

from .config import REQUEST_TIMEOUT, USER_AGENT
from .logging_config import get_logger
from .models import ErrorType, SourceError

logger = get_logger(__name__)

T = TypeVar("T")

RETRY_AFTER_STATUS_CODES = frozenset({429, 503})


def sleep(seconds: float) -> None:
    """Block for the given number of seconds (no-op for non-positive values)."""
    if seconds > 0:
        time.sleep(seconds)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry schedule.

    Attributes:
        max_attempts: Total number of attempts, including the first one
        base_delay: Delay before the second attempt, in seconds
        max_delay: Upper bound for any single delay, in seconds
        jitter: Fraction of the computed delay added as random jitter
        timeout: Per-request timeout, in seconds
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 0.5
    timeout: float = REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def no_delay(cls, max_attempts: int = 3, timeout: float = REQUEST_TIMEOUT) -> "RetryPolicy":
        """Policy that retries immediately (used by tests)."""
        return cls(
            max_attempts=max_attempts,
            base_delay=0.0,
            max_delay=0.0,
            jitter=0.0,
            timeout=timeout,
        )

    @classmethod
    def single(cls, timeout: float) -> "RetryPolicy":
        """One attempt with the given timeout (used by health checks)."""
        return cls(max_attempts=1, base_delay=0.0, max_delay=0.0, jitter=0.0, timeout=timeout)

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after the given (1-based) failed attempt."""
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        if self.jitter and delay:
            delay += random.uniform(0, self.jitter * delay)
        return delay


@dataclass(frozen=True)
class FetchError:
    """Terminal failure of fetch_with_retry."""

    error_type: ErrorType
    message: str
    status_code: int | None = None
    transient: bool = False


@dataclass(frozen=True)
class FetchResult:
    """Outcome of fetch_with_retry: a response or a terminal error."""

    response: requests.Response | None
    error: FetchError | None
    attempts: int

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self, source: str) -> requests.Response:
        """Return the response, or raise SourceError for a failed fetch.

        Args:
            source: Source identity attached to the raised error

        Returns:
            The successful response

        Raises:
            SourceError: If the fetch failed
        """
        if self.error is not None:
            raise SourceError(
                source=source,
                error_type=self.error.error_type,
                message=self.error.message,
            )
        return self.response


def _classify_status(status_code: int) -> ErrorType:
    if status_code == 429:
        return "rate_limit"
    if status_code >= 500:
        return "server_error"
    return "client_error"


def _retry_after_seconds(response: requests.Response) -> float | None:
    value = response.headers.get("Retry-After") if response.headers else None
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except (TypeError, ValueError):
        return None


def fetch_with_retry(
    method: str,
    url: str,
    *,
    policy: RetryPolicy | None = None,
    sleep_func: Callable[[float], None] = sleep,
    session: requests.Session | None = None,
    **request_kwargs: Any,
) -> FetchResult:
    """Execute an HTTP request, retrying transient failures.

    Transient failures (connection errors, timeouts, HTTP 5xx and 429) are
    retried with exponential backoff plus jitter until ``policy.max_attempts``
    attempts have been made. Other 4xx responses are returned as a failure
    immediately. A Retry-After header on 429/503 replaces the computed delay
    (still capped by ``policy.max_delay``).

    Network and HTTP failures never raise; the caller gets a FetchResult.

    Args:
        method: HTTP method ("GET", "POST", ...)
        url: Target URL
        policy: Retry schedule (defaults to RetryPolicy())
        sleep_func: Delay primitive, injectable for tests
        session: Optional requests.Session; the requests module is used otherwise
        **request_kwargs: Passed through to requests (headers, params, json, ...)

    Returns:
        FetchResult with the successful response or the terminal error
    """
    policy = policy or RetryPolicy()
    http = session or requests
    headers = {"User-Agent": USER_AGENT}
    headers.update(request_kwargs.pop("headers", None) or {})

    last_error: FetchError | None = None

    for attempt in range(1, policy.max_attempts + 1):
        retry_after: float | None = None
        try:
            response = http.request(
                method,
                url,
                headers=headers,
                timeout=policy.timeout,
                **request_kwargs,
            )
        except requests.Timeout as e:
            last_error = FetchError("timeout", f"Request timed out: {e}", transient=True)
        except requests.ConnectionError as e:
            last_error = FetchError(
                "connection_error", f"Connection failed: {e}", transient=True
            )
        except requests.RequestException as e:
            return FetchResult(
                response=None,
                error=FetchError("client_error", str(e)),
                attempts=attempt,
            )
        else:
            status = response.status_code
            if status < 400:
                return FetchResult(response=response, error=None, attempts=attempt)

            error_type = _classify_status(status)
            transient = status == 429 or status >= 500
            last_error = FetchError(
                error_type,
                f"HTTP {status} from {url}",
                status_code=status,
                transient=transient,
            )
            if not transient:
                return FetchResult(response=response, error=last_error, attempts=attempt)
            if status in RETRY_AFTER_STATUS_CODES:
                retry_after = _retry_after_seconds(response)

        if attempt >= policy.max_attempts:
            break

        delay = policy.delay_for(attempt)
        if retry_after is not None:
            delay = min(retry_after, policy.max_delay)

        logger.warning(
            "http_retry_scheduled",
            url=url,
            attempt=attempt,
            max_attempts=policy.max_attempts,
            error_type=last_error.error_type,
            delay_seconds=round(delay, 3),
        )
        sleep_func(delay)

    logger.error(
        "http_retries_exhausted",
        url=url,
        attempts=policy.max_attempts,
        error_type=last_error.error_type if last_error else None,
    )
    return FetchResult(response=None, error=last_error, attempts=policy.max_attempts)


def with_error_recovery(
    operation: Callable[[], T],
    fallback: T | None = None,
    *,
    name: str = "operation",
    fallback_factory: Callable[[Exception], T] | None = None,
) -> T | None:
    """Run an operation, returning a fallback value instead of raising.

    Args:
        operation: Zero-argument callable to execute
        fallback: Value returned when the operation raises
        name: Operation name used in the log entry
        fallback_factory: Builds the fallback from the exception; takes
            precedence over ``fallback``

    Returns:
        The operation's result, or the fallback on any exception
    """
    try:
        return operation()
    except Exception as e:
        logger.warning("operation_recovered", operation=name, error=str(e), exc_info=True)
        if fallback_factory is not None:
            return fallback_factory(e)
        return fallback


def safe_json_parse(text: Any) -> Any | None:
    """Parse JSON text, returning None instead of raising.

    Args:
        text: Text to parse

    Returns:
        The parsed value, or None for empty, non-string or malformed input
    """
    if not text or not isinstance(text, str):
        return None

    trimmed = text.strip()
    try:
        return json.loads(trimmed)
    except ValueError as e:
        logger.debug("json_parse_failed", error=str(e), excerpt=trimmed[:100])
        return None


def _strip_json_comments(text: str) -> str:
    """Remove // and /* */ comments that sit outside string literals."""
    result: list[str] = []
    i = 0
    in_string = False
    quote = ""
    length = len(text)

    while i < length:
        char = text[i]
        if in_string:
            result.append(char)
            if char == "\\" and i + 1 < length:
                result.append(text[i + 1])
                i += 2
                continue
            if char == quote:
                in_string = False
            i += 1
            continue

        if char in ('"', "'"):
            in_string = True
            quote = char
            result.append(char)
            i += 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            i = length if newline == -1 else newline
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            result.append(char)
            i += 1

    return "".join(result)


def _strip_trailing_commas(text: str) -> str:
    """Remove commas directly before } or ] that sit outside string literals."""
    result: list[str] = []
    in_string = False
    quote = ""
    escaped = False

    for i, char in enumerate(text):
        if in_string:
            result.append(char)
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                in_string = False
            continue

        if char in ('"', "'"):
            in_string = True
            quote = char
        elif char == ",":
            rest = text[i + 1 :].lstrip()
            if rest[:1] in ("}", "]"):
                continue
        result.append(char)

    return "".join(result)


def lenient_json_parse(text: Any) -> Any | None:
    """Parse near-valid JSON, repairing common defects only when needed.

    Valid JSON is returned as parsed. Otherwise the repairs are applied in
    order: byte-order mark, comments, trailing commas, and single-quoted
    strings (only when the text has no double quotes).

    Args:
        text: Text to parse

    Returns:
        The parsed value, or None if the text is unrecoverable
    """
    if not text or not isinstance(text, str):
        return None

    parsed = safe_json_parse(text)
    if parsed is not None:
        return parsed

    fixed = text.lstrip("\ufeff").strip()
    fixed = _strip_json_comments(fixed)
    fixed = _strip_trailing_commas(fixed)

    if '"' not in fixed and "'" in fixed:
        fixed = fixed.replace("'", '"')

    return safe_json_parse(fixed)
