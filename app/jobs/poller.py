"""
app/jobs/poller.py

Purpose: Generic long-running job poller

- Repeatedly checks an external job until it reaches a terminal status
- Adaptive (per response class) or fixed delay between checks
- Bounded number of attempts
- Optional pre-check hook (token refresh)

Provider clients raise ProviderHTTPError for non-OK status responses;
everything else raised by a check is treated as a transient failure.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from app.core.exceptions import ProviderHTTPError
from app.core.logging import get_logger

logger = get_logger(__name__)


class JobStatus(str, Enum):
    """What a single status check says about the job."""
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    MODERATED = "moderated"


class JobOutcome(str, Enum):
    """How a polling run ended. Exactly one per run."""
    READY = "ready"
    FAILED = "failed"
    MODERATED = "moderated"
    TIMEOUT = "timeout"


class ResponseClass(str, Enum):
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NOT_FOUND = "not_found"
    CLIENT_ERROR = "client_error"


@dataclass
class StatusReport:
    status: JobStatus
    result: Any = None
    detail: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status is not JobStatus.PENDING


@dataclass
class PollResult:
    outcome: JobOutcome
    result: Any = None
    detail: Optional[str] = None
    attempts: int = 0
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is JobOutcome.READY


def classify_status_code(status_code: int) -> ResponseClass:
    if status_code == 429:
        return ResponseClass.RATE_LIMITED
    if status_code >= 500:
        return ResponseClass.SERVER_ERROR
    if status_code == 404:
        return ResponseClass.NOT_FOUND
    return ResponseClass.CLIENT_ERROR


class BackoffPolicy:
    """Decides the delay before the next check."""

    initial_delay: float

    def after_pending(self, delay: float) -> float:
        raise NotImplementedError

    def after_error(self, delay: float, response_class: ResponseClass) -> float:
        raise NotImplementedError


# (multiplier, cap in seconds)
DEFAULT_ERROR_RULES: Dict[ResponseClass, Tuple[float, float]] = {
    ResponseClass.RATE_LIMITED: (2.0, 10.0),
    ResponseClass.SERVER_ERROR: (1.5, 8.0),
    ResponseClass.NOT_FOUND: (1.2, 3.0),
    ResponseClass.CLIENT_ERROR: (1.5, 5.0),
}


@dataclass
class AdaptiveBackoff(BackoffPolicy):
    """
    Grows the delay on errors by a factor that depends on the response
    class, and decays it toward the base on healthy pending responses.
    Every result is clamped to [base_delay, min(class cap, max_delay)].
    """
    base_delay: float = 2.0
    max_delay: float = 10.0
    decay: float = 0.9
    rules: Dict[ResponseClass, Tuple[float, float]] = field(
        default_factory=lambda: dict(DEFAULT_ERROR_RULES)
    )

    @property
    def initial_delay(self) -> float:
        return self.base_delay

    def _clamp(self, delay: float, cap: float) -> float:
        ceiling = max(self.base_delay, min(cap, self.max_delay))
        return min(max(delay, self.base_delay), ceiling)

    def after_pending(self, delay: float) -> float:
        return self._clamp(delay * self.decay, self.max_delay)

    def after_error(self, delay: float, response_class: ResponseClass) -> float:
        factor, cap = self.rules[response_class]
        return self._clamp(delay * factor, cap)


@dataclass
class FixedBackoff(BackoffPolicy):
    interval: float = 30.0

    @property
    def initial_delay(self) -> float:
        return self.interval

    def after_pending(self, delay: float) -> float:
        return self.interval

    def after_error(self, delay: float, response_class: ResponseClass) -> float:
        return self.interval


StatusCheck = Callable[[], Awaitable[Dict[str, Any]]]
Classifier = Callable[[Dict[str, Any]], StatusReport]
PreCheckHook = Callable[[int], Awaitable[None]]


class JobPoller:
    """
    Polls one external job to a terminal outcome.

    Each loop iteration sleeps, then performs one check; every check
    (successful or not) uses one attempt.
    """

    def __init__(
        self,
        name: str,
        check_status: StatusCheck,
        classify: Classifier,
        backoff: BackoffPolicy,
        max_attempts: int,
        before_check: Optional[PreCheckHook] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.name = name
        self._check_status = check_status
        self._classify = classify
        self._backoff = backoff
        self._max_attempts = max_attempts
        self._before_check = before_check
        self._sleep = sleep

    async def run(self) -> PollResult:
        delay = self._backoff.initial_delay
        attempts = 0

        while attempts < self._max_attempts:
            await self._sleep(delay)
            attempts += 1

            try:
                if self._before_check is not None:
                    await self._before_check(attempts)
                payload = await self._check_status()
                report = self._classify(payload)
            except asyncio.CancelledError:
                raise
            except ProviderHTTPError as e:
                response_class = classify_status_code(e.upstream_status)
                delay = self._backoff.after_error(delay, response_class)
                logger.warning(
                    f"{self.name}: poll got HTTP {e.upstream_status} "
                    f"(attempt {attempts}/{self._max_attempts}), next check in {delay:.1f}s"
                )
                continue
            except Exception as e:
                delay = self._backoff.after_error(delay, ResponseClass.SERVER_ERROR)
                logger.warning(
                    f"{self.name}: poll error (attempt {attempts}/{self._max_attempts}): {e}"
                )
                if attempts >= self._max_attempts:
                    return PollResult(
                        outcome=JobOutcome.FAILED,
                        detail=str(e),
                        attempts=attempts,
                        error=e,
                    )
                continue

            logger.debug(f"{self.name}: status={report.status.value} attempt={attempts}")

            if report.status is JobStatus.READY:
                logger.info(f"{self.name}: ready after {attempts} checks")
                return PollResult(JobOutcome.READY, report.result, report.detail, attempts)
            if report.status is JobStatus.MODERATED:
                logger.warning(f"{self.name}: moderated: {report.detail}")
                return PollResult(JobOutcome.MODERATED, None, report.detail, attempts)
            if report.status is JobStatus.FAILED:
                logger.error(f"{self.name}: failed: {report.detail}")
                return PollResult(JobOutcome.FAILED, None, report.detail, attempts)

            delay = self._backoff.after_pending(delay)

        logger.error(f"{self.name}: timed out after {attempts} checks")
        return PollResult(
            outcome=JobOutcome.TIMEOUT,
            detail=f"No terminal status after {attempts} checks",
            attempts=attempts,
        )
