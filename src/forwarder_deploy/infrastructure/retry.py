"""Retry executor built on tenacity.

Runs an action that reports a typed ActionResult, retrying transient
failures with a fixed delay until the policy's attempt or time budget is
spent. The action itself decides what counts as transient.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from forwarder_deploy.domain.config.retry import RetryPolicy
from forwarder_deploy.domain.models.attempt import ActionResult, Attempt, AttemptOutcome, RetryReport
from forwarder_deploy.errors import RetryExhaustedError

logger = logging.getLogger(__name__)

Action = Callable[[], ActionResult]


def _is_transient(result: ActionResult) -> bool:
    return result.outcome is AttemptOutcome.TRANSIENT_FAILURE


class RetryExecutor:
    """Executes actions under a RetryPolicy"""

    def __init__(self, sleep: Callable[[float], None] = time.sleep):
        """Initialize executor

        Args:
            sleep: Function used for warm-up and between-attempt waits
        """
        self._sleep = sleep

    def _build_stop(self, policy: RetryPolicy):
        stop = stop_after_attempt(policy.max_attempts)
        if policy.timeout_seconds:
            stop = stop | stop_after_delay(policy.timeout_seconds)
        return stop

    def run(
        self,
        name: str,
        action: Action,
        policy: RetryPolicy,
        warm_up_seconds: float = 0,
    ) -> RetryReport:
        """Run an action until it succeeds or the policy is exhausted

        Args:
            name: Action name used in logs and errors
            action: Callable returning an ActionResult
            policy: Attempt cap, fixed delay and optional wall-clock cap
            warm_up_seconds: One-time wait before the first attempt

        Returns:
            RetryReport whose last attempt succeeded

        Raises:
            RetryExhaustedError: If the action never succeeded or failed terminally
        """
        report = RetryReport(action_name=name)

        if warm_up_seconds > 0:
            logger.info(f"Waiting {warm_up_seconds:.0f}s before {name}...")
            self._sleep(warm_up_seconds)

        def _attempt() -> ActionResult:
            number = len(report.attempts) + 1
            logger.info(f"{name}: attempt {number}/{policy.max_attempts}")
            result = action()
            report.attempts.append(Attempt(number, result.outcome, result.output))
            return result

        def _before_sleep(retry_state: RetryCallState) -> None:
            logger.warning(
                f"{name} failed (attempt {retry_state.attempt_number}/{policy.max_attempts}). "
                f"Retrying in {policy.delay_seconds:.0f}s..."
            )

        retrying = Retrying(
            stop=self._build_stop(policy),
            wait=wait_fixed(policy.delay_seconds),
            retry=retry_if_result(_is_transient),
            before_sleep=_before_sleep,
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
            sleep=self._sleep,
        )
        result = retrying(_attempt)

        if result.succeeded:
            logger.info(f"{name} succeeded after {len(report.attempts)} attempt(s)")
            return report

        if result.outcome is AttemptOutcome.TERMINAL_FAILURE:
            logger.error(f"{name} failed with a non-retryable error")
        else:
            logger.error(f"{name} failed after {len(report.attempts)} attempt(s)")
        if report.last_output:
            logger.error(f"Output of the last {name} attempt:\n{report.last_output}")
        raise RetryExhaustedError(name, report.attempts)
