"""Timeout-bounded execution of upstream provider calls.

This is the "fetch" stage only: it runs a provider call on a worker thread,
waits a bounded time, and turns every failure into None after logging it.
Deciding what to return instead (None, synthetic data) is the caller's job.
"""

from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from functools import partial
from typing import Any, TypeVar

import sentry_sdk

from marketcache.logging import logger

T = TypeVar("T")


class UpstreamCaller:
    """
    ⏱️ Runs provider calls with a hard wait bound.

    When a call outlives the timeout the waiting request gives up, but the
    call keeps running; an optional `on_late_result` callback receives its
    value if it eventually succeeds, so the work can still warm the cache.
    """

    def __init__(self, timeout: float = 10.0, max_workers: int = 4) -> None:
        """
        Args:
            timeout: Seconds a caller waits for one upstream call
            max_workers: Size of the worker pool running upstream calls
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="marketcache-upstream"
        )

    def call(
        self,
        operation: str,
        symbol: str,
        fn: Callable[..., T],
        *args: Any,
        on_late_result: Callable[[T], None] | None = None,
    ) -> T | None:
        """
        Run `fn(*args)` and return its result, or None on error or timeout.

        Args:
            operation: Short name of the request kind, used in logs ("quote")
            symbol: Symbol or query the call is for, used in logs
            fn: Provider method to invoke
            *args: Positional arguments for `fn`
            on_late_result: Receives the result of a call that finished after
                the caller stopped waiting

        Returns:
            Whatever `fn` returned, or None if it raised or timed out
        """
        sentry_sdk.add_breadcrumb(
            category="market_data",
            message=f"Upstream {operation} request",
            level="info",
            data={"symbol": symbol, "operation": operation},
        )

        try:
            future = self._executor.submit(fn, *args)
        except RuntimeError as e:
            logger.error(
                "Upstream executor unavailable symbol={symbol} operation={operation} error={error}",
                symbol=symbol,
                operation=operation,
                error=str(e),
            )
            return None

        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            if not future.done():
                logger.warning(
                    "Upstream call timed out symbol={symbol} operation={operation} timeout={timeout}s",
                    symbol=symbol,
                    operation=operation,
                    timeout=self.timeout,
                )
                if on_late_result is not None:
                    future.add_done_callback(
                        partial(self._deliver_late, operation, symbol, on_late_result)
                    )
                return None
            # the provider itself raised a TimeoutError
            self._report_failure(operation, symbol, future.exception())
            return None
        except Exception as e:
            self._report_failure(operation, symbol, e)
            return None

    def _report_failure(self, operation: str, symbol: str, error: BaseException | None) -> None:
        logger.error(
            "Upstream call failed symbol={symbol} operation={operation} error={error}",
            symbol=symbol,
            operation=operation,
            error=repr(error),
        )
        if error is not None:
            sentry_sdk.capture_exception(error)

    def _deliver_late(
        self,
        operation: str,
        symbol: str,
        callback: Callable[[Any], None],
        future: Future,
    ) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._report_failure(operation, symbol, error)
            return

        logger.info(
            "Late upstream result arrived symbol={symbol} operation={operation}",
            symbol=symbol,
            operation=operation,
        )
        try:
            callback(future.result())
        except Exception as e:
            logger.error(
                "Failed to store late upstream result symbol={symbol} operation={operation} error={error}",
                symbol=symbol,
                operation=operation,
                error=str(e),
            )

    def shutdown(self) -> None:
        """Stop accepting calls; queued calls are cancelled, running ones finish."""
        self._executor.shutdown(wait=False, cancel_futures=True)
