"""Logging surface for portfolio_ledger.

Wraps stdlib logging with the instrumentation decorators used across the
package entrypoints (operation tracing, slow-call timing, error reporting).
"""

from __future__ import annotations

import functools
import logging
import time
from typing import Any, Callable


portfolio_logger = logging.getLogger("portfolio_ledger")

_SEVERITY_LEVELS = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


def log_operation(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log start and completion of a named operation at DEBUG level."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            portfolio_logger.debug("[%s] started", name)
            result = fn(*args, **kwargs)
            portfolio_logger.debug("[%s] completed", name)
            return result

        return wrapper

    return deco


def log_timing(threshold: float = 0.0) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Warn when the wrapped call takes longer than ``threshold`` seconds."""

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed = time.perf_counter() - start
                if threshold and elapsed > threshold:
                    portfolio_logger.warning(
                        "slow_operation: %s took %.3fs (threshold %.3fs)",
                        fn.__qualname__, elapsed, threshold,
                    )

        return wrapper

    return deco


def log_errors(severity: str = "medium") -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Log exceptions raised by the wrapped call, then re-raise them."""
    level = _SEVERITY_LEVELS.get(severity, logging.WARNING)

    def deco(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return fn(*args, **kwargs)
            except Exception as exc:
                portfolio_logger.log(
                    level, "%s failed: %s: %s", fn.__qualname__, type(exc).__name__, exc
                )
                raise

        return wrapper

    return deco


def log_portfolio_operation(_event: str, _details: dict[str, Any] | None = None, execution_time: float | None = None) -> dict[str, Any]:
    if _details:
        portfolio_logger.info("[%s] %s", _event, _details)
    else:
        portfolio_logger.info("[%s]", _event)
    return {"event": _event, "details": _details or {}, "execution_time": execution_time}


def log_critical_alert(_alert_type: str, _severity: str, message: str, _action: str | None = None, details: dict[str, Any] | None = None) -> None:
    portfolio_logger.warning("critical_alert[%s]: %s %s", _alert_type, message, details or {})
