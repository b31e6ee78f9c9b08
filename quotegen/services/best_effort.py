"""
Best-effort side effects.

Some work that follows a committed change (customer email, activity log entry)
must never fail the request that triggered it. `run_best_effort` runs such a
call, logs any exception, and reports the outcome as a value instead of raising.

Calls whose failure must propagate are simply called directly; anything routed
through here is, by construction, allowed to fail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BestEffortResult:
    """
    Outcome of a best-effort call.

    ok: True if the call returned normally
    value: what the call returned (None on failure)
    error: the exception message on failure
    """

    name: str
    ok: bool
    value: Any = None
    error: Optional[str] = None


def run_best_effort(name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> BestEffortResult:
    """Call `func(*args, **kwargs)`; capture and log any Exception."""

    try:
        value = func(*args, **kwargs)
    except Exception as e:
        logger.exception(
            f"Best-effort operation '{name}' failed: {e}",
            extra={"operation": name, "error_type": type(e).__name__},
        )
        return BestEffortResult(name=name, ok=False, error=str(e) or type(e).__name__)

    return BestEffortResult(name=name, ok=True, value=value)


__all__ = ["BestEffortResult", "run_best_effort"]
