"""
Utility functions for the application.
"""
import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Awaitable, Callable, Optional, TypeVar

R = TypeVar('R')

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def generate_id() -> str:
    """Internal identifier for orders, line items and log rows."""
    return str(uuid.uuid4())


def cents_to_amount(cents: Optional[int]) -> Decimal:
    """
    Convert minor currency units to major units.

    Only used at the persistence boundary; everything exchanged with the
    Stripe service stays in integer cents.
    """
    if not cents:
        return Decimal("0.00")
    return (Decimal(int(cents)) / 100).quantize(CENTS, rounding=ROUND_HALF_UP)


async def best_effort(
    step: str,
    func: Callable[..., Awaitable[R]],
    *args: Any,
    **kwargs: Any,
) -> Optional[R]:
    """
    Run a side effect that must never fail the calling operation.

    Any exception is logged with the step name and swallowed; the caller
    gets ``None`` back instead of the result.
    """
    try:
        return await func(*args, **kwargs)
    except Exception as e:
        logger.warning(f"Best-effort step '{step}' failed: {e}", exc_info=True)
        return None
