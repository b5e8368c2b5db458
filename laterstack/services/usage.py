"""Cost accounting for analyzer calls to the Anthropic API."""

import asyncio
import logging
from datetime import datetime

from laterstack.models.saved_item import ApiUsageLog, get_session_factory

logger = logging.getLogger(__name__)

# USD per million tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "claude-haiku-4-5-20251001": (1.0, 5.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
}

# Unknown models are billed at the most expensive listed rate
DEFAULT_PRICING = (3.0, 15.0)

LOG_ATTEMPTS = 3
RETRY_BACKOFF_SECONDS = 0.5


def compute_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """USD cost of one API call."""
    input_rate, output_rate = MODEL_PRICING.get(model, DEFAULT_PRICING)
    return (input_tokens * input_rate + output_tokens * output_rate) / 1_000_000


async def log_usage(
    service: str,
    model: str,
    input_tokens: int,
    output_tokens: int,
    user_id: int | None = None,
) -> None:
    """Record one API call against the user who triggered it.

    Never raises. Lock contention is retried with linear backoff and a final
    failure is only logged.
    """
    entry_values = dict(
        service=service,
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost_usd=compute_cost(model, input_tokens, output_tokens),
        user_id=user_id,
    )

    for attempt in range(1, LOG_ATTEMPTS + 1):
        try:
            factory = await get_session_factory()
            async with factory() as session:
                session.add(ApiUsageLog(timestamp=datetime.now(), **entry_values))
                await session.commit()
            return
        except Exception as exc:
            if attempt == LOG_ATTEMPTS:
                logger.warning(
                    "Dropping %s usage record after %d attempts: %s", service, attempt, exc
                )
                return
            await asyncio.sleep(RETRY_BACKOFF_SECONDS * attempt)
