# retry.py
import asyncio
import logging

from exceptions import ContentBlockedException, ProviderUnavailableException, QuotaExceededException
from providers import ContentBlocked, QuotaExceeded, Success

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0


async def generate_with_retry(provider, prompt: str, max_attempts: int = MAX_ATTEMPTS,
                              delay: float = RETRY_DELAY_SECONDS, sleep=None) -> str:
    """Call the provider until it succeeds or the attempt budget runs out.

    Linear backoff with a fixed delay. Quota and content-safety failures stop
    the loop on the first occurrence since retrying cannot change them.
    Returns the generated text stripped of surrounding whitespace.
    """
    sleep = sleep or asyncio.sleep

    for attempt in range(1, max_attempts + 1):
        result = await provider.generate(prompt)
        if isinstance(result, Success):
            return result.text.strip()

        logger.warning(
            "%s API error (attempt %d/%d): %s",
            provider.name, attempt, max_attempts, result.detail,
        )
        if isinstance(result, QuotaExceeded):
            raise QuotaExceededException()
        if isinstance(result, ContentBlocked):
            raise ContentBlockedException()

        # no wait after the final attempt
        if attempt < max_attempts:
            await sleep(delay)

    raise ProviderUnavailableException()
