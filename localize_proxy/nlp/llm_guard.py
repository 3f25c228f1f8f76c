import asyncio

from localize_proxy.logger import get_logger
from localize_proxy.pipeline.models import ERROR, RESOLVED, Outcome


logger = get_logger("localize.llm")


async def safe_llm_call(fn, *args, timeout: float, **kwargs) -> Outcome:
    """
    Safely execute an async LLM call with a deadline.

    Never raises for call failures:
    - success -> Outcome("resolved", text)
    - timeout or any exception -> Outcome("error", None, reason)

    Cancellation of the surrounding request still propagates.
    """
    try:
        text = await asyncio.wait_for(fn(*args, **kwargs), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("LLM call timed out after %ss", timeout)
        return Outcome(ERROR, None, "timeout")
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.exception("LLM call failed")
        return Outcome(ERROR, None, type(exc).__name__)

    return Outcome(RESOLVED, text)
