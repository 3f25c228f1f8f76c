from typing import Optional

from google import genai

from localize_proxy.errors import RefinementFailure
from localize_proxy.logger import get_logger
from localize_proxy.settings import GEMINI_API_KEY, GEMINI_MODEL


logger = get_logger("localize.nlp.gemini")

_client: Optional[genai.Client] = None


def _get_client() -> genai.Client:
    global _client

    if _client is not None:
        return _client

    if not GEMINI_API_KEY:
        raise RefinementFailure("GEMINI_API_KEY is not set")

    _client = genai.Client(api_key=GEMINI_API_KEY)
    return _client


def _response_text(response) -> str:
    if getattr(response, "text", None):
        return response.text.strip()

    try:
        parts = response.candidates[0].content.parts
        if parts and parts[0].text:
            return parts[0].text.strip()
    except (AttributeError, IndexError, TypeError):
        pass

    raise RefinementFailure("Empty model output")


async def gemini_generate(prompt: str) -> str:
    """
    Async Gemini text generation on the SDK's native async client.

    Cancelling the awaiting task closes the underlying request. Errors
    bubble up; the caller decides how to degrade.
    """
    client = _get_client()

    try:
        response = await client.aio.models.generate_content(
            model=GEMINI_MODEL,
            contents=prompt,
        )
    except Exception:
        logger.exception("Gemini generation failed")
        raise

    return _response_text(response)
