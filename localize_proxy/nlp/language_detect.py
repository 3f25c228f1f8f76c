import asyncio
from collections import Counter
from typing import List

from langdetect import detect, DetectorFactory

from localize_proxy.logger import get_logger


DetectorFactory.seed = 0  # deterministic results

logger = get_logger("localize.nlp.language_detect")

DEFAULT_LANGUAGE = "en"

# Snippets shorter than this are too noisy to vote
_MIN_DETECT_LENGTH = 10


def _safe_detect_sync(text: str) -> str:
    try:
        return detect(text)
    except Exception:
        return DEFAULT_LANGUAGE


async def _safe_detect(text: str) -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, _safe_detect_sync, text)


async def detect_batch_language(texts: List[str]) -> str:
    """
    Detect the dominant source language of a batch of snippets.

    Design-tool text is mostly short labels, so only longer snippets vote.
    Falls back to English when nothing is long enough.
    """
    candidates = [t.strip() for t in texts if len((t or "").strip()) > _MIN_DETECT_LENGTH]

    if not candidates:
        # Short labels alone: try them joined as one sample
        joined = " ".join(t.strip() for t in texts if t and t.strip())
        if len(joined) <= _MIN_DETECT_LENGTH:
            return DEFAULT_LANGUAGE
        candidates = [joined]

    langs = await asyncio.gather(*(_safe_detect(t) for t in candidates))

    if not langs:
        return DEFAULT_LANGUAGE

    dominant, _ = Counter(langs).most_common(1)[0]
    logger.debug("Detected source language %s from %d samples", dominant, len(langs))
    return dominant.split("-", 1)[0].lower()
