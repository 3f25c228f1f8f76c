import uuid
from typing import Any, Dict, List, Optional, Protocol

from localize_proxy.errors import QuotaExceeded
from localize_proxy.logger import get_logger
from localize_proxy.nlp.abbreviations import split_fast_path
from localize_proxy.nlp.refiner import Refiner
from localize_proxy.pipeline.models import (
    Outcome,
    TextItem,
    TranslationRequest,
    TranslationResponse,
    TranslationResult,
)
from localize_proxy.pipeline.validation import parse_translation_request
from localize_proxy.security.rate_limit import RateLimiter
from localize_proxy.settings import QUOTA_EXCEEDED_MESSAGE


logger = get_logger("localize.pipeline")


class Translator(Protocol):
    def ensure_configured(self) -> None:
        ...

    async def translate_outcomes(
        self,
        items: List[TextItem],
        target_locale: str,
    ) -> List[Outcome[TranslationResult]]:
        ...


def assemble(
    items: List[TextItem],
    outcomes: List[Outcome[TranslationResult]],
) -> List[TranslationResult]:
    """
    Reassemble stage outcomes into request order, one result per item.

    An item with no outcome keeps its source text.
    """
    by_id: Dict[str, TranslationResult] = {}
    for outcome in outcomes:
        by_id.setdefault(outcome.value.id, outcome.value)

    return [by_id.get(item.id, TranslationResult(item.id, item.text)) for item in items]


class TranslationPipeline:
    """
    Validating -> RateLimiting -> Resolving -> Translating -> Refining -> Responding

    Errors from any state are raised as ProxyError subclasses and mapped to
    a response by the HTTP layer.
    """

    def __init__(
        self,
        limiter: RateLimiter,
        translator: Translator,
        refiner: Refiner,
        max_items: int,
        max_length: int,
    ):
        self.limiter = limiter
        self.translator = translator
        self.refiner = refiner
        self.max_items = max_items
        self.max_length = max_length

    async def handle(
        self,
        payload: Any,
        identity: Optional[str],
    ) -> TranslationResponse:
        request_id = uuid.uuid4().hex[:8]

        # Validating: nothing here consumes quota
        self.translator.ensure_configured()
        request = parse_translation_request(payload, self.max_items, self.max_length)
        logger.info(
            "[%s] %d layers -> %s",
            request_id,
            len(request.items),
            request.locale.target_locale,
        )

        # RateLimiting
        admission = await self.limiter.admit(identity)
        if not admission.allowed:
            raise QuotaExceeded(QUOTA_EXCEEDED_MESSAGE, remaining=0)

        results = await self.run(request, request_id)

        # Responding
        return TranslationResponse(results=results, remaining=admission.remaining)

    async def run(
        self,
        request: TranslationRequest,
        request_id: str = "-",
    ) -> List[TranslationResult]:
        locale = request.locale

        # Resolving
        hits, misses = split_fast_path(request.items, locale.target_locale)
        logger.info(
            "[%s] fast path resolved %d, %d for provider",
            request_id,
            len(hits),
            len(misses),
        )

        # Translating
        provided: List[Outcome[TranslationResult]] = []
        if misses:
            provided = await self.translator.translate_outcomes(misses, locale.target_locale)

        merged = assemble(request.items, hits + provided)

        # Refining covers fast-path hits too
        refined = await self.refiner.refine(request.items, merged, locale)

        logger.info("[%s] completed with %d results", request_id, len(refined))
        return refined
