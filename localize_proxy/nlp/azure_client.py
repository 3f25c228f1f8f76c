from typing import Any, List, Optional

import httpx

from localize_proxy.errors import ProviderError
from localize_proxy.logger import get_logger
from localize_proxy.nlp.context import unwrap, wrap
from localize_proxy.nlp.language_detect import detect_batch_language
from localize_proxy.pipeline.models import (
    FALLBACK,
    RESOLVED,
    Outcome,
    TextItem,
    TranslationResult,
    base_language,
)
from localize_proxy.settings import validate_provider_settings


AZURE_API_VERSION = "3.0"

# Upstream bodies are cut to this length before they reach the caller
MAX_ERROR_BODY = 200

logger = get_logger("localize.nlp.azure")


def truncate_body(body: str, limit: int = MAX_ERROR_BODY) -> str:
    return (body or "")[:limit]


def _extract_text(results: Any, index: int) -> Optional[str]:
    try:
        text = results[index]["translations"][0]["text"]
    except (IndexError, KeyError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


class AzureTranslator:
    """
    Batch adapter for the Azure Translator v3 REST API.

    One POST per batch, results index-aligned with the input items.
    """

    def __init__(
        self,
        api_key: Optional[str],
        region: Optional[str],
        endpoint: str,
        timeout: float = 10.0,
        source_language: str = "en",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.region = region
        self.endpoint = endpoint
        self.timeout = timeout
        self.source_language = source_language
        self.transport = transport

    def ensure_configured(self) -> None:
        validate_provider_settings(self.api_key, self.region)

    def _headers(self) -> dict[str, str]:
        return {
            "Ocp-Apim-Subscription-Key": self.api_key or "",
            "Ocp-Apim-Subscription-Region": self.region or "",
            "Content-Type": "application/json",
        }

    async def _source_language(self, items: List[TextItem]) -> str:
        if self.source_language.lower() == "auto":
            return await detect_batch_language([item.text for item in items])
        return base_language(self.source_language)

    async def _post(self, body: List[dict], target_locale: str) -> Any:
        params = {"api-version": AZURE_API_VERSION, "to": target_locale}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(
                    self.endpoint,
                    params=params,
                    headers=self._headers(),
                    json=body,
                )
        except httpx.TimeoutException as exc:
            logger.warning("Azure Translator timed out after %ss", self.timeout)
            raise ProviderError("Translation error: provider timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Azure Translator request failed: %s", exc)
            raise ProviderError(
                "Translation error: " + truncate_body(str(exc) or "request failed")
            ) from exc

        status = response.status_code

        if not response.is_success:
            snippet = truncate_body(response.text)
            logger.warning("Azure Translator error %s: %s", status, snippet)
            raise ProviderError(
                f"Translation error: Azure Translator error ({status}): {snippet}",
                status=status,
            )

        try:
            return response.json()
        except ValueError as exc:
            logger.exception("Failed to decode Azure Translator response")
            raise ProviderError(
                "Translation error: provider returned malformed JSON",
                status=status,
            ) from exc

    async def translate_outcomes(
        self,
        items: List[TextItem],
        target_locale: str,
    ) -> List[Outcome[TranslationResult]]:
        """
        Translate items, tagging each result.

        Items the provider left out are returned with their source text and
        tagged "fallback".
        """
        if not items:
            return []

        source = await self._source_language(items)
        if source == base_language(target_locale):
            logger.info(
                "Target %s shares source language %s, skipping provider",
                target_locale,
                source,
            )
            return [
                Outcome(RESOLVED, TranslationResult(item.id, item.text), "same-language")
                for item in items
            ]

        self.ensure_configured()

        results = await self._post([{"Text": wrap(item)} for item in items], target_locale)

        outcomes: List[Outcome[TranslationResult]] = []
        for i, item in enumerate(items):
            text = _extract_text(results, i)
            if text is None:
                outcomes.append(Outcome(
                    FALLBACK,
                    TranslationResult(item.id, item.text.strip()),
                    "missing from provider response",
                ))
                continue
            outcomes.append(Outcome(
                RESOLVED,
                TranslationResult(item.id, unwrap(text, item.layer_name)),
            ))

        gaps = sum(1 for o in outcomes if not o.is_resolved)
        if gaps:
            logger.warning("Provider omitted %d of %d items", gaps, len(items))

        return outcomes

    async def translate_batch(
        self,
        items: List[TextItem],
        target_locale: str,
    ) -> List[TranslationResult]:
        outcomes = await self.translate_outcomes(items, target_locale)
        return [o.value for o in outcomes]
