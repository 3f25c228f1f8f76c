import json
from typing import Awaitable, Callable, Dict, List, Optional

from localize_proxy.errors import RefinementFailure
from localize_proxy.logger import get_logger
from localize_proxy.nlp.llm_guard import safe_llm_call
from localize_proxy.pipeline.models import (
    FALLBACK,
    RESOLVED,
    LocaleRequest,
    Outcome,
    TextItem,
    TranslationResult,
)


logger = get_logger("localize.nlp.refiner")

Generate = Callable[[str], Awaitable[str]]

_FENCE_MARKERS = ("```json", "```JSON", "```")


def build_refinement_prompt(
    items: List[TextItem],
    results: List[TranslationResult],
    locale: LocaleRequest,
) -> str:
    by_id = {r.id: r.translated for r in results}

    payload = [
        {
            "id": item.id,
            "layerName": item.layer_name,
            "original": item.text,
            "providerTranslation": by_id.get(item.id, item.text),
        }
        for item in items
        if item.id in by_id
    ]

    target = locale.target_locale
    if locale.locale_label:
        target = f"{locale.locale_label} ({locale.target_locale})"

    currency_line = ""
    if locale.locale_currencies:
        currency_line = (
            "Currencies used in this locale: "
            + ", ".join(locale.locale_currencies)
            + "\n"
        )

    return f"""
You are reviewing machine translations of UI text for the locale {target}.
{currency_line}
Each entry has the layer name (its role in the design), the original text
and the machine translation. Adjust the translations following these rules:
1. Reformat currency figures to the target locale's currency symbol and
   decimal convention. Keep the numeric value; never convert exchange rates.
2. Adapt date and number formatting to the locale's conventions.
3. Keep abbreviations similarly short.
4. Improve naturalness without changing the meaning.
5. Never translate proper nouns or brand names.

Return ONLY a JSON array of objects with exactly the keys "id" and
"translated", one per entry. No explanation, no markdown.

Entries:
{json.dumps(payload, ensure_ascii=False, indent=2)}
"""


def strip_wrappers(raw: str) -> str:
    """
    Remove code fences the model sometimes puts around its JSON.
    """
    text = (raw or "").strip()
    for marker in _FENCE_MARKERS:
        if text.startswith(marker):
            text = text[len(marker):]
            break
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def parse_refinement(raw: str) -> Dict[str, str]:
    """
    Parse the model reply into {id: translated}.

    Raises RefinementFailure when the reply is not a JSON array. Entries
    without a string id and translation are skipped.
    """
    try:
        data = json.loads(strip_wrappers(raw))
    except (TypeError, ValueError) as exc:
        raise RefinementFailure("Refinement reply is not valid JSON") from exc

    if not isinstance(data, list):
        raise RefinementFailure("Refinement reply is not a list")

    refined: Dict[str, str] = {}
    for entry in data:
        if not isinstance(entry, dict):
            continue
        entry_id = entry.get("id")
        translated = entry.get("translated")
        if isinstance(entry_id, str) and isinstance(translated, str) and translated.strip():
            refined[entry_id] = translated

    return refined


def merge_refinement(
    results: List[TranslationResult],
    outcome: Outcome,
) -> List[TranslationResult]:
    """
    Apply refined text by id. Ids missing from the refinement keep their
    provider value; ids only present in the refinement are ignored.
    """
    if not outcome.is_resolved or not outcome.value:
        return list(results)

    refined: Dict[str, str] = outcome.value
    return [
        TranslationResult(r.id, refined.get(r.id, r.translated))
        for r in results
    ]


class Refiner:
    """
    Optional LLM pass over the merged translations.

    Without a generator this is the identity. Any failure falls back to
    the input results.
    """

    def __init__(self, generate: Optional[Generate], timeout: float = 15.0):
        self.generate = generate
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return self.generate is not None

    async def refine_outcome(
        self,
        items: List[TextItem],
        results: List[TranslationResult],
        locale: LocaleRequest,
    ) -> Outcome[Dict[str, str]]:
        if not self.enabled:
            return Outcome(FALLBACK, {}, "refinement not configured")
        if not results:
            return Outcome(FALLBACK, {}, "nothing to refine")

        prompt = build_refinement_prompt(items, results, locale)
        reply = await safe_llm_call(self.generate, prompt, timeout=self.timeout)

        if not reply.is_resolved:
            return Outcome(FALLBACK, {}, reply.reason)

        try:
            refined = parse_refinement(reply.value)
        except RefinementFailure as exc:
            logger.warning("Discarding refinement reply: %s", exc)
            return Outcome(FALLBACK, {}, str(exc))

        return Outcome(RESOLVED, refined)

    async def refine(
        self,
        items: List[TextItem],
        results: List[TranslationResult],
        locale: LocaleRequest,
    ) -> List[TranslationResult]:
        outcome = await self.refine_outcome(items, results, locale)
        if outcome.kind == FALLBACK and self.enabled:
            logger.info("Refinement fell back: %s", outcome.reason)
        return merge_refinement(results, outcome)
