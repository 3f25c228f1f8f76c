from typing import Dict, List, Optional

import pytest

from localize_proxy.cache.store import MemoryQuotaStore
from localize_proxy.errors import ConfigurationError
from localize_proxy.nlp.refiner import Refiner
from localize_proxy.pipeline.models import RESOLVED, Outcome, TextItem, TranslationResult
from localize_proxy.pipeline.orchestrator import TranslationPipeline
from localize_proxy.security.rate_limit import RateLimiter
from localize_proxy.settings import PROVIDER_MISCONFIGURED_MESSAGE


class FakeTranslator:
    """Translator double that records every batch it receives."""

    def __init__(
        self,
        translations: Optional[Dict[str, str]] = None,
        error: Optional[Exception] = None,
        configured: bool = True,
    ):
        self.translations = translations or {}
        self.error = error
        self.configured = configured
        self.calls: List[List[str]] = []

    def ensure_configured(self) -> None:
        if not self.configured:
            raise ConfigurationError(PROVIDER_MISCONFIGURED_MESSAGE)

    async def translate_outcomes(self, items, target_locale):
        self.calls.append([item.id for item in items])
        if self.error is not None:
            raise self.error
        return [
            Outcome(
                RESOLVED,
                TranslationResult(
                    item.id,
                    self.translations.get(item.text, f"{item.text} [{target_locale}]"),
                ),
            )
            for item in items
        ]


class RecordingGenerate:
    """Async LLM stand-in returning a canned reply."""

    def __init__(self, reply: str = "[]", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def items():
    return [
        TextItem(id="a", layer_name="Heading", text="Welcome"),
        TextItem(id="b", layer_name="Date", text="JAN"),
    ]


@pytest.fixture
def quota_store():
    return MemoryQuotaStore()


@pytest.fixture
def make_pipeline(quota_store):
    def _make(
        translator: Optional[FakeTranslator] = None,
        generate=None,
        limit: int = 25,
        store=None,
    ):
        translator = translator or FakeTranslator()
        pipeline = TranslationPipeline(
            limiter=RateLimiter(store or quota_store, limit=limit, window_seconds=86400),
            translator=translator,
            refiner=Refiner(generate, timeout=1.0),
            max_items=200,
            max_length=5000,
        )
        return pipeline, translator

    return _make
