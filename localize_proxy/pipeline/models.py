from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar


T = TypeVar("T")

RESOLVED = "resolved"
FALLBACK = "fallback"
ERROR = "error"


@dataclass(frozen=True)
class TextItem:
    id: str
    layer_name: str
    text: str


@dataclass(frozen=True)
class TranslationResult:
    id: str
    translated: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "translated": self.translated}


@dataclass(frozen=True)
class LocaleRequest:
    target_locale: str
    locale_label: Optional[str] = None
    locale_currencies: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class TranslationRequest:
    items: List[TextItem]
    locale: LocaleRequest


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Tagged result of a pipeline stage.

    kind is one of "resolved", "fallback" or "error"; value always holds
    something usable so callers can merge without branching on exceptions.
    """
    kind: str
    value: T
    reason: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.kind == RESOLVED


@dataclass(frozen=True)
class TranslationResponse:
    results: List[TranslationResult]
    remaining: int

    def to_payload(self) -> List[Dict[str, Any]]:
        return [r.to_dict() for r in self.results]


def base_language(locale: str) -> str:
    return (locale or "").split("-", 1)[0].lower()
