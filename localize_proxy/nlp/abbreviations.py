from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from localize_proxy.pipeline.models import (
    RESOLVED,
    Outcome,
    TextItem,
    TranslationResult,
    base_language,
)


def _entries(codes: str, *columns: Tuple[str, str]) -> dict:
    """
    Build {ABBREV: {lang: localized}} from a space separated key list and
    (lang, space separated values) columns.
    """
    keys = codes.split()
    table: dict = {key: {} for key in keys}

    for lang, values in columns:
        localized = values.split()
        if len(localized) != len(keys):
            raise ValueError(f"Abbreviation column {lang} has {len(localized)} values")
        for key, value in zip(keys, localized):
            table[key][lang] = value

    return table


_MONTHS = _entries(
    "JAN FEB MAR APR MAY JUN JUL AUG SEP OCT NOV DEC",
    ("fr", "JANV FÉV MARS AVR MAI JUIN JUIL AOÛT SEPT OCT NOV DÉC"),
    ("de", "JAN FEB MÄR APR MAI JUN JUL AUG SEP OKT NOV DEZ"),
    ("es", "ENE FEB MAR ABR MAY JUN JUL AGO SEP OCT NOV DIC"),
    ("it", "GEN FEB MAR APR MAG GIU LUG AGO SET OTT NOV DIC"),
    ("pt", "JAN FEV MAR ABR MAI JUN JUL AGO SET OUT NOV DEZ"),
    ("nl", "JAN FEB MRT APR MEI JUN JUL AUG SEP OKT NOV DEC"),
    ("ja", "1月 2月 3月 4月 5月 6月 7月 8月 9月 10月 11月 12月"),
    ("zh", "1月 2月 3月 4月 5月 6月 7月 8月 9月 10月 11月 12月"),
    ("ko", "1월 2월 3월 4월 5월 6월 7월 8월 9월 10월 11월 12월"),
    ("ar", "يناير فبراير مارس أبريل مايو يونيو يوليو أغسطس سبتمبر أكتوبر نوفمبر ديسمبر"),
)

_WEEKDAYS = _entries(
    "MON TUE WED THU FRI SAT SUN",
    ("fr", "LUN MAR MER JEU VEN SAM DIM"),
    ("de", "MO DI MI DO FR SA SO"),
    ("es", "LUN MAR MIÉ JUE VIE SÁB DOM"),
    ("it", "LUN MAR MER GIO VEN SAB DOM"),
    ("pt", "SEG TER QUA QUI SEX SÁB DOM"),
    ("nl", "MA DI WO DO VR ZA ZO"),
    ("ja", "月 火 水 木 金 土 日"),
    ("zh", "周一 周二 周三 周四 周五 周六 周日"),
    ("ko", "월 화 수 목 금 토 일"),
    ("ar", "الإثنين الثلاثاء الأربعاء الخميس الجمعة السبت الأحد"),
)

# Loaded once at import; read-only for the life of the process.
ABBREVIATIONS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    key: MappingProxyType(langs)
    for key, langs in {**_MONTHS, **_WEEKDAYS}.items()
})


def _restore_casing(original: str, match: str) -> str:
    if original == original.upper():
        return match.upper()
    if original == original.lower():
        return match.lower()
    if original[0] == original[0].upper():
        return match[:1].upper() + match[1:].lower()
    return match


def resolve(text: str, target_locale: str) -> Optional[str]:
    """
    Look up a month/weekday abbreviation for the target locale.

    Tries the exact locale code first, then its base language. The casing
    of the input (UPPER, lower, Title) is carried over to the result.
    Returns None when there is no entry.
    """
    trimmed = (text or "").strip()
    if not trimmed or not target_locale:
        return None

    entry = ABBREVIATIONS.get(trimmed.upper())
    if entry is None:
        return None

    match = entry.get(target_locale) or entry.get(base_language(target_locale))
    if not match:
        return None

    return _restore_casing(trimmed, match)


def split_fast_path(
    items: List[TextItem],
    target_locale: str,
) -> Tuple[List[Outcome[TranslationResult]], List[TextItem]]:
    """
    Partition items into dictionary hits and misses, keeping request order
    within each list.
    """
    hits: List[Outcome[TranslationResult]] = []
    misses: List[TextItem] = []

    for item in items:
        localized = resolve(item.text, target_locale)
        if localized is None:
            misses.append(item)
        else:
            hits.append(Outcome(RESOLVED, TranslationResult(item.id, localized)))

    return hits, misses
