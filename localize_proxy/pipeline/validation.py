import re
from typing import Any, List

from localize_proxy.errors import ValidationError
from localize_proxy.pipeline.models import LocaleRequest, TextItem, TranslationRequest


# language[-script][-region], e.g. fr, fr-CA, zh-Hans, sr-Latn-RS
LOCALE_PATTERN = re.compile(r"^[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})*$")

INVALID_REQUEST = "Invalid request. Expected { textLayers, targetLocale }."


def _parse_item(raw: Any, index: int, max_length: int) -> TextItem:
    if not isinstance(raw, dict):
        raise ValidationError(f"textLayers[{index}] must be an object.")

    item_id = raw.get("id")
    text = raw.get("text")
    layer_name = raw.get("layerName", "")

    if not isinstance(item_id, str) or not item_id:
        raise ValidationError(f"textLayers[{index}].id must be a non-empty string.")
    if not isinstance(text, str):
        raise ValidationError(f"textLayers[{index}].text must be a string.")
    if layer_name is None:
        layer_name = ""
    if not isinstance(layer_name, str):
        raise ValidationError(f"textLayers[{index}].layerName must be a string.")
    if len(text) > max_length:
        raise ValidationError(
            f"textLayers[{index}].text exceeds {max_length} characters."
        )

    return TextItem(id=item_id, layer_name=layer_name, text=text)


def parse_translation_request(
    payload: Any,
    max_items: int,
    max_length: int,
) -> TranslationRequest:
    """
    Validate a decoded request body.

    Raises ValidationError describing the first problem found.
    """
    if not isinstance(payload, dict):
        raise ValidationError(INVALID_REQUEST)

    raw_items = payload.get("textLayers")
    target_locale = payload.get("targetLocale")

    if not isinstance(raw_items, list) or not target_locale:
        raise ValidationError(INVALID_REQUEST)

    if not isinstance(target_locale, str) or not LOCALE_PATTERN.match(target_locale.strip()):
        raise ValidationError(f"Unsupported targetLocale: {str(target_locale)[:32]!r}.")

    if len(raw_items) > max_items:
        raise ValidationError(f"Too many text layers (max {max_items}).")

    items: List[TextItem] = []
    seen = set()
    for index, raw in enumerate(raw_items):
        item = _parse_item(raw, index, max_length)
        if item.id in seen:
            raise ValidationError(f"Duplicate text layer id: {item.id[:64]!r}.")
        seen.add(item.id)
        items.append(item)

    label = payload.get("localeLabel")
    if label is not None and not isinstance(label, str):
        raise ValidationError("localeLabel must be a string.")

    currencies = payload.get("localeCurrencies")
    if currencies is None:
        currencies = []
    if not isinstance(currencies, list) or not all(isinstance(c, str) for c in currencies):
        raise ValidationError("localeCurrencies must be a list of strings.")

    return TranslationRequest(
        items=items,
        locale=LocaleRequest(
            target_locale=target_locale.strip(),
            locale_label=label or None,
            locale_currencies=list(currencies),
        ),
    )
