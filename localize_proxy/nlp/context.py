from localize_proxy.pipeline.models import TextItem


# How far past the layer name the closing "] " may appear and still be
# treated as the echoed context prefix.
PREFIX_SLACK = 20


def wrap(item: TextItem) -> str:
    """
    Prefix text with its layer name as a hint for the provider.
    """
    return f"[{item.layer_name}] {item.text}"


def unwrap(translated: str, layer_name: str) -> str:
    """
    Strip the context prefix from provider output.

    The provider may translate or drop the prefix. Only a "] " close to the
    start counts as the prefix; brackets further into the text are content.
    """
    translated = translated or ""
    layer_name = layer_name or ""

    bracket_end = translated.find("] ")
    if bracket_end != -1 and bracket_end < len(layer_name) + PREFIX_SLACK:
        return translated[bracket_end + 2:].strip()

    return translated.strip()
