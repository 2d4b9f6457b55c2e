from __future__ import annotations

import re

NAMED_ENTITIES: dict[str, str] = {
    "&quot;": '"',
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&apos;": "'",
    "&nbsp;": " ",
    "&ndash;": "–",
    "&mdash;": "—",
    "&hellip;": "…",
    "&oacute;": "ó",
    "&Oacute;": "Ó",
    "&aogon;": "ą",
    "&Aogon;": "Ą",
    "&eogon;": "ę",
    "&Eogon;": "Ę",
    "&sacute;": "ś",
    "&Sacute;": "Ś",
    "&cacute;": "ć",
    "&Cacute;": "Ć",
    "&nacute;": "ń",
    "&Nacute;": "Ń",
    "&zacute;": "ź",
    "&Zacute;": "Ź",
    "&zdot;": "ż",
    "&Zdot;": "Ż",
    "&lstrok;": "ł",
    "&Lstrok;": "Ł",
}

# Single pass so "&amp;lt;" decodes to "&lt;" and not "<".
_ENTITY_PATTERN = re.compile(r"&(?:#(\d+)|#[xX]([0-9a-fA-F]+)|[A-Za-z]+);")

DEFAULT_CATEGORY = "Wiadomości"

FALLBACK_IMAGES: dict[str, str] = {
    "Wiadomości": "https://images.unsplash.com/photo-1495020689067-958852a7765e?w=800&h=500&fit=crop",
    "Biznes": "https://images.unsplash.com/photo-1611974789855-9c2a0a7236a3?w=800&h=500&fit=crop",
    "Sport": "https://images.unsplash.com/photo-1461896836934-ffe607ba8211?w=800&h=500&fit=crop",
    "Technologia": "https://images.unsplash.com/photo-1518770660439-4636190af475?w=800&h=500&fit=crop",
    "Nauka": "https://images.unsplash.com/photo-1507413245164-6160d8298b31?w=800&h=500&fit=crop",
}


def _code_point(value: str, base: int) -> str | None:
    try:
        return chr(int(value, base))
    except (ValueError, OverflowError):
        return None


def _replace(match: re.Match) -> str:
    decimal, hexadecimal = match.group(1), match.group(2)
    if decimal is not None:
        char = _code_point(decimal, 10)
    elif hexadecimal is not None:
        char = _code_point(hexadecimal, 16)
    else:
        char = NAMED_ENTITIES.get(match.group(0))
    return match.group(0) if char is None else char


def decode_html_entities(text: str) -> str:
    """Replace known HTML character references in *text* with literal characters.

    Handles the named entities in ``NAMED_ENTITIES`` plus decimal (``&#8211;``)
    and hexadecimal (``&#x2013;``) references. Anything unrecognised, including
    out-of-range code points, is left exactly as it was.
    """
    if not text:
        return text
    return _ENTITY_PATTERN.sub(_replace, text)


def fallback_image(category: str) -> str:
    """Return the stock image for *category*, or the general news image."""
    return FALLBACK_IMAGES.get(category, FALLBACK_IMAGES[DEFAULT_CATEGORY])
