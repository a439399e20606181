"""
Contract identifier heuristics.

The first cell of a results row holds the file number run together with
the contract description (e.g. ``10892/2024Suministro de pantallas``).
``split_contract_id`` separates them with a fixed priority cascade; the
identifier it yields is the dedup key across runs, so the cascade order
must not change.
"""

from __future__ import annotations

import re

# Anchored file-number formats, most specific first
ID_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.ASCII)
    for pattern in (
        r"^(\d{4,5}/\d{4})",  # 10892/2024
        r"^(S-\d{5}-\d{4})",  # S-02968-2025
        r"^(\d{4}/\d{2})",  # 2024/25
        r"^([A-Z]-\d{5}-\d{4})",  # A-12345-2024
        r"^(\d{4}-\d{2})",  # 2024-25
        r"^(\d{4}/[A-Z]+/\d{3}-\d{3}/\d{6})",
        r"^([A-Z]+ CH SU-\d{2}-\d{2})",  # NGEU CH SU-02-25
        r"^(\d{2}/\d{2})",  # 13/25
        r"^(\d{2}/\d{2}\.-[A-Z]+)",
        r"^([A-Z]+\d{2}-\d{3}/\d{4})",  # AS25-815/2025
    )
)

# Words that usually open a Spanish contract description
DESCRIPTION_STARTERS: tuple[str, ...] = (
    "Suministro",
    "Adquisición",
    "Contratación",
    "Servicios",
    "Instalación",
    "Alquiler",
    "Compra",
    "Adjudicación",
    "Ejecución",
    "Desarrollo",
    "Implementación",
    "Mantenimiento",
    "Reparación",
    "Renovación",
    "Ampliación",
    "Mejora",
    "Modernización",
    "Equipamiento",
    "Dotación",
)

MAX_ID_LENGTH = 50
FALLBACK_ID_LENGTH = 30

_ID_MARKERS = re.compile(r"[0-9/-]")


def _is_ascii_alnum(char: str) -> bool:
    return char.isascii() and char.isalnum()


def _match_pattern(text: str) -> tuple[str, str] | None:
    for pattern in ID_PATTERNS:
        match = pattern.match(text)
        if match:
            contract_id = match.group(1)
            return contract_id, text[len(contract_id):].strip()
    return None


def _split_at_starter(text: str) -> tuple[str, str] | None:
    for word in DESCRIPTION_STARTERS:
        idx = text.find(word)
        if idx <= 0:
            continue

        candidate = text[:idx].strip()
        if 0 < len(candidate) <= MAX_ID_LENGTH and _ID_MARKERS.search(candidate):
            return candidate, text[idx:].strip()
    return None


def _split_at_capital(text: str) -> tuple[str, str] | None:
    for i in range(1, len(text)):
        char = text[i]
        if not ("A" <= char <= "Z"):
            continue
        if _is_ascii_alnum(text[i - 1]):
            continue

        candidate = text[:i].strip()
        if 0 < len(candidate) <= MAX_ID_LENGTH:
            return candidate, text[i:].strip()
    return None


def split_contract_id(text: str) -> tuple[str, str]:
    """Split a first-cell text into ``(identifier, description)``.

    Steps, first success wins:

    1. Anchored match against ``ID_PATTERNS`` in order.
    2. Split before the first ``DESCRIPTION_STARTERS`` word found past the
       start, if the prefix is short and looks like a file number.
    3. Split before the first capital letter that follows a
       non-alphanumeric character, if the prefix is short.
    4. Fixed 30-character prefix; shorter texts are all identifier.

    Lengths are counted in characters.
    """
    text = text.strip()

    for step in (_match_pattern, _split_at_starter, _split_at_capital):
        result = step(text)
        if result is not None:
            return result

    if len(text) > FALLBACK_ID_LENGTH:
        return text[:FALLBACK_ID_LENGTH], text[FALLBACK_ID_LENGTH:]
    return text, ""
