# tutifrutti/domain/common/validation.py
from __future__ import annotations

import re
import unicodedata
from typing import Any, Optional

from tutifrutti.domain.common.errors import ValidationError

MAX_NAME_LEN = 20
MAX_WORD_LEN = 30

_WS_RUN = re.compile(r"\s+")


def sanitize_name(raw: Any) -> Optional[str]:
    """
    NFC-normalise, trim, cap and collapse inner whitespace.
    Returns None when nothing usable is left.
    """
    if not isinstance(raw, str):
        return None
    name = unicodedata.normalize("NFC", raw).strip()[:MAX_NAME_LEN]
    name = _WS_RUN.sub(" ", name).strip()
    for ch in name:
        if ord(ch) < 32 or ch in "<>":
            return None
    return name or None


def require_name(raw: Any) -> str:
    name = sanitize_name(raw)
    if name is None:
        raise ValidationError("Invalid player name", code="BAD_NAME")
    return name


def same_name(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


def normalize_word(raw: Any) -> str:
    """
    Submitted words keep letters, spaces and hyphens only.
    "  café  " -> "café"
    """
    if not isinstance(raw, str):
        return ""
    w = unicodedata.normalize("NFC", raw).strip()[:MAX_WORD_LEN]
    w = "".join(ch for ch in w if ch.isalpha() or ch.isspace() or ch == "-")
    return w.strip()


def starts_with_letter(word: str, letter: str) -> bool:
    """Letter-prefix validity, case-insensitive."""
    if not word or not letter:
        return False
    return word[0].upper() == letter.upper()
