"""Small coercion helpers shared by request parsing and listing normalisation."""
import math
import re
import unicodedata
from typing import Any, Optional

from khidmaty.core.constants import PHONE_MAX_DIGITS, PHONE_MIN_DIGITS

_NON_DIGITS = re.compile(r"[^\d]+")
_E164 = re.compile(r"^\+\d{%d,%d}$" % (PHONE_MIN_DIGITS, PHONE_MAX_DIGITS))


def clean_string(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def clean_email(value: Any) -> str:
    return clean_string(value).lower()


def normalize_phone(value: Any) -> Optional[str]:
    """
    Normalises `+218 91-234 5678` / `00218912345678` to E.164 (`+218912345678`).
    Numbers without an international prefix are rejected.
    """
    raw = clean_string(value)
    if not raw:
        return None
    digits = _NON_DIGITS.sub("", raw)
    if not digits:
        return None
    if raw.startswith("+"):
        e164 = f"+{digits}"
    elif raw.startswith("00"):
        e164 = f"+{digits[2:]}"
    else:
        return None
    return e164 if _E164.match(e164) else None


def as_finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            n = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def clamp_int(value: Any, lo: int, hi: int) -> int:
    n = as_finite_number(value)
    if n is None:
        return lo
    return max(lo, min(hi, int(n)))


def as_non_empty_string(value: Any) -> Optional[str]:
    s = clean_string(value)
    return s or None


def truncate(value: Any, max_len: int) -> str:
    return clean_string(value)[:max_len]


def alias_key(value: str) -> str:
    """NFKD, combining marks stripped, whitespace collapsed, lower-cased."""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.split()).lower()
