from typing import Optional

from khidmaty.utils.text import alias_key, clean_string

# Canonical list of service categories
CATEGORIES = (
    "Plumbing",
    "Home Services",
    "Automotive",
    "Education",
    "Electrical",
    "Carpentry",
    "Gardening",
)

CATEGORY_ALIASES = {
    "خدمات منزلية": "Home Services",
    "خدمات تقنية": "IT & Computer Repair",
    "تدريب": "Education",
    "تعليم": "Education",
    "قانونية": "Legal Services",
    "محاسبة": "Accounting & Tax",
    "ديكور": "Interior Design",
    "سباكة": "Plumbing",
    "كهرباء": "Electrical",
    "ميكانيكا": "Automotive",
    "تنظيف": "Cleaning",
    "توصيل": "Transport & Delivery",
    "مقاولات": "Construction",
    "بناء": "Construction",
    "صيانة": "Home Services",
}
_ALIAS_KEYS = {alias_key(k): v for k, v in CATEGORY_ALIASES.items()}


def normalize_category(value: Optional[str]) -> Optional[str]:
    """
    • exact (case-insensitive) match on a canonical category
    • else an Arabic alias
    • else the raw input
    """
    raw = clean_string(value)
    if not raw:
        return None
    needle = raw.lower()
    for c in CATEGORIES:
        if c.lower() == needle:
            return c
    return _ALIAS_KEYS.get(alias_key(raw), raw)
