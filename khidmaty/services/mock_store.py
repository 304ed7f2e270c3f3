"""
In-memory data behind the `/api/mock/*` practice endpoints.

Nothing here touches Firestore: the stores live for the lifetime of the
process and `reset()` puts the seed data back.
"""
import copy
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from khidmaty.utils.text import clamp_int

MOCK_CITIES = [
    {"id": "tri", "nameEn": "Tripoli", "nameAr": "طرابلس", "region": "west"},
    {"id": "ben", "nameEn": "Benghazi", "nameAr": "بنغازي", "region": "east"},
    {"id": "mis", "nameEn": "Misrata", "nameAr": "مصراتة", "region": "west"},
    {"id": "sbh", "nameEn": "Sabha", "nameAr": "سبها", "region": "south"},
    {"id": "zaw", "nameEn": "Zawiya", "nameAr": "الزاوية", "region": "west"},
    {"id": "srt", "nameEn": "Sirte", "nameAr": "سرت", "region": "central"},
    {"id": "drn", "nameEn": "Derna", "nameAr": "درنة", "region": "east"},
    {"id": "tbr", "nameEn": "Tobruk", "nameAr": "طبرق", "region": "east"},
    {"id": "ghr", "nameEn": "Gharyan", "nameAr": "غريان", "region": "west"},
    {"id": "kuf", "nameEn": "Kufra", "nameAr": "الكفرة", "region": "south"},
]

MOCK_USERS = [
    {"id": "u_1", "name": "أحمد الزنتاني"},
    {"id": "u_2", "name": "فاطمة الترهوني"},
    {"id": "u_3", "name": "محمد المصراتي"},
    {"id": "u_4", "name": "خديجة الورفلي"},
    {"id": "u_5", "name": "سالم بن عمر"},
]

MOCK_STUDENT = {
    "id": "student_1",
    "name": "عائشة",
    "email": "student@khidmaty.ly",
    "cityEn": "Tripoli",
    "cityAr": "طرابلس",
    "role": "student",
}

_SEED_TODOS = [
    {"id": "todo_1", "title": "Fix AC in apartment (صيانة مكيف)", "cityEn": "Tripoli", "cityAr": "طرابلس", "done": False},
    {"id": "todo_2", "title": "Plumbing leak (سباكة)", "cityEn": "Misrata", "cityAr": "مصراتة", "done": True},
    {"id": "todo_3", "title": "Bus timetable question (مواعيد الحافلات)", "cityEn": "Benghazi", "cityAr": "بنغازي", "done": False},
]

_SEED_SERVICES = [
    {
        "id": "svc_1", "title": "سباك في طرابلس (طوارئ 24/7)", "category": "plumbing",
        "cityEn": "Tripoli", "cityAr": "طرابلس", "priceLyd": 120, "providerName": "عمر الفيتوري", "rating": 4.7,
        "description": "إصلاح التسريبات وفتح المجاري وتركيب الأدوات الصحية. (Training endpoint)",
        "contactPhone": "+218 91 234 5678",
    },
    {
        "id": "svc_2", "title": "كهربائي + فحص سلامة الكهرباء", "category": "electrician",
        "cityEn": "Benghazi", "cityAr": "بنغازي", "priceLyd": 90, "providerName": "سالم الدرسي", "rating": 4.5,
        "description": "فحص التمديدات والقواطع والمقابس مع تقرير مبسط.",
        "contactPhone": "+218 92 111 2233",
    },
    {
        "id": "svc_3", "title": "تنظيف شقق ومنازل", "category": "cleaning",
        "cityEn": "Misrata", "cityAr": "مصراتة", "priceLyd": 150, "providerName": "مريم الشريف", "rating": 4.2,
    },
    {
        "id": "svc_4", "title": "صيانة مكيفات وتركيب", "category": "ac",
        "cityEn": "Tripoli", "cityAr": "طرابلس", "priceLyd": 180, "providerName": "شركة النسيم", "rating": 4.6,
    },
    {
        "id": "svc_5", "title": "ميكانيكي سيارات (فحص + صيانة)", "category": "car",
        "cityEn": "Zawiya", "cityAr": "الزاوية", "priceLyd": 110, "providerName": "محمود الزاوي", "rating": 4.1,
    },
    {
        "id": "svc_6", "title": "دروس خصوصية رياضيات (ثانوي)", "category": "tutoring",
        "cityEn": "Benghazi", "cityAr": "بنغازي", "priceLyd": 60, "providerName": "هناء العبيدي", "rating": 4.8,
    },
    {
        "id": "svc_7", "title": "خدمة نقل داخل طرابلس (حافلة)", "category": "transport",
        "cityEn": "Tripoli", "cityAr": "طرابلس", "priceLyd": 15, "providerName": "شركة النقل العام", "rating": 3.9,
        "description": "معلومات تجريبية للتدريب فقط (ليست بيانات حقيقية).",
    },
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _new_id(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(4)}"


def _contains(haystack: Any, needle: str) -> bool:
    return needle in str(haystack or "").lower()


def list_cities(region: str = "", q: str = "", take: Any = 50) -> Dict[str, Any]:
    rows = list(MOCK_CITIES)
    region = region.strip().lower()
    if region:
        rows = [c for c in rows if c["region"] == region]
    needle = q.strip().lower()
    if needle:
        rows = [c for c in rows if _contains(c["nameEn"], needle) or _contains(c["nameAr"], needle)]
    take_n = clamp_int(take, 1, 50)
    return {"cities": rows[:take_n], "total": len(rows), "take": take_n}


class TodoStore:
    def __init__(self):
        self._rows: List[Dict[str, Any]] = []
        self.reset()

    def reset(self) -> None:
        now = _now_iso()
        self._rows = [{**t, "createdAtIso": now, "updatedAtIso": now} for t in _SEED_TODOS]

    def list(self, city: str = "", q: str = "", done: Optional[bool] = None, take: Any = 20) -> Dict[str, Any]:
        rows = list(self._rows)
        if done is not None:
            rows = [t for t in rows if t["done"] is done]
        city_needle = city.strip().lower()
        if city_needle:
            rows = [t for t in rows if _contains(t["cityEn"], city_needle) or _contains(t["cityAr"], city_needle)]
        q_needle = q.strip().lower()
        if q_needle:
            rows = [t for t in rows if _contains(t["title"], q_needle)]
        take_n = clamp_int(take, 1, 50)
        return {"todos": copy.deepcopy(rows[:take_n]), "total": len(rows), "take": take_n}

    def _index(self, todo_id: str) -> int:
        return next((i for i, t in enumerate(self._rows) if t["id"] == todo_id.strip()), -1)

    def get(self, todo_id: str) -> Optional[Dict[str, Any]]:
        idx = self._index(todo_id)
        return copy.deepcopy(self._rows[idx]) if idx >= 0 else None

    def create(self, title: str, city_en: str, city_ar: str, done: bool = False) -> Dict[str, Any]:
        now = _now_iso()
        todo = {
            "id": _new_id("todo"),
            "title": title,
            "cityEn": city_en,
            "cityAr": city_ar,
            "done": bool(done),
            "createdAtIso": now,
            "updatedAtIso": now,
        }
        self._rows.insert(0, todo)
        return copy.deepcopy(todo)

    def replace(self, todo_id: str, title: str, city_en: str, city_ar: str, done: bool) -> Optional[Dict[str, Any]]:
        idx = self._index(todo_id)
        if idx < 0:
            return None
        prev = self._rows[idx]
        self._rows[idx] = {
            "id": prev["id"],
            "title": title,
            "cityEn": city_en,
            "cityAr": city_ar,
            "done": done,
            "createdAtIso": prev["createdAtIso"],
            "updatedAtIso": _now_iso(),
        }
        return copy.deepcopy(self._rows[idx])

    def patch(self, todo_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        idx = self._index(todo_id)
        if idx < 0:
            return None
        self._rows[idx] = {**self._rows[idx], **patch, "updatedAtIso": _now_iso()}
        return copy.deepcopy(self._rows[idx])

    def delete(self, todo_id: str) -> bool:
        idx = self._index(todo_id)
        if idx < 0:
            return False
        del self._rows[idx]
        return True


class ServiceStore:
    def __init__(self):
        self._rows: List[Dict[str, Any]] = []
        self.reset()

    def reset(self) -> None:
        now = _now_iso()
        self._rows = [{**s, "createdAtIso": now} for s in _SEED_SERVICES]

    def list(
        self,
        city: str = "",
        category: str = "",
        q: str = "",
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        take: Any = 20,
    ) -> Dict[str, Any]:
        rows = list(self._rows)
        city_needle = city.strip().lower()
        if city_needle:
            rows = [s for s in rows if _contains(s["cityEn"], city_needle) or _contains(s["cityAr"], city_needle)]
        cat_needle = category.strip().lower()
        if cat_needle:
            rows = [s for s in rows if _contains(s["category"], cat_needle)]
        q_needle = q.strip().lower()
        if q_needle:
            rows = [
                s for s in rows
                if any(_contains(s[k], q_needle) for k in ("title", "providerName", "cityEn", "cityAr"))
            ]
        if min_price is not None:
            rows = [s for s in rows if s["priceLyd"] >= min_price]
        if max_price is not None:
            rows = [s for s in rows if s["priceLyd"] <= max_price]
        take_n = clamp_int(take, 1, 50)
        return {"services": copy.deepcopy(rows[:take_n]), "total": len(rows), "take": take_n}

    def get(self, service_id: str) -> Optional[Dict[str, Any]]:
        needle = service_id.strip()
        row = next((s for s in self._rows if s["id"] == needle), None)
        return copy.deepcopy(row) if row else None

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        service = {
            "id": _new_id("svc"),
            **data,
            "rating": 0,
            "createdAtIso": _now_iso(),
        }
        self._rows.insert(0, service)
        return copy.deepcopy(service)

    def delete(self, service_id: str) -> bool:
        before = len(self._rows)
        self._rows = [s for s in self._rows if s["id"] != service_id.strip()]
        return len(self._rows) < before


todos = TodoStore()
services = ServiceStore()
