"""
# `khidmaty/schemas/listing.py` - Listing form schemas

Pydantic models for the two listing wizards (services and sale items) and the
step-to-field map used by `POST /wizard/{kind}/validate`.

## `ServiceForm`
| Field            | Type   | Rule |
|------------------|--------|------|
| title            | `str`  | 10..100 chars |
| description      | `str`  | 50..800 chars |
| price            | `float`| >= 0 (numeric strings accepted) |
| category, city   | `str`  | required, non-empty |
| area             | `str`  | 2..50 chars |
| lat / lng        | `float`| optional, -90..90 / -180..180 |
| contactPhone / contactWhatsapp | `str` | optional, 6..20 chars |
| videoUrl         | `str`  | optional http(s) URL, `""` means absent |
| subservices      | `list[SubService]` | default `[]` |

## `SaleItemForm`
Single-item sale listing (`category` is always `"sales"`), at least one photo.
"""
from typing import Any, List, Literal, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

PriceMode = Literal["firm", "negotiable", "call", "hidden"]
Condition = Literal["new", "like-new", "used", "for-parts"]
SaleStatus = Literal["pending", "approved", "sold", "hidden"]
ListingKind = Literal["services", "sales"]


def is_http_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and v.strip() == "":
        return None
    return v


class SubService(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)
    unit: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = Field(None, max_length=300)


class ServiceForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=10, max_length=100)
    description: str = Field(..., min_length=50, max_length=800)
    price: float = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    area: str = Field(..., min_length=2, max_length=50)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    availabilityNote: Optional[str] = None
    contactPhone: Optional[str] = Field(None, min_length=6, max_length=20)
    contactWhatsapp: Optional[str] = Field(None, min_length=6, max_length=20)
    videoUrl: Optional[str] = None
    subservices: List[SubService] = Field(default_factory=list)

    @field_validator("videoUrl", mode="before")
    @classmethod
    def _empty_video_is_absent(cls, v):
        return _blank_to_none(v)

    @field_validator("videoUrl")
    @classmethod
    def _video_must_be_url(cls, v):
        if v is not None and not is_http_url(v):
            raise ValueError("Enter a valid URL")
        return v


class TradeOptions(BaseModel):
    enabled: bool = False
    tradeFor: Optional[str] = None


class SaleLocation(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None


class SaleImage(BaseModel):
    url: str
    publicId: Optional[str] = None
    width: Optional[float] = None
    height: Optional[float] = None

    @field_validator("url")
    @classmethod
    def _image_url(cls, v: str):
        if is_http_url(v) or v.startswith("data:image/"):
            return v
        raise ValueError("Enter a valid image URL")


class SaleItemForm(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    priceMode: PriceMode = "firm"
    condition: Optional[Condition] = None
    trade: TradeOptions = Field(default_factory=TradeOptions)
    category: Literal["sales"]
    tags: Optional[List[str]] = None
    city: str = Field(..., min_length=1)
    area: Optional[str] = Field(None, min_length=2, max_length=50)
    contactPhone: Optional[str] = None
    contactWhatsapp: Optional[str] = None
    location: SaleLocation
    mapUrl: Optional[str] = None
    hideExactLocation: bool = False
    images: List[SaleImage] = Field(..., min_length=1)
    videoUrls: List[str] = Field(default_factory=list)
    status: SaleStatus = "pending"
    quantity: Optional[float] = Field(None, ge=0)
    featured: Optional[bool] = None
    priority: Optional[float] = None
    acceptRequests: bool = True

    @field_validator("area", mode="before")
    @classmethod
    def _empty_area_is_absent(cls, v):
        return _blank_to_none(v)

    @field_validator("mapUrl")
    @classmethod
    def _map_url(cls, v):
        if v is not None and not is_http_url(v):
            raise ValueError("Enter a valid URL")
        return v

    @field_validator("videoUrls")
    @classmethod
    def _video_urls(cls, v: List[str]):
        for url in v:
            if not is_http_url(url):
                raise ValueError("Enter a valid URL")
        return v


# Wizard steps, in order, with the fields each one gates.
WIZARD_STEPS: dict[str, list[tuple[str, tuple[str, ...]]]] = {
    "services": [
        ("basics", ("title", "description", "category")),
        ("pricing", ("price", "subservices")),
        ("location", ("city", "area", "lat", "lng")),
        ("contact", ("contactPhone", "contactWhatsapp", "availabilityNote", "videoUrl")),
        ("media", ()),
    ],
    "sales": [
        ("basics", ("title", "description", "condition", "category", "tags")),
        ("pricing", ("price", "priceMode", "trade", "quantity")),
        ("location", ("city", "area", "location", "mapUrl", "hideExactLocation")),
        ("media", ("images", "videoUrls")),
        ("contact", ("contactPhone", "contactWhatsapp", "acceptRequests")),
    ],
}

WIZARD_FORMS = {"services": ServiceForm, "sales": SaleItemForm}


class WizardValidationOut(BaseModel):
    ok: bool
    step: str
    next: Optional[str] = None
    errors: dict[str, str] = Field(default_factory=dict)


class ServiceDeleteRequest(BaseModel):
    id: Optional[str] = None
    serviceId: Optional[str] = None
    reason: Optional[str] = None

    @property
    def target_id(self) -> str:
        return (self.id or self.serviceId or "").strip()


class ServiceSlotRequest(BaseModel):
    notes: Optional[str] = None
