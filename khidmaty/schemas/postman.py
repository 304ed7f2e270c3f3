"""
Request models for the Mini Postman helpers and saved collections.

Saved requests are sanitised rather than rejected: unknown methods fall back
to `GET`, long strings are cut, and row lists are capped.
"""
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from khidmaty.core.constants import PROXY_MAX_BODY_BYTES, PROXY_METHODS

MAX_ROWS = 50
MAX_URL_LENGTH = 2048
MAX_KEY_LENGTH = 200
MAX_VALUE_LENGTH = 2000


def _text(value: Any, limit: int) -> str:
    if value is None:
        return ""
    return str(value)[:limit]


class KeyValueRow(BaseModel):
    key: str = ""
    value: str = ""
    enabled: bool = True

    @field_validator("key", mode="before")
    @classmethod
    def _key(cls, v):
        return _text(v, MAX_KEY_LENGTH).strip()

    @field_validator("value", mode="before")
    @classmethod
    def _value(cls, v):
        return _text(v, MAX_VALUE_LENGTH)


class PostmanAuth(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["none", "bearer", "apikey"] = "none"
    token: Optional[str] = None
    keyName: Optional[str] = None
    keyValue: Optional[str] = None
    in_: Literal["header", "query"] = Field("header", alias="in")

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v):
        return v if v in ("none", "bearer", "apikey") else "none"

    @field_validator("in_", mode="before")
    @classmethod
    def _in(cls, v):
        return v if v in ("header", "query") else "header"


def _rows(v: Any) -> List[Any]:
    if not isinstance(v, list):
        return []
    return [r for r in v if isinstance(r, dict)][:MAX_ROWS]


class PostmanRequest(BaseModel):
    method: str = "GET"
    url: str = ""
    params: List[KeyValueRow] = Field(default_factory=list)
    headers: List[KeyValueRow] = Field(default_factory=list)
    auth: PostmanAuth = Field(default_factory=PostmanAuth)
    bodyText: str = ""

    @field_validator("method", mode="before")
    @classmethod
    def _method(cls, v):
        method = str(v or "").upper()
        return method if method in PROXY_METHODS else "GET"

    @field_validator("url", mode="before")
    @classmethod
    def _url(cls, v):
        return _text(v, MAX_URL_LENGTH).strip()

    @field_validator("params", "headers", mode="before")
    @classmethod
    def _row_list(cls, v):
        return _rows(v)

    @field_validator("auth", mode="before")
    @classmethod
    def _auth(cls, v):
        return v if isinstance(v, dict) else {}

    @field_validator("bodyText", mode="before")
    @classmethod
    def _body(cls, v):
        return _text(v, PROXY_MAX_BODY_BYTES)


class SavedRequest(BaseModel):
    id: Optional[str] = None
    name: str = "Untitled"
    request: PostmanRequest = Field(default_factory=PostmanRequest)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v):
        return _text(v, 80).strip() or "Untitled"


class CollectionsPayload(BaseModel):
    items: List[SavedRequest] = Field(default_factory=list, max_length=100)


class ValidateUrlRequest(BaseModel):
    url: Optional[str] = None


class FormatJsonRequest(BaseModel):
    text: Optional[str] = None


class BuildUrlRequest(BaseModel):
    url: str = ""
    params: List[KeyValueRow] = Field(default_factory=list)
    auth: PostmanAuth = Field(default_factory=PostmanAuth)
