from typing import Optional

from pydantic import BaseModel


class SetPhoneRequest(BaseModel):
    phone: Optional[str] = None


class LookupUserRequest(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None


class LookupUserOut(BaseModel):
    uid: Optional[str] = None


class SendSosRequest(BaseModel):
    eventId: Optional[str] = None
