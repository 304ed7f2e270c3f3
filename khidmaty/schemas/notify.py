from typing import Optional

from pydantic import BaseModel


class MessageNotifyRequest(BaseModel):
    conversationId: Optional[str] = None
    text: Optional[str] = None


class TestNotifyRequest(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
    url: Optional[str] = None


class ServiceRequestCreate(BaseModel):
    serviceId: Optional[str] = None
    note: Optional[str] = None
