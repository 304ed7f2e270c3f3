"""
khidmaty/schemas/principal.py
Principal model built straight from a verified Firebase ID token.
"""
from typing import Optional

from pydantic import BaseModel, Field


class Principal(BaseModel):
    uid: str = Field(..., description="Firebase UID")
    email: Optional[str] = Field(None, description="E-mail (if any)")
    name: Optional[str] = Field(None, description="Display name (if any)")
    picture: Optional[str] = Field(None, description="Photo URL (if any)")
    sign_in_provider: Optional[str] = Field(None, description="password | google.com | anonymous ...")
    admin: bool = Field(False, description="custom claim admin=True")
