"""
Auth router: profile bootstrap after Firebase sign-in.

The client calls `POST /auth/ensure-provider` right after signing in; the
profile document is created on first call and patched afterwards.
"""
from fastapi import APIRouter, Depends

from khidmaty.core.auth import get_verified_principal
from khidmaty.schemas.principal import Principal
from khidmaty.services.profiles import ensure_provider_profile

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/ensure-provider")
def ensure_provider(principal: Principal = Depends(get_verified_principal)):
    return {"ok": True, "profile": ensure_provider_profile(principal)}
