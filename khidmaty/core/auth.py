# khidmaty/core/auth.py
from typing import Optional

from fastapi import Request
from firebase_admin import auth as fb_auth

from khidmaty.core.errors import ApiError
from khidmaty.schemas.principal import Principal


def extract_bearer_token(request: Request) -> Optional[str]:
    """
    Reads the token from `Authorization: Bearer <id_token>`.
    Returns None when the header is missing or malformed.
    """
    auth_header = (request.headers.get("Authorization") or "").strip()
    if not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def decode_id_token(id_token: str, check_revoked: bool = False) -> dict:
    """
    Verifies a Firebase ID token. Expired, revoked or otherwise invalid
    tokens become 401 `invalid_token`.
    """
    try:
        return fb_auth.verify_id_token(id_token, check_revoked=check_revoked)
    except fb_auth.ExpiredIdTokenError:
        raise ApiError(401, "invalid_token", "Token expired")
    except fb_auth.RevokedIdTokenError:
        raise ApiError(401, "invalid_token", "Session revoked")
    except Exception:
        raise ApiError(401, "invalid_token")


def token_to_principal(decoded: dict) -> Principal:
    uid = decoded.get("uid") or decoded.get("user_id")
    if not uid or not isinstance(uid, str):
        raise ApiError(401, "invalid_token", "Token missing uid")
    firebase_info = decoded.get("firebase") or {}
    return Principal(
        uid=uid,
        email=decoded.get("email"),
        name=decoded.get("name"),
        picture=decoded.get("picture"),
        sign_in_provider=firebase_info.get("sign_in_provider"),
        admin=decoded.get("admin") is True,
    )


# --------- FastAPI Dependencies --------- #

async def get_optional_principal(request: Request) -> Optional[Principal]:
    """
    Optional token: verified when present, None otherwise.
    Used by public GET routes that show extra data to the owner.
    """
    token = extract_bearer_token(request)
    if not token:
        return None
    return token_to_principal(decode_id_token(token))


async def get_principal(request: Request) -> Principal:
    """Token required: 401 `missing_token` when absent."""
    token = extract_bearer_token(request)
    if not token:
        raise ApiError(401, "missing_token")
    return token_to_principal(decode_id_token(token))


async def get_verified_principal(request: Request) -> Principal:
    """Same as `get_principal` but also rejects revoked sessions."""
    token = extract_bearer_token(request)
    if not token:
        raise ApiError(401, "missing_token")
    return token_to_principal(decode_id_token(token, check_revoked=True))
