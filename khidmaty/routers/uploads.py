import logging
import re
import secrets
import string
import time
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from google.api_core import exceptions as gexc

from khidmaty.config import bucket
from khidmaty.core.auth import get_principal
from khidmaty.core.errors import ApiError
from khidmaty.schemas.principal import Principal

logger = logging.getLogger("khidmaty.uploads")

router = APIRouter(tags=["Uploads"])

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def sanitize_name(name: str) -> str:
    return _UNSAFE.sub("", _WHITESPACE.sub("_", name))


def storage_path(filename: Optional[str]) -> str:
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    safe = sanitize_name(filename or "image") or "image"
    return f"uploads/{int(time.time() * 1000)}_{suffix}_{safe}"


def _upload(path: str, data: bytes, content_type: Optional[str]) -> str:
    blob = bucket.blob(path)
    blob.upload_from_string(data, content_type=content_type or "application/octet-stream")
    try:
        blob.make_public()
        return blob.public_url
    except gexc.GoogleAPICallError as e:
        logger.info("make_public refused for %s, using a signed URL: %s", path, e)
        return blob.generate_signed_url(expiration=timedelta(days=3650), version="v4")


@router.post("/uploads")
async def upload_files(
    files: Optional[List[UploadFile]] = File(None),
    principal: Principal = Depends(get_principal),
):
    if not files:
        raise ApiError(400, "no_files", "No files")

    urls = []
    for f in files:
        data = await f.read()
        urls.append(_upload(storage_path(f.filename), data, f.content_type))
    logger.info("uid=%s uploaded %d file(s)", principal.uid, len(urls))
    return {"urls": urls}
