"""
# `khidmaty/integrations/cloudinary_media.py` - Cloudinary media helpers

Server-side helpers used when listings are removed by the owner console.

- `extract_public_id_from_url(url)`: derives the public id from a
  `https://res.cloudinary.com/<cloud>/image/upload/<transforms?>/folder/name.jpg`
  delivery URL. A leading transformation segment (comma separated with `w_`,
  `q_`, `f_auto`, `c_`, `g_` or `ar_` parameters) is skipped and the file
  extension is dropped. Anything else returns `None`.
- `transform_url(url, w=800, q="auto", f_auto=True)`: rebuilds a delivery URL
  with `cloudinary_url` and the given transformation (non-Cloudinary URLs and
  URLs that already carry a transformation are returned as is).
- `delete_image(id_or_url)`: Admin API delete through `cloudinary.api`. No-op
  without credentials; failures are logged and never raised so callers can
  keep going.
"""
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

import cloudinary
import cloudinary.api
import cloudinary.exceptions
from cloudinary.utils import cloudinary_url

from khidmaty.config import settings

logger = logging.getLogger("khidmaty.cloudinary")

_TRANSFORM_HINT = re.compile(r"(w_|q_|f_auto|c_|g_|ar_)")
_EXTENSION = re.compile(r"\.[^/.]+$")
_VERSION = re.compile(r"^v\d+$")


def has_admin_credentials() -> bool:
    return bool(settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret)


def _configure() -> None:
    cloudinary.config(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
        secure=True,
    )


def _looks_like_transform(segment: str) -> bool:
    return "," in segment and bool(_TRANSFORM_HINT.search(segment))


def _upload_segments(url: str) -> Optional[Tuple[List[str], List[str]]]:
    """(segments before `upload`, segments after it) of a res.cloudinary.com URL."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    if parts.hostname != "res.cloudinary.com":
        return None
    segments = [p for p in parts.path.split("/") if p]
    if "upload" not in segments:
        return None
    at = segments.index("upload")
    rest = segments[at + 1:]
    if not rest:
        return None
    return segments[:at], rest


def extract_public_id_from_url(url: str) -> Optional[str]:
    found = _upload_segments(url)
    if not found:
        return None
    rest = found[1]
    if _looks_like_transform(rest[0]):
        rest = rest[1:]
    if not rest:
        return None
    rest[-1] = _EXTENSION.sub("", rest[-1])
    return "/".join(rest)


def transform_url(url: str, w: Optional[int] = 800, q: str = "auto", f_auto: bool = True) -> str:
    found = _upload_segments(url) if url else None
    if not found:
        return url
    head, rest = found
    if len(head) != 2 or _looks_like_transform(rest[0]) or rest[0].startswith(("f_", "q_", "w_")):
        return url

    options = {}
    if f_auto:
        options["fetch_format"] = "auto"
    if q:
        options["quality"] = q
    if w:
        options.update(width=int(w), crop="limit")
    if not options:
        return url

    version = None
    if len(rest) > 1 and _VERSION.match(rest[0]):
        version, rest = rest[0][1:], rest[1:]
    name, dot, ext = rest[-1].rpartition(".")
    if dot:
        rest = rest[:-1] + [name]

    cloud_name, resource_type = head
    built, _ = cloudinary_url(
        "/".join(rest),
        cloud_name=cloud_name,
        resource_type=resource_type,
        type="upload",
        version=version,
        format=ext if dot else None,
        force_version=False,
        secure=True,
        **options,
    )
    return built


def delete_image(id_or_url: str) -> bool:
    """Returns True when Cloudinary confirmed the delete."""
    if not has_admin_credentials() or not id_or_url:
        return False

    public_id: Optional[str] = id_or_url
    if id_or_url.startswith("http"):
        public_id = extract_public_id_from_url(id_or_url)
    if not public_id:
        return False

    _configure()
    try:
        result = cloudinary.api.delete_resources(
            [public_id],
            resource_type="image",
            type="upload",
            timeout=settings.http_timeout_seconds,
        )
    except cloudinary.exceptions.Error as exc:
        logger.warning("cloudinary delete error for %s: %s", public_id, exc)
        return False

    status = (result.get("deleted") or {}).get(public_id)
    if status != "deleted":
        logger.warning("cloudinary delete failed for %s: %s", public_id, status)
        return False
    return True
