"""Repack photo persistence.

Photos arrive as base64 strings, optionally with a data-URI prefix
(``data:image/png;base64,...``).  Each call writes one file:

    <uploads_dir>/img/repacked/<jobNo>-<lotNo>-<bundleNo>/<tag>-<uuid>.<ext>

and returns the path relative to ``uploads_dir`` for storing on the row.
Files are written outside the database transaction; a rollback after the
write leaves the file behind.
"""

import base64
import binascii
import logging
import os
import re
import uuid

from lotkeeper.middleware.exceptions import InvalidPhotoError

logger = logging.getLogger(__name__)

REPACK_DIR = os.path.join("img", "repacked")

_DATA_URI = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,", re.IGNORECASE)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
}


def decode_base64_image(data: str) -> tuple[bytes, str]:
    """Return (bytes, extension) for a base64 image string."""
    if not data or not data.strip():
        raise InvalidPhotoError("Photo payload is empty")

    ext = "jpg"
    match = _DATA_URI.match(data.strip())
    if match:
        ext = _EXTENSIONS.get(match.group("mime").lower(), "jpg")
        data = data.strip()[match.end():]

    try:
        content = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidPhotoError(f"Photo payload is not valid base64: {exc}") from exc
    if not content:
        raise InvalidPhotoError("Photo payload is empty")
    return content, ext


def _safe(part) -> str:
    return str(part).replace("/", "_").replace("\\", "_").replace("..", "_")


def save_base64_photo(
    data: str,
    job_no: str,
    lot_no,
    bundle_no,
    tag: str,
    uploads_dir: str,
) -> str:
    """Decode *data* and write it under the bundle's repack folder."""
    content, ext = decode_base64_image(data)

    folder = os.path.join(REPACK_DIR, f"{_safe(job_no)}-{_safe(lot_no)}-{_safe(bundle_no)}")
    os.makedirs(os.path.join(uploads_dir, folder), exist_ok=True)

    relative = os.path.join(folder, f"{_safe(tag)}-{uuid.uuid4()}.{ext}")
    with open(os.path.join(uploads_dir, relative), "wb") as f:
        f.write(content)

    logger.debug("Saved %s photo %s (%d bytes)", tag, relative, len(content))
    return relative.replace(os.sep, "/")
