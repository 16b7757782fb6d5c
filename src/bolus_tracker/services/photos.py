"""Meal photo storage."""

import base64
import binascii
import logging
import re
import time
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

_logger = logging.getLogger(__name__)

_DATA_URL = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class DecodedImage:
    """Image bytes decoded from a data URL."""

    mime_type: str
    content: bytes
    extension: str


def parse_data_url(data_url: str | None) -> DecodedImage | None:
    """Decode a base64 data URL, or return None when malformed."""
    match = _DATA_URL.match(str(data_url or ""))
    if match is None:
        return None
    mime_type = match.group(1)
    try:
        content = base64.b64decode(match.group(2), validate=False)
    except (binascii.Error, ValueError):
        return None
    subtype = mime_type.split("/")[1] if "/" in mime_type else ""
    extension = subtype.split("+")[0] or "jpg"
    return DecodedImage(mime_type=mime_type, content=content, extension=extension)


class PhotoStorage(Protocol):
    """Interface for object storage of meal photos."""

    def upload(self, path: str, content: bytes, content_type: str) -> str | None:
        """Upload a file and return its public URL."""


@dataclass
class PhotoService:
    """Stores meal photos without interrupting the meal flow."""

    storage: PhotoStorage
    prefix: str = "refeicoes"

    def store_meal_photo(self, user_id: UUID, data_url: str | None) -> str | None:
        """Upload a meal photo and return its URL, or None on any failure."""
        image = parse_data_url(data_url)
        if image is None:
            return None
        path = f"{self.prefix}/{user_id}/{int(time.time() * 1000)}.{image.extension}"
        try:
            return self.storage.upload(path, image.content, image.mime_type)
        except Exception:
            _logger.exception("Meal photo upload failed", extra={"path": path})
            return None
