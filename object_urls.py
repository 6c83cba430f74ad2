"""Transient ``blob:`` references for binary payloads held in memory.

The owner workspace never hands raw bytes to display code; it registers the
payload and passes the returned ``blob:`` URL around instead. A reference
stays resolvable until it is revoked (or the registry is discarded), after
which the publish pipeline treats it as unresolvable.
"""

import base64
import binascii
import uuid
from typing import Dict, Optional

BLOB_PREFIX = "blob:"
DATA_PREFIX = "data:"


def is_transient_url(url: Optional[str]) -> bool:
    return bool(url) and (url.startswith(BLOB_PREFIX) or url.startswith(DATA_PREFIX))


def decode_data_url(url: str) -> Optional[bytes]:
    """Decode a ``data:`` URI, returning None when it is malformed."""
    if not url.startswith(DATA_PREFIX) or "," not in url:
        return None
    header, payload = url[len(DATA_PREFIX):].split(",", 1)
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            return None
    return payload.encode()


def data_url_mime(url: str) -> str:
    header = url[len(DATA_PREFIX):].split(",", 1)[0]
    return header.split(";", 1)[0] or "application/octet-stream"


class ObjectUrlRegistry:
    def __init__(self, origin: str = "eventforge") -> None:
        self._origin = origin
        self._blobs: Dict[str, bytes] = {}

    def create(self, blob: bytes) -> str:
        url = f"{BLOB_PREFIX}{self._origin}/{uuid.uuid4()}"
        self._blobs[url] = blob
        return url

    def resolve(self, url: str) -> Optional[bytes]:
        return self._blobs.get(url)

    def revoke(self, url: str) -> None:
        self._blobs.pop(url, None)

