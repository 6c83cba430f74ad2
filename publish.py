"""Publish pipeline: turn local events into uploaded files plus a manifest.

Transient image references (``blob:`` and ``data:``) are resolved to bytes,
uploaded to the manifest server and rewritten to the server-relative path it
returns. A reference that cannot be resolved is left untouched and the
publish carries on.
"""

import logging
import mimetypes
from typing import Dict, List, Optional

import httpx

from errors import MissingPriceError, PublishError, UploadError
from object_urls import (
    BLOB_PREFIX,
    ObjectUrlRegistry,
    data_url_mime,
    decode_data_url,
    is_transient_url,
)
from schemas import Asset, CheckoutResponse, Event, PublishResponse, Settings, UploadResponse

logger = logging.getLogger(__name__)


class PublishService:
    def __init__(
        self,
        client: httpx.Client,
        admin_secret: str,
        registry: ObjectUrlRegistry,
        api_prefix: str = "/api",
    ) -> None:
        self._client = client
        self._admin_secret = admin_secret
        self._registry = registry
        self._api_prefix = api_prefix.rstrip("/")

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._admin_secret}"}

    def _url(self, endpoint: str) -> str:
        return f"{self._api_prefix}/{endpoint}"

    def upload_image(self, blob: bytes, filename: str = "image.png", content_type: Optional[str] = None) -> str:
        """Upload one file and return its server-relative URL, e.g. ``/uploads/image-1a2b.png``."""
        content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
        try:
            response = self._client.post(
                self._url("upload"),
                headers=self._auth_headers(),
                files={"file": (filename, blob, content_type)},
            )
            response.raise_for_status()
            return UploadResponse.model_validate(response.json()).url
        except (httpx.HTTPError, ValueError) as e:
            raise UploadError(f"Failed to upload {filename}") from e

    def _resolve_blob(self, url: str, fallback: Optional[bytes] = None) -> Optional[bytes]:
        if url.startswith(BLOB_PREFIX):
            blob = self._registry.resolve(url)
            if blob is None:
                logger.warning("Could not resolve blob reference %s", url)
                return fallback
            return blob
        return decode_data_url(url) or fallback

    def _durable_url(self, url: str, filename: str, fallback: Optional[bytes] = None) -> str:
        blob = self._resolve_blob(url, fallback)
        if blob is None:
            logger.warning("Leaving unresolvable reference for %s in place", filename)
            return url
        content_type = data_url_mime(url) if url.startswith("data:") else None
        return self.upload_image(blob, filename, content_type)

    def publish_events(
        self,
        events: List[Event],
        settings: Settings,
        library_assets: Optional[List[Asset]] = None,
    ) -> Optional[List[Event]]:
        """Upload transient media, post the manifest and return the server's canonical events.

        Raises:
            UploadError: If the server rejects an upload.
            PublishError: If the manifest could not be published.
        """
        payloads = {a.url: a.blob for a in library_assets or [] if a.blob is not None}
        outgoing = [event.model_copy(deep=True) for event in events]

        for event in outgoing:
            if is_transient_url(event.image_url):
                logger.info("Uploading cover for %s...", event.title)
                event.image_url = self._durable_url(
                    event.image_url,
                    f"{event.id}-cover.png",
                    payloads.get(event.image_url),
                )

            for asset in event.assets:
                if is_transient_url(asset.url):
                    logger.info("Uploading asset %s...", asset.name)
                    asset.url = self._durable_url(
                        asset.url,
                        asset.name or f"{asset.id}.bin",
                        asset.blob if asset.blob is not None else payloads.get(asset.url),
                    )

        body = {
            "events": [event.to_wire() for event in outgoing],
            "settings": settings.to_wire(),
        }
        try:
            response = self._client.post(self._url("publish"), headers=self._auth_headers(), json=body)
            response.raise_for_status()
            result = PublishResponse.model_validate(response.json())
        except (httpx.HTTPError, ValueError) as e:
            raise PublishError("Failed to publish events manifest") from e

        logger.info("Published %d events", len(outgoing))
        return result.events or None

    def create_checkout_session(self, price_id: Optional[str], event_id: str) -> str:
        if not price_id:
            raise MissingPriceError(event_id)
        try:
            response = self._client.post(
                self._url("checkout"),
                json={"priceId": price_id, "eventId": event_id},
            )
            response.raise_for_status()
            return CheckoutResponse.model_validate(response.json()).url
        except (httpx.HTTPError, ValueError) as e:
            raise PublishError("Failed to start checkout") from e
