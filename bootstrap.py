"""Startup resolution: decide whether this process is the Owner or a Visitor.

Owner   - the local store already holds events or settings.
Visitor - the local store is empty but a published manifest can be fetched.
Neither - seed the local store with demo data and continue as Owner.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import httpx
from pydantic import ValidationError

from local_store import LocalStore
from object_urls import ObjectUrlRegistry
from schemas import Asset, Event, Manifest, Settings
from seed import seed_demo_data

logger = logging.getLogger(__name__)

MANIFEST_PATH = "/events.json"


class Mode(Enum):
    OWNER = "owner"
    VISITOR = "visitor"


@dataclass
class BootstrapResult:
    mode: Mode
    events: List[Event] = field(default_factory=list)
    assets: List[Asset] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)
    error: Optional[str] = None

    @property
    def is_visitor(self) -> bool:
        return self.mode is Mode.VISITOR


def fetch_manifest(client: httpx.Client, path: str = MANIFEST_PATH) -> Optional[Manifest]:
    """Return the published manifest, or None if it is unreachable or unreadable."""
    try:
        response = client.get(path)
        response.raise_for_status()
        return Manifest.model_validate(response.json())
    except httpx.HTTPError as e:
        logger.info("No published manifest available: %s", e)
    except (ValueError, ValidationError) as e:
        logger.warning("Published manifest is malformed, ignoring it: %s", e)
    return None


def materialize_asset_urls(assets: List[Asset], registry: ObjectUrlRegistry) -> List[Asset]:
    processed = []
    for asset in assets:
        if asset.blob is not None:
            asset = asset.model_copy(update={"url": registry.create(asset.blob)})
        processed.append(asset)
    return processed


def resolve_bootstrap(
    store: LocalStore,
    client: httpx.Client,
    registry: ObjectUrlRegistry,
) -> BootstrapResult:
    try:
        events = store.get_all_events()
        settings = store.get_settings()
        assets = store.get_all_assets()

        if events or settings is not None:
            logger.info("Loading from local store (owner mode)")
            mode = Mode.OWNER
        else:
            logger.info("Local store empty, checking for a published manifest")
            manifest = fetch_manifest(client)
            if manifest is not None:
                logger.info("Loaded %d events from the manifest (visitor mode)", len(manifest.events))
                return BootstrapResult(
                    mode=Mode.VISITOR,
                    events=manifest.events,
                    settings=manifest.settings,
                )

            logger.info("No data found, seeding demo data")
            seed_demo_data(store)
            events = store.get_all_events()
            assets = store.get_all_assets()
            settings = store.get_settings()
            mode = Mode.OWNER

        return BootstrapResult(
            mode=mode,
            events=events,
            assets=materialize_asset_urls(assets, registry),
            settings=settings or Settings(),
        )
    except Exception as e:
        logger.exception("Initialization failed")
        return BootstrapResult(mode=Mode.OWNER, error=str(e))
