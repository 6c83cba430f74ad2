"""Owner workspace: an explicit state container driven by typed messages.

``apply`` is a pure transition function; ``Workspace`` performs the I/O
(local store, publish pipeline) and dispatches the resulting messages. Mode
and loading/publishing status live in the state rather than being inferred.
"""

import json
import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple, Union

import httpx

from bootstrap import BootstrapResult, Mode, resolve_bootstrap
from errors import PublishError, PublishInProgressError
from local_store import LocalStore
from object_urls import ObjectUrlRegistry
from publish import PublishService
from schemas import Asset, Event, Manifest, Settings

logger = logging.getLogger(__name__)


class Status(Enum):
    LOADING = "loading"
    READY = "ready"
    PUBLISHING = "publishing"
    ERROR = "error"


@dataclass(frozen=True)
class AppState:
    mode: Mode = Mode.OWNER
    status: Status = Status.LOADING
    events: Tuple[Event, ...] = ()
    assets: Tuple[Asset, ...] = ()
    settings: Settings = field(default_factory=Settings)
    error: Optional[str] = None

    @property
    def is_visitor(self) -> bool:
        return self.mode is Mode.VISITOR

    @property
    def is_loading(self) -> bool:
        return self.status is Status.LOADING


# -------------------------
# Messages
# -------------------------
@dataclass(frozen=True)
class Loaded:
    result: BootstrapResult


@dataclass(frozen=True)
class EventCreated:
    event: Event


@dataclass(frozen=True)
class EventUpdated:
    event: Event


@dataclass(frozen=True)
class EventDeleted:
    event_id: str


@dataclass(frozen=True)
class AssetAdded:
    asset: Asset


@dataclass(frozen=True)
class SettingsUpdated:
    settings: Settings


@dataclass(frozen=True)
class PublishStarted:
    events: Tuple[Event, ...]


@dataclass(frozen=True)
class PublishSucceeded:
    events: Optional[Tuple[Event, ...]] = None


@dataclass(frozen=True)
class PublishFailed:
    error: str


Message = Union[
    Loaded,
    EventCreated,
    EventUpdated,
    EventDeleted,
    AssetAdded,
    SettingsUpdated,
    PublishStarted,
    PublishSucceeded,
    PublishFailed,
]

_OWNER_ONLY = (EventCreated, EventUpdated, EventDeleted, AssetAdded, SettingsUpdated, PublishStarted, PublishSucceeded)


def splice_event(events: List[Event], event: Event) -> List[Event]:
    """Replace the event with the same id, or prepend it if it is new."""
    spliced = list(events)
    for i, existing in enumerate(spliced):
        if existing.id == event.id:
            spliced[i] = event
            return spliced
    spliced.insert(0, event)
    return spliced


def apply(state: AppState, message: Message) -> AppState:
    if isinstance(message, Loaded):
        result = message.result
        return AppState(
            mode=result.mode,
            status=Status.ERROR if result.error else Status.READY,
            events=tuple(result.events),
            assets=tuple(result.assets),
            settings=result.settings,
            error=result.error,
        )

    # Visitor mode is read-only
    if state.is_visitor and isinstance(message, _OWNER_ONLY):
        return state

    if isinstance(message, EventCreated):
        return replace(state, events=(message.event,) + state.events)
    if isinstance(message, EventUpdated):
        return replace(state, events=tuple(message.event if e.id == message.event.id else e for e in state.events))
    if isinstance(message, EventDeleted):
        return replace(state, events=tuple(e for e in state.events if e.id != message.event_id))
    if isinstance(message, AssetAdded):
        return replace(state, assets=(message.asset,) + state.assets)
    if isinstance(message, SettingsUpdated):
        return replace(state, settings=message.settings)
    if isinstance(message, PublishStarted):
        return replace(state, status=Status.PUBLISHING, events=message.events, error=None)
    if isinstance(message, PublishSucceeded):
        events = message.events if message.events else state.events
        return replace(state, status=Status.READY, events=events, error=None)
    if isinstance(message, PublishFailed):
        return replace(state, status=Status.READY, error=message.error)
    raise TypeError(f"Unknown message {message!r}")


class Workspace:
    """The owner's working copy of events, assets and settings."""

    def __init__(self, store: LocalStore, publisher: PublishService, registry: ObjectUrlRegistry) -> None:
        self._store = store
        self._publisher = publisher
        self._registry = registry
        self._publish_lock = threading.Lock()
        self.state = AppState()

    def dispatch(self, message: Message) -> AppState:
        self.state = apply(self.state, message)
        return self.state

    def load(self, client: httpx.Client) -> AppState:
        return self.dispatch(Loaded(resolve_bootstrap(self._store, client, self._registry)))

    # -------------------------
    # Owner mutations (no-ops for visitors)
    # -------------------------
    def create_event(self, event: Event) -> None:
        if self.state.is_visitor:
            return
        self._store.save_event(event)
        self.dispatch(EventCreated(event))

    def update_event(self, event: Event) -> None:
        if self.state.is_visitor:
            return
        self._store.save_event(event)
        self.dispatch(EventUpdated(event))

    def delete_event(self, event_id: str) -> None:
        if self.state.is_visitor:
            return
        self._store.delete_event(event_id)
        self.dispatch(EventDeleted(event_id))

    def add_asset(self, asset: Asset, blob: Optional[bytes] = None) -> Optional[Asset]:
        if self.state.is_visitor:
            return None
        self._store.save_asset(asset, blob)
        display = asset.model_copy(update={"url": self._registry.create(blob), "blob": blob}) if blob is not None else asset
        self.dispatch(AssetAdded(display))
        return display

    def update_settings(self, settings: Settings) -> None:
        if self.state.is_visitor:
            return
        self._store.save_settings(settings)
        self.dispatch(SettingsUpdated(settings))

    # -------------------------
    # Publishing
    # -------------------------
    def publish(self, current_event: Optional[Event] = None) -> List[Event]:
        """Publish every event, folding in an unsaved edit of ``current_event`` first.

        Returns the events now held in memory. Only one publish may be in
        flight; a second concurrent call raises ``PublishInProgressError``.
        """
        if self.state.is_visitor:
            return list(self.state.events)
        if not self._publish_lock.acquire(blocking=False):
            raise PublishInProgressError()

        try:
            events = list(self.state.events)
            if current_event is not None:
                # Saved before publishing and kept even if the publish fails
                self._store.save_event(current_event)
                events = splice_event(events, current_event)
            self.dispatch(PublishStarted(tuple(events)))

            try:
                published = self._publisher.publish_events(events, self.state.settings, list(self.state.assets))
            except PublishError as e:
                logger.error("Publishing failed: %s", e)
                self.dispatch(PublishFailed(str(e)))
                raise

            if published:
                logger.info("Syncing %d published events back to the local store", len(published))
                for remote_event in published:
                    self._store.save_event(remote_event)
            self.dispatch(PublishSucceeded(tuple(published) if published else None))
            return list(self.state.events)
        finally:
            self._publish_lock.release()

    def export_public_manifest(self) -> str:
        """Manifest JSON for hosting by hand, without going through the server."""
        manifest = Manifest(
            last_updated=datetime.now(timezone.utc).isoformat(),
            events=list(self.state.events),
            settings=self.state.settings,
        )
        return json.dumps(manifest.to_wire(), indent=2)

    # -------------------------
    # Read models
    # -------------------------
    def public_events(self) -> List[Event]:
        return [e for e in self.state.events if e.status == "published"]

    def find_event(self, event_id: str) -> Optional[Event]:
        return next((e for e in self.state.events if e.id == event_id), None)

    def dashboard_totals(self) -> Tuple[float, int]:
        """Return (revenue, attendees) across all events."""
        revenue = sum(e.bookings * e.price for e in self.state.events)
        attendees = sum(e.bookings for e in self.state.events)
        return revenue, attendees
