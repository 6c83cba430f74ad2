"""Owner-side persistent store.

Three collections (events, assets, settings) kept as JSON documents in a
SQLite database. Every public method opens its own session, so a call is
one read or one write set with no atomicity across calls.
"""

import json
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import ValidationError

from db import make_engine, make_session_factory
from models import COLLECTIONS, AssetRecord, EventRecord, SettingsRecord
from schemas import SETTINGS_ID, Asset, Backup, Event, Settings

logger = logging.getLogger(__name__)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalStore:
    def __init__(self, database_url: str) -> None:
        self._engine = make_engine(database_url)
        self._session_factory = make_session_factory(self._engine)

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def close(self) -> None:
        self._engine.dispose()

    # -------------------------
    # Generic collection access
    # -------------------------
    def get_all(self, collection: str) -> list:
        model = COLLECTIONS[collection]
        with self._session() as db:
            return db.query(model).order_by(model.id.asc()).all()

    def put(self, collection: str, record_id: str, data: dict, blob: Optional[bytes] = None) -> None:
        model = COLLECTIONS[collection]
        with self._session() as db:
            row = db.get(model, record_id)
            if row is None:
                row = model(id=record_id)
                db.add(row)
            row.data = data
            if model is AssetRecord:
                row.blob = blob
            db.commit()

    def delete(self, collection: str, record_id: str) -> None:
        model = COLLECTIONS[collection]
        with self._session() as db:
            db.query(model).filter(model.id == record_id).delete()
            db.commit()

    def clear(self, collection: str) -> None:
        model = COLLECTIONS[collection]
        with self._session() as db:
            db.query(model).delete()
            db.commit()

    # -------------------------
    # Events
    # -------------------------
    def get_all_events(self) -> List[Event]:
        return [Event.model_validate(row.data) for row in self.get_all("events")]

    def get_event(self, event_id: str) -> Optional[Event]:
        with self._session() as db:
            row = db.get(EventRecord, event_id)
            return Event.model_validate(row.data) if row else None

    def save_event(self, event: Event) -> None:
        self.put("events", event.id, event.to_wire())

    def delete_event(self, event_id: str) -> None:
        self.delete("events", event_id)

    def clear_all_events(self) -> None:
        self.clear("events")

    # -------------------------
    # Assets
    # -------------------------
    def get_all_assets(self) -> List[Asset]:
        assets = []
        for row in self.get_all("assets"):
            asset = Asset.model_validate({**row.data, "blob": row.blob})
            assets.append(asset)
        return assets

    def save_asset(self, asset: Asset, blob: Optional[bytes] = None) -> None:
        payload = blob if blob is not None else asset.blob
        self.put("assets", asset.id, asset.to_wire(), blob=payload)

    def delete_asset(self, asset_id: str) -> None:
        self.delete("assets", asset_id)

    # -------------------------
    # Settings
    # -------------------------
    def get_settings(self) -> Optional[Settings]:
        with self._session() as db:
            row = db.get(SettingsRecord, SETTINGS_ID)
            return Settings.model_validate(row.data) if row else None

    def save_settings(self, settings: Settings) -> None:
        settings = settings.model_copy(update={"id": SETTINGS_ID})
        self.put("settings", SETTINGS_ID, settings.to_wire())

    # -------------------------
    # Seeding, backup and restore
    # -------------------------
    def seed_data(self, events: Iterable[Event], assets: Iterable[Asset]) -> None:
        """Populate empty collections; collections that hold data are left alone."""
        if not self.get_all("events"):
            for event in events:
                self.save_event(event)
        if not self.get_all("assets"):
            for asset in assets:
                self.save_asset(asset)

    def create_backup(self) -> str:
        """Export events and settings as JSON. Binary asset payloads are not included."""
        backup = Backup(
            timestamp=utcnow_iso(),
            events=self.get_all_events(),
            settings=self.get_settings(),
        )
        return json.dumps(backup.to_wire(), indent=2)

    def restore_backup(self, content: str) -> bool:
        try:
            backup = Backup.model_validate(json.loads(content))
        except (ValueError, ValidationError) as e:
            logger.error("Restore failed: %s", e)
            return False

        for event in backup.events:
            self.save_event(event)
        if backup.settings is not None:
            self.save_settings(backup.settings)
        return True
