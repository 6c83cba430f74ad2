from sqlalchemy import Column, JSON, LargeBinary, String
from db import Base


class EventRecord(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True, index=True)
    data = Column(JSON, nullable=False)


class AssetRecord(Base):
    __tablename__ = "assets"

    id = Column(String, primary_key=True, index=True)
    data = Column(JSON, nullable=False)
    # Raw payload only lives here; it is never part of an event or a manifest
    blob = Column(LargeBinary, nullable=True)


class SettingsRecord(Base):
    __tablename__ = "settings"

    # Singleton row keyed by schemas.SETTINGS_ID
    id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)


COLLECTIONS = {
    "events": EventRecord,
    "assets": AssetRecord,
    "settings": SettingsRecord,
}
