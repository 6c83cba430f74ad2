import json
import logging
import os
import re
import secrets
import shutil
import tempfile
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from ai import ContentGenerator
from config import ServerConfig
from mailer import Mailer
from object_urls import is_transient_url
from payments import PaymentGateway, PaymentGatewayError, StripeGateway, WebhookVerificationError
from schemas import (
    AgendaRequest,
    CheckoutRequest,
    CheckoutResponse,
    DescriptionRequest,
    Event,
    Manifest,
    PublishRequest,
    PublishResponse,
    Settings,
    TagsRequest,
    UploadResponse,
)

# Log through uvicorn's error logger so messages share the server's format
logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="EventForge API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def utcnow():
    return datetime.now(timezone.utc)


def get_config() -> ServerConfig:
    return ServerConfig.from_env()


def get_gateway(config: ServerConfig = Depends(get_config)) -> Optional[PaymentGateway]:
    if not config.stripe_secret_key:
        return None
    return StripeGateway(config.stripe_secret_key, config.stripe_webhook_secret)


def get_mailer(config: ServerConfig = Depends(get_config)) -> Optional[Mailer]:
    if not config.resend_api_key:
        return None
    return Mailer(config.resend_api_key, config.mail_from)


def get_generator(config: ServerConfig = Depends(get_config)) -> ContentGenerator:
    if not config.gemini_api_key:
        raise HTTPException(status_code=500, detail="AI service not configured")
    return ContentGenerator(config.gemini_api_key, config.gemini_model)


def require_admin(
    authorization: Optional[str] = Header(None),
    config: ServerConfig = Depends(get_config),
):
    expected = f"Bearer {config.admin_secret}"
    if not authorization or not secrets.compare_digest(authorization.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")


# -------------------------
# Manifest file helpers
# -------------------------
def unique_upload_name(original: str) -> str:
    """Disambiguate an uploaded filename so repeat uploads never collide."""
    path = Path(Path(original).name)
    stem = re.sub(r"[^A-Za-z0-9._-]+", "-", path.stem).strip("-.") or "upload"
    ext = re.sub(r"[^A-Za-z0-9.]", "", path.suffix)
    return f"{stem}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"


def public_copy(event: Event) -> Event:
    """Drop references that only exist in the owner's process."""
    if not is_transient_url(event.image_url) and not any(is_transient_url(a.url) for a in event.assets):
        return event
    logger.warning("Event %s still has transient media; leaving it out of the manifest", event.id)
    event = event.model_copy(deep=True)
    if is_transient_url(event.image_url):
        event.image_url = ""
    event.assets = [a for a in event.assets if not is_transient_url(a.url)]
    return event


def write_json_atomic(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".events-", suffix=".json")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, path)
    except OSError:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def write_manifest(manifest: Manifest, config: ServerConfig) -> None:
    data = manifest.to_wire()
    write_json_atomic(config.manifest_path, data)
    if config.dist_dir.is_dir():
        write_json_atomic(config.dist_dir / "events.json", data)


def mapping(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def read_manifest(config: ServerConfig) -> Optional[Manifest]:
    try:
        with open(config.manifest_path) as f:
            return Manifest.model_validate(json.load(f))
    except FileNotFoundError:
        return None
    except (ValueError, ValidationError) as e:
        logger.error("Published manifest is unreadable: %s", e)
        return None


def sync_payment_products(
    events: List[Event],
    settings: Settings,
    gateway: Optional[PaymentGateway],
    config: ServerConfig,
) -> List[Event]:
    """Attach provider product/price ids to every paid event.

    Events that already carry a product id get that product updated.
    """
    if gateway is None or settings.payment_provider != "stripe":
        return events

    currency = (settings.currency or config.stripe_currency).lower()
    synced = []
    for event in events:
        if event.price > 0:
            product_id, price_id = gateway.sync_product(event, currency)
            event = event.model_copy(update={"stripe_product_id": product_id, "stripe_price_id": price_id})
        synced.append(event)
    return synced


@app.get("/")
def root():
    return {"ok": True, "name": "EventForge API"}


# -------------------------
# PUBLIC READ
# -------------------------
@app.get("/events.json")
def get_manifest(config: ServerConfig = Depends(get_config)):
    if not config.manifest_path.is_file():
        raise HTTPException(status_code=404, detail="Nothing published yet")
    return FileResponse(config.manifest_path, media_type="application/json")


@app.get("/uploads/{filename}")
def get_upload(filename: str, config: ServerConfig = Depends(get_config)):
    path = (config.uploads_dir / filename).resolve()
    if path.parent != config.uploads_dir.resolve() or not path.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(path)


# -------------------------
# ADMIN: upload + publish
# -------------------------
@app.post("/api/upload", response_model=UploadResponse, dependencies=[Depends(require_admin)])
def upload_file(
    file: Optional[UploadFile] = File(None),
    config: ServerConfig = Depends(get_config),
):
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")

    filename = unique_upload_name(file.filename or "upload")
    config.uploads_dir.mkdir(parents=True, exist_ok=True)
    with open(config.uploads_dir / filename, "wb") as out:
        shutil.copyfileobj(file.file, out)

    return UploadResponse(url=f"/uploads/{filename}")


@app.post(
    "/api/publish",
    response_model=PublishResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin)],
)
def publish(
    payload: PublishRequest,
    config: ServerConfig = Depends(get_config),
    gateway: Optional[PaymentGateway] = Depends(get_gateway),
):
    ids = [e.id for e in payload.events]
    if len(ids) != len(set(ids)):
        raise HTTPException(status_code=400, detail="Duplicate event id in publish payload")

    try:
        events = sync_payment_products(payload.events, payload.settings, gateway, config)
    except PaymentGatewayError as e:
        logger.error("Payment sync failed: %s", e)
        raise HTTPException(status_code=502, detail="Payment provider sync failed")

    manifest = Manifest(
        last_updated=utcnow().isoformat(),
        events=[public_copy(e) for e in events],
        settings=payload.settings,
    )
    try:
        write_manifest(manifest, config)
    except OSError:
        logger.exception("Publish error")
        raise HTTPException(status_code=500, detail="Failed to write events file")

    logger.info("Events published (%d)", len(events))
    return PublishResponse(success=True, message="Events published successfully", events=events)


# -------------------------
# PAYMENTS: checkout + webhook
# -------------------------
@app.post("/api/checkout", response_model=CheckoutResponse)
def checkout(
    payload: CheckoutRequest,
    config: ServerConfig = Depends(get_config),
    gateway: Optional[PaymentGateway] = Depends(get_gateway),
):
    if not payload.price_id:
        raise HTTPException(status_code=400, detail="Booking not configured for this event (no price id)")
    if gateway is None:
        raise HTTPException(status_code=503, detail="Payments not configured")

    try:
        url = gateway.create_checkout_session(
            payload.price_id,
            payload.event_id,
            success_url=f"{config.site_url}/?success=true#/public/{payload.event_id}",
            cancel_url=f"{config.site_url}/?canceled=true#/public/{payload.event_id}",
        )
    except PaymentGatewayError as e:
        logger.error("Checkout failed: %s", e)
        raise HTTPException(status_code=502, detail="Failed to start checkout")
    return CheckoutResponse(url=url)


@app.post("/api/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    config: ServerConfig = Depends(get_config),
    gateway: Optional[PaymentGateway] = Depends(get_gateway),
    mailer: Optional[Mailer] = Depends(get_mailer),
):
    if gateway is None:
        raise HTTPException(status_code=503, detail="Payments not configured")
    if not stripe_signature:
        raise HTTPException(status_code=400, detail="Missing signature")

    payload = await request.body()
    try:
        notification = gateway.parse_webhook(payload, stripe_signature)
    except WebhookVerificationError as e:
        logger.warning("Rejected webhook: %s", e)
        raise HTTPException(status_code=400, detail="Invalid webhook")

    if notification.get("type") != "checkout.session.completed":
        return {"received": True}

    session = mapping(mapping(notification.get("data")).get("object"))
    event_id = mapping(session.get("metadata")).get("eventId")
    email = mapping(session.get("customer_details")).get("email") or session.get("customer_email")
    if not (event_id and isinstance(event_id, str) and email and isinstance(email, str)):
        raise HTTPException(status_code=400, detail="Malformed checkout notification")

    manifest = read_manifest(config)
    event = next((e for e in manifest.events if e.id == event_id), None) if manifest else None
    if event is None:
        raise HTTPException(status_code=400, detail="Unknown event")

    if mailer is None:
        logger.warning("RESEND_API_KEY not set, skipping confirmation for %s", event_id)
        return {"received": True, "emailed": False}

    await run_in_threadpool(mailer.send_booking_confirmation, event, email)
    return {"received": True, "emailed": True}


# -------------------------
# ADMIN: AI drafting helpers
# -------------------------
@app.post("/api/ai/description", dependencies=[Depends(require_admin)])
def ai_description(payload: DescriptionRequest, generator: ContentGenerator = Depends(get_generator)):
    try:
        text = generator.description(payload.title, payload.vibe, payload.key_details)
    except Exception:
        logger.exception("AI Error")
        raise HTTPException(status_code=500, detail="Failed to generate description")
    return {"text": text}


@app.post("/api/ai/agenda", dependencies=[Depends(require_admin)])
def ai_agenda(payload: AgendaRequest, generator: ContentGenerator = Depends(get_generator)):
    try:
        agenda = generator.agenda(payload.title, payload.duration)
    except Exception:
        logger.exception("AI Error")
        raise HTTPException(status_code=500, detail="Failed to generate agenda")
    return {"agenda": [item.to_wire() for item in agenda]}


@app.post("/api/ai/tags", dependencies=[Depends(require_admin)])
def ai_tags(payload: TagsRequest, generator: ContentGenerator = Depends(get_generator)):
    try:
        tags = generator.tags(payload.description)
    except Exception:
        logger.exception("AI Error")
        raise HTTPException(status_code=500, detail="Failed to generate tags")
    return {"tags": tags}


@app.post("/api/ai/image", dependencies=[Depends(require_admin)])
def ai_image():
    raise HTTPException(status_code=501, detail="Image generation requires advanced model configuration.")


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 3000))
    uvicorn.run(app, host="0.0.0.0", port=port)
