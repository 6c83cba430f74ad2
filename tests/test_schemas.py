"""Unit tests for wire models.

Run with: pytest tests/test_schemas.py -v
"""

import pytest
from pydantic import ValidationError

from schemas import Asset, CryptoConfig, Event, Manifest, NoPaymentConfig, Settings, StripeConfig


class TestAsset:
    def test_asset_requires_url_or_blob(self):
        with pytest.raises(ValidationError):
            Asset(id="a1", name="empty.png")

    def test_asset_with_only_blob_is_valid(self):
        asset = Asset(id="a1", blob=b"\x89PNG")
        assert asset.url == ""

    def test_blob_never_serialized(self):
        asset = Asset(id="a1", url="blob:eventforge/x", blob=b"bytes")
        assert "blob" not in asset.to_wire()


class TestEvent:
    def test_wire_format_is_camel_case(self):
        event = Event(id="e1", title="Gala", image_url="/uploads/a.png", stripe_product_id="prod_X")
        wire = event.to_wire()
        assert wire["imageUrl"] == "/uploads/a.png"
        assert wire["stripeProductId"] == "prod_X"
        assert "stripePriceId" not in wire

    def test_accepts_camel_case_input(self):
        event = Event.model_validate({"id": "e1", "imageUrl": "x.png", "stripePriceId": "price_Y"})
        assert event.image_url == "x.png"
        assert event.stripe_price_id == "price_Y"

    def test_rejects_negative_capacity(self):
        with pytest.raises(ValidationError):
            Event(id="e1", capacity=-1)

    def test_rejects_negative_price(self):
        with pytest.raises(ValidationError):
            Event(id="e1", price=-5)

    def test_bookings_may_exceed_capacity(self):
        event = Event(id="e1", capacity=10, bookings=12)
        assert event.bookings == 12

    def test_rejects_unknown_status(self):
        with pytest.raises(ValidationError):
            Event(id="e1", status="archived")


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.id == "global"
        assert settings.brand_color == "#0205b7"
        assert settings.payment_provider == "none"
        assert isinstance(settings.payment_config, NoPaymentConfig)

    def test_flat_shape_becomes_tagged_variant(self):
        settings = Settings.model_validate(
            {
                "id": "global",
                "brandColor": "#ff0000",
                "paymentProvider": "stripe",
                "paymentConfig": {"apiKey": "pk_test", "currency": "eur"},
            }
        )
        assert isinstance(settings.payment_config, StripeConfig)
        assert settings.payment_config.api_key == "pk_test"
        assert settings.currency == "eur"

    def test_irrelevant_fields_dropped_for_variant(self):
        settings = Settings.model_validate(
            {"paymentProvider": "crypto", "paymentConfig": {"walletAddress": "0xabc", "email": "a@b.c"}}
        )
        assert isinstance(settings.payment_config, CryptoConfig)
        assert settings.payment_config.wallet_address == "0xabc"
        assert not hasattr(settings.payment_config, "email")

    def test_wire_keeps_payment_provider(self):
        wire = Settings(payment_config=StripeConfig(api_key="pk")).to_wire()
        assert wire["paymentProvider"] == "stripe"
        assert wire["paymentConfig"]["apiKey"] == "pk"

    def test_wire_round_trip(self):
        settings = Settings(brand_color="#123456", payment_config=StripeConfig(api_key="pk"))
        assert Settings.model_validate(settings.to_wire()) == settings

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValidationError):
            Settings.model_validate({"paymentProvider": "cash"})

    @pytest.mark.parametrize("config", [[1], "stripe", 5])
    def test_non_object_payment_config_is_a_validation_error(self, config):
        with pytest.raises(ValidationError):
            Settings.model_validate({"paymentProvider": "stripe", "paymentConfig": config})

    def test_null_payment_config_uses_provider_defaults(self):
        settings = Settings.model_validate({"paymentProvider": "stripe", "paymentConfig": None})
        assert settings.payment_config == StripeConfig()


class TestManifest:
    def test_manifest_fields(self):
        manifest = Manifest(last_updated="2026-01-01T00:00:00+00:00", events=[Event(id="e1")])
        assert set(manifest.to_wire()) == {"lastUpdated", "events", "settings"}
