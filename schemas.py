from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

EventStatus = Literal["draft", "published", "past"]
AssetKind = Literal["image", "video", "audio", "document"]
PaymentProvider = Literal["stripe", "square", "paypal", "venmo", "crypto", "none"]

SETTINGS_ID = "global"
DEFAULT_BRAND_COLOR = "#0205b7"


class WireModel(BaseModel):
    """Base for everything that crosses the store, the manifest or the API.

    Attributes are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AgendaItem(WireModel):
    time: str = ""
    title: str = ""
    description: str = ""


class Asset(WireModel):
    id: str
    type: AssetKind = "image"
    name: str = ""
    # Remote address, transient blob: reference, or server-relative upload path
    url: str = ""
    size: Optional[str] = None
    blob: Optional[bytes] = Field(default=None, exclude=True, repr=False)

    @model_validator(mode="after")
    def check_url_or_blob(self):
        if not self.url and self.blob is None:
            raise ValueError("asset needs a url or a binary payload")
        return self


class Event(WireModel):
    id: str = Field(..., min_length=1)
    title: str = ""
    description: str = ""
    date: str = ""
    location: str = ""

    capacity: int = Field(0, ge=0)
    bookings: int = Field(0, ge=0)
    price: float = Field(0, ge=0)

    image_url: str = ""
    status: EventStatus = "draft"
    tags: List[str] = Field(default_factory=list)
    agenda: List[AgendaItem] = Field(default_factory=list)
    assets: List[Asset] = Field(default_factory=list)

    # Attached by the server after a publish with a positive price
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None


# -------------------------
# Payment configuration, one variant per provider
# -------------------------
class StripeConfig(WireModel):
    provider: Literal["stripe"] = "stripe"
    api_key: str = ""
    currency: str = "usd"


class SquareConfig(WireModel):
    provider: Literal["square"] = "square"
    api_key: str = ""
    currency: str = "usd"


class PaypalConfig(WireModel):
    provider: Literal["paypal"] = "paypal"
    email: str = ""
    currency: str = "usd"


class VenmoConfig(WireModel):
    provider: Literal["venmo"] = "venmo"
    email: str = ""


class CryptoConfig(WireModel):
    provider: Literal["crypto"] = "crypto"
    wallet_address: str = ""
    currency: str = "ETH"


class NoPaymentConfig(WireModel):
    provider: Literal["none"] = "none"


PaymentConfig = Annotated[
    Union[StripeConfig, SquareConfig, PaypalConfig, VenmoConfig, CryptoConfig, NoPaymentConfig],
    Field(discriminator="provider"),
]


class Settings(WireModel):
    id: str = SETTINGS_ID
    brand_color: str = DEFAULT_BRAND_COLOR
    payment_config: PaymentConfig = Field(default_factory=NoPaymentConfig)

    @model_validator(mode="before")
    @classmethod
    def tag_payment_config(cls, data: Any) -> Any:
        # Accepts the flat {paymentProvider, paymentConfig: {...}} shape and
        # folds the provider into the config as its tag.
        if not isinstance(data, dict):
            return data
        data = dict(data)
        provider = data.pop("paymentProvider", None)
        provider = data.pop("payment_provider", None) or provider
        key = "payment_config" if "payment_config" in data else "paymentConfig"
        config = data.get(key)
        if config is None:
            config = {}
        if not isinstance(config, dict):
            # Left for the union to reject as a validation error
            return data
        config = dict(config)
        config.setdefault("provider", provider or "none")
        data[key] = config
        return data

    @computed_field(alias="paymentProvider")
    @property
    def payment_provider(self) -> PaymentProvider:
        return self.payment_config.provider

    @property
    def currency(self) -> Optional[str]:
        return getattr(self.payment_config, "currency", None)


class Manifest(WireModel):
    last_updated: str
    events: List[Event] = Field(default_factory=list)
    settings: Settings = Field(default_factory=Settings)


class Backup(WireModel):
    timestamp: str = ""
    events: List[Event] = Field(default_factory=list)
    settings: Optional[Settings] = None


# -------------------------
# API payloads
# -------------------------
class PublishRequest(WireModel):
    events: List[Event]
    settings: Settings = Field(default_factory=Settings)


class PublishResponse(WireModel):
    success: bool
    message: str = ""
    events: Optional[List[Event]] = None


class UploadResponse(WireModel):
    url: str


class CheckoutRequest(WireModel):
    price_id: Optional[str] = None
    event_id: str


class CheckoutResponse(WireModel):
    url: str


class DescriptionRequest(WireModel):
    title: str = Field(..., min_length=1, max_length=200)
    vibe: str = "professional"
    key_details: str = ""


class AgendaRequest(WireModel):
    title: str = Field(..., min_length=1, max_length=200)
    duration: int = Field(6, ge=1, le=72)


class TagsRequest(WireModel):
    description: str = Field(..., min_length=1)
