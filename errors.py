class EventForgeError(Exception):
    """Base class for recognised, non-fatal failures."""


class PublishError(EventForgeError):
    """The manifest could not be published; nothing public was changed."""


class UploadError(PublishError):
    """The manifest server refused or failed to store an upload."""


class PublishInProgressError(PublishError):
    """Raised when a publish is requested while another one is outstanding."""

    def __init__(self) -> None:
        super().__init__("A publish is already in progress")


class MissingPriceError(EventForgeError):
    """Checkout was requested for an event without a payment price id."""

    def __init__(self, event_id: str) -> None:
        super().__init__("Booking not configured for this event (no price id)")
        self.event_id = event_id
