import logging

import resend

from schemas import Event

logger = logging.getLogger(__name__)


def format_confirmation(event: Event) -> str:
    """Format the plain-text body of a booking confirmation."""
    lines = [
        f"# You're booked: {event.title}",
        "",
        f"📅 {event.date}",
        f"📍 {event.location}",
    ]
    if event.agenda:
        lines.append("")
        lines.append("## Agenda")
        for item in event.agenda:
            lines.append(f"- {item.time} · {item.title}")
    lines.append("")
    lines.append("See you there!")
    return "\n".join(lines)


class Mailer:
    """Sends booking confirmations through Resend."""

    def __init__(self, api_key: str, sender: str) -> None:
        self._api_key = api_key
        self._sender = sender

    def send_booking_confirmation(self, event: Event, to_email: str) -> None:
        resend.api_key = self._api_key
        resend.Emails.send(
            {
                "from": self._sender,
                "to": [to_email],
                "subject": f"Booking confirmed: {event.title}",
                "text": format_confirmation(event),
            }
        )
        logger.info("Sent booking confirmation for %s", event.id)
